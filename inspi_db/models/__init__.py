"""
Data models for pipelines, filters, indexes and reports.
"""

from .filters import FieldCondition, Exists, Not, Raw, And, Or, FilterExpression, compile_filter
from .pipeline import (
    BaseStage,
    MatchStage,
    GroupStage,
    SortStage,
    LimitStage,
    SkipStage,
    ProjectStage,
    LookupStage,
    UnwindStage,
    AddFieldsStage,
    FacetStage,
    SampleStage,
    Stage,
    Pipeline,
    parse_stage,
    parse_pipeline,
    pipeline_to_mongo,
    copy_pipeline
)
from .indexes import (
    IndexType,
    IndexOptions,
    IndexDefinition,
    IndexUsageStat,
    IndexCreationResult,
    IndexValidationReport,
    IndexUsageAnalysis,
    parse_index_definition
)
from .performance import AggregationPerformance, StageStats

__all__ = [
    "FieldCondition", "Exists", "Not", "Raw", "And", "Or", "FilterExpression", "compile_filter",
    "BaseStage", "MatchStage", "GroupStage", "SortStage", "LimitStage", "SkipStage",
    "ProjectStage", "LookupStage", "UnwindStage", "AddFieldsStage", "FacetStage", "SampleStage",
    "Stage", "Pipeline", "parse_stage", "parse_pipeline", "pipeline_to_mongo", "copy_pipeline",
    "IndexType", "IndexOptions", "IndexDefinition", "IndexUsageStat", "IndexCreationResult",
    "IndexValidationReport", "IndexUsageAnalysis", "parse_index_definition",
    "AggregationPerformance", "StageStats"
]
