"""
Fluent builder for aggregation pipelines.

The builder only accumulates stages in call order. Whether a stage makes
sense for the target collection is for the database to decide when the
pipeline runs.
"""

from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel

from inspi_db.models.filters import compile_filter
from inspi_db.models.pipeline import (
    AddFieldsStage,
    BaseStage,
    FacetStage,
    GroupStage,
    LimitStage,
    LookupStage,
    MatchStage,
    ProjectStage,
    SampleStage,
    SkipStage,
    SortStage,
    UnwindStage,
    copy_pipeline,
    parse_pipeline,
    pipeline_to_mongo,
)
from inspi_db.services.pipeline_optimizer import PipelineOptimizer


class AggregationBuilder:
    """Accumulates pipeline stages for one collection."""

    def __init__(self, collection: str, pipeline: Optional[List[Any]] = None):
        self.collection = collection
        self._pipeline: List[BaseStage] = copy_pipeline(parse_pipeline(pipeline)) if pipeline else []

    def match(self, conditions: Union[Mapping[str, Any], BaseModel]) -> "AggregationBuilder":
        """Add $match stage from a query mapping or a filter expression."""
        self._pipeline.append(MatchStage(filter=compile_filter(conditions)))
        return self

    def group(self, group_spec: Dict[str, Any]) -> "AggregationBuilder":
        """Add $group stage"""
        self._pipeline.append(GroupStage(spec=group_spec))
        return self

    def sort(self, sort_spec: Dict[str, Any]) -> "AggregationBuilder":
        """Add $sort stage"""
        self._pipeline.append(SortStage(spec=sort_spec))
        return self

    def limit(self, count: int) -> "AggregationBuilder":
        """Add $limit stage"""
        self._pipeline.append(LimitStage(count=count))
        return self

    def skip(self, count: int) -> "AggregationBuilder":
        """Add $skip stage"""
        self._pipeline.append(SkipStage(count=count))
        return self

    def project(self, projection: Dict[str, Any]) -> "AggregationBuilder":
        """Add $project stage"""
        self._pipeline.append(ProjectStage(spec=projection))
        return self

    def lookup(
        self,
        from_collection: str,
        as_field: str,
        local_field: Optional[str] = None,
        foreign_field: Optional[str] = None,
        let: Optional[Dict[str, Any]] = None,
        pipeline: Optional[List[Any]] = None,
    ) -> "AggregationBuilder":
        """
        Add $lookup stage.

        Args:
            from_collection: Foreign collection to join
            as_field: Output array field
            local_field: Field of the input documents (equality join)
            foreign_field: Field of the foreign documents (equality join)
            let: Variables exposed to the sub-pipeline
            pipeline: Sub-pipeline run against the foreign collection; either
                stage models or raw stage documents
        """
        self._pipeline.append(LookupStage(
            from_=from_collection,
            as_=as_field,
            local_field=local_field,
            foreign_field=foreign_field,
            let=let,
            pipeline=parse_pipeline(pipeline) if pipeline is not None else None,
        ))
        return self

    def unwind(
        self,
        path: str,
        preserve_null_and_empty_arrays: Optional[bool] = None,
        include_array_index: Optional[str] = None,
    ) -> "AggregationBuilder":
        """Add $unwind stage; ``path`` may be given with or without the leading '$'."""
        self._pipeline.append(UnwindStage(
            path=path if path.startswith("$") else f"${path}",
            preserve_null_and_empty_arrays=preserve_null_and_empty_arrays,
            include_array_index=include_array_index,
        ))
        return self

    def add_fields(self, fields: Dict[str, Any]) -> "AggregationBuilder":
        """Add $addFields stage"""
        self._pipeline.append(AddFieldsStage(spec=fields))
        return self

    def facet(self, facet_spec: Dict[str, List[Any]]) -> "AggregationBuilder":
        """Add $facet stage; every facet is a sub-pipeline."""
        self._pipeline.append(FacetStage(
            facets={name: parse_pipeline(sub) for name, sub in facet_spec.items()}
        ))
        return self

    def sample(self, size: int) -> "AggregationBuilder":
        """Add $sample stage"""
        self._pipeline.append(SampleStage(size=size))
        return self

    def get_pipeline(self) -> List[BaseStage]:
        """Copy of the accumulated pipeline; changing it leaves the builder untouched."""
        return copy_pipeline(self._pipeline)

    def to_mongo(self) -> List[Dict[str, Any]]:
        """Accumulated pipeline as driver documents."""
        return pipeline_to_mongo(self._pipeline)

    def optimize(self, optimizer: Optional[PipelineOptimizer] = None) -> "AggregationBuilder":
        """
        Rewrite the accumulated pipeline with the optimizer.

        Args:
            optimizer: PipelineOptimizer to use; the default one when omitted
        """
        optimizer = optimizer or PipelineOptimizer()
        self._pipeline = optimizer.optimize(self._pipeline)
        return self

    def __len__(self) -> int:
        return len(self._pipeline)
