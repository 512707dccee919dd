"""
Aggregation and index services.
"""

from inspi_db.services.aggregation_builder import AggregationBuilder
from inspi_db.services.pipeline_optimizer import PipelineOptimizer, optimize_pipeline, get_optimization_messages
from inspi_db.services.aggregation_service import AggregationService
from inspi_db.services.aggregation_templates import AggregationTemplates, TEMPLATES
from inspi_db.services.index_manager import IndexManager
from inspi_db.services.index_usage_analyzer import IndexUsageAnalyzer

__all__ = [
    'AggregationBuilder',
    'PipelineOptimizer',
    'optimize_pipeline',
    'get_optimization_messages',
    'AggregationService',
    'AggregationTemplates',
    'TEMPLATES',
    'IndexManager',
    'IndexUsageAnalyzer'
]
