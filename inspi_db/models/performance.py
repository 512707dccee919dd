"""
Pydantic models for aggregation performance reporting.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class StageStats(BaseModel):
    """Per-stage statistics, as reported by an explain pass."""
    stage: str
    execution_time_ms: float = 0
    input_documents: int = 0
    output_documents: int = 0
    memory_usage: int = 0
    index_used: Optional[str] = None


class AggregationPerformance(BaseModel):
    """
    Report produced once per optimized pipeline execution.

    Fields that need an explain pass (documents_processed, stage_stats,
    memory_usage, indexes_used) stay empty for plain executions.
    """
    collection: str
    pipeline: List[Dict[str, Any]]
    execution_time_ms: float = Field(ge=0)
    documents_returned: int = Field(ge=0)
    documents_processed: int = 0
    stage_stats: List[StageStats] = Field(default_factory=list)
    memory_usage: int = 0
    indexes_used: List[str] = Field(default_factory=list)
    optimizations: List[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
