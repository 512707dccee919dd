"""
FastAPI dependencies that hand the admin routers their services.
"""

from fastapi import HTTPException, status

from inspi_db.database import database
from inspi_db.database.store import MotorStore
from inspi_db.services.aggregation_service import AggregationService
from inspi_db.services.index_manager import IndexManager
from inspi_db.services.index_usage_analyzer import IndexUsageAnalyzer
from inspi_db.services.pipeline_optimizer import PipelineOptimizer


def get_store() -> MotorStore:
    store = database.store
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not connected"
        )
    return store


def get_pipeline_optimizer() -> PipelineOptimizer:
    return PipelineOptimizer()


def get_aggregation_service() -> AggregationService:
    return AggregationService(get_store())


def get_index_manager() -> IndexManager:
    return IndexManager(get_store())


def get_index_usage_analyzer() -> IndexUsageAnalyzer:
    return IndexUsageAnalyzer(get_index_manager())
