"""
Admin endpoints for aggregation pipelines.
"""

import logging
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from inspi_db.exceptions import InvalidPipelineStageError
from inspi_db.models.pipeline import parse_pipeline, pipeline_to_mongo
from inspi_db.routers.dependencies import get_aggregation_service, get_pipeline_optimizer
from inspi_db.services.aggregation_service import AggregationService
from inspi_db.services.aggregation_templates import TEMPLATES
from inspi_db.services.pipeline_optimizer import PipelineOptimizer
from inspi_db.utils.serialization import serialize_for_json

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/aggregations", tags=["Admin - Aggregations"])


class PipelineRequest(BaseModel):
    """Raw aggregation pipeline, as sent by the admin console."""
    collection: Optional[str] = None
    pipeline: List[Dict[str, Any]] = Field(default_factory=list)


@router.post("/optimize")
async def optimize_pipeline(
    request: PipelineRequest,
    optimizer: PipelineOptimizer = Depends(get_pipeline_optimizer)
) -> Dict[str, Any]:
    """
    Optimize a pipeline without running it.

    Example response:
        {
            "success": true,
            "data": {
                "original": [{"$sort": {"n": 1}}, {"$match": {"a": 1}}],
                "optimized": [{"$match": {"a": 1}}, {"$sort": {"n": 1}}],
                "optimizations": ["$match moved forward to the start of the pipeline"]
            }
        }
    """
    try:
        original = parse_pipeline(request.pipeline)
    except InvalidPipelineStageError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    optimized = optimizer.optimize(original)
    messages = optimizer.get_optimization_messages(original, optimized)

    logger.info(
        f"[Admin] Optimized pipeline: {len(original)} -> {len(optimized)} stages",
        extra={"collection": request.collection}
    )

    return {
        "success": True,
        "data": {
            "collection": request.collection,
            "original": serialize_for_json(pipeline_to_mongo(original)),
            "optimized": serialize_for_json(pipeline_to_mongo(optimized)),
            "optimizations": messages
        }
    }


@router.get("/templates")
async def list_templates() -> Dict[str, Any]:
    """List the predefined analytics pipelines with their default parameters."""
    templates = []
    for name, factory in TEMPLATES.items():
        builder = factory()
        templates.append({
            "name": name,
            "collection": builder.collection,
            "pipeline": serialize_for_json(builder.to_mongo())
        })

    return {"success": True, "data": templates}


@router.post("/explain")
async def explain_pipeline(
    request: PipelineRequest,
    service: AggregationService = Depends(get_aggregation_service)
) -> Dict[str, Any]:
    """Execution plan for a pipeline, as reported by MongoDB."""
    if not request.collection:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="collection is required"
        )

    try:
        plan = await service.explain_aggregation(request.collection, request.pipeline)
    except InvalidPipelineStageError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to explain aggregation: {str(e)}"
        )

    return {"success": True, "data": serialize_for_json(plan)}
