"""
Admin endpoints for index maintenance.
"""

import logging
from typing import Any, Dict
from fastapi import APIRouter, Depends, HTTPException, Path, status

from inspi_db.exceptions import IndexDefinitionNotFoundError
from inspi_db.routers.dependencies import get_index_manager, get_index_usage_analyzer
from inspi_db.services.index_manager import IndexManager
from inspi_db.services.index_usage_analyzer import IndexUsageAnalyzer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/indexes", tags=["Admin - Indexes"])


@router.get("/validate")
async def validate_indexes(
    manager: IndexManager = Depends(get_index_manager)
) -> Dict[str, Any]:
    """
    Compare the index catalog with the live database.

    Example response:
        {
            "success": true,
            "data": {
                "valid": false,
                "missing": [{"name": "works_created_at", "collection": "works", ...}],
                "extra": ["works.legacy_title"],
                "failed_collections": []
            }
        }
    """
    report = await manager.validate_indexes()
    return {"success": True, "data": report.model_dump(mode="json")}


@router.get("/usage")
async def index_usage(
    analyzer: IndexUsageAnalyzer = Depends(get_index_usage_analyzer)
) -> Dict[str, Any]:
    """Usage analysis and recommendations across all catalog collections."""
    analysis = await analyzer.analyze_index_usage()
    return {"success": True, "data": analysis.model_dump(mode="json")}


@router.post("/{collection}/{name}/rebuild")
async def rebuild_index(
    collection: str = Path(..., description="Collection name"),
    name: str = Path(..., description="Index name"),
    manager: IndexManager = Depends(get_index_manager)
) -> Dict[str, Any]:
    """Drop an index and recreate it from its catalog definition."""
    try:
        await manager.rebuild_index(collection, name)
    except IndexDefinitionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to rebuild index: {str(e)}"
        )

    logger.info(f"[Admin] Rebuilt index {collection}.{name}")
    return {"success": True, "data": {"collection": collection, "name": name}}


@router.delete("/{collection}/{name}")
async def drop_index(
    collection: str = Path(..., description="Collection name"),
    name: str = Path(..., description="Index name"),
    manager: IndexManager = Depends(get_index_manager)
) -> Dict[str, Any]:
    """Drop an index from a collection."""
    try:
        await manager.drop_index(collection, name)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to drop index: {str(e)}"
        )

    logger.info(f"[Admin] Dropped index {collection}.{name}")
    return {"success": True, "data": {"collection": collection, "name": name}}
