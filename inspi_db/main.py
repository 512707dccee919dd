"""
FastAPI application exposing the admin surface of the database toolkit.
"""

from contextlib import asynccontextmanager
import logging
import logging.config
import time

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from inspi_db.config import settings
from inspi_db.database import database
from inspi_db.routers import aggregations, indexes
from inspi_db.services.index_manager import IndexManager

logger = logging.getLogger(__name__)


async def initialize_indexes() -> None:
    """Create catalog indexes on startup when enabled and connected."""
    if not settings.create_indexes_on_startup:
        logger.info("[Startup] Index creation on startup disabled")
        return

    if not database.is_connected:
        logger.warning("[Startup] MongoDB not connected - skipping index creation")
        return

    manager = IndexManager(database.store)
    await manager.create_all_indexes()


# Application lifespan events
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    logging.config.dictConfig(settings.log_config)
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    await database.connect()
    await initialize_indexes()

    yield

    logger.info(f"Shutting down {settings.app_name}")
    await database.disconnect()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Aggregation optimization and index management for the platform database",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan
)

# Include routers
app.include_router(aggregations.router)
app.include_router(indexes.router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for monitoring and load balancers."""
    health = await database.health_check()
    return JSONResponse(
        content={
            "status": "healthy" if health["healthy"] else "unhealthy",
            "database": health["status"],
            "timestamp": time.time()
        },
        status_code=200 if health["healthy"] else 503
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "inspi_db.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
