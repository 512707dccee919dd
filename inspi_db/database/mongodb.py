"""
MongoDB database connection and management.
"""

import logging
from typing import Optional, Dict, Any
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from inspi_db.config import settings
from inspi_db.database.store import MotorStore

logger = logging.getLogger(__name__)


class MongoDB:
    """MongoDB database manager with connection pooling and error handling."""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None
        self._connected: bool = False

    async def connect(self) -> bool:
        """
        Establish connection to MongoDB.

        Returns:
            bool: True if connection successful, False otherwise
        """
        try:
            logger.info("[MongoDB] Connecting to MongoDB...")
            logger.info(f"[MongoDB] URI: {settings.mongodb_uri.split('@')[1] if '@' in settings.mongodb_uri else 'localhost'}")

            self.client = AsyncIOMotorClient(
                settings.mongodb_uri,
                serverSelectionTimeoutMS=settings.mongodb_server_selection_timeout_ms,
                maxPoolSize=settings.mongodb_max_pool_size,
                minPoolSize=settings.mongodb_min_pool_size
            )
            self.db = self.client[settings.mongodb_database]

            # Test connection
            await self.client.admin.command('ping')

            self._connected = True
            logger.info(f"[MongoDB] Successfully connected to database: {settings.mongodb_database}")
            return True

        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.error(f"[MongoDB] Connection failed: {e}")
            self._connected = False
            return False

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            logger.info("[MongoDB] Closing connection...")
            self.client.close()
            self._connected = False
            logger.info("[MongoDB] Connection closed")

    async def health_check(self) -> Dict[str, Any]:
        """
        Check MongoDB health status.

        Returns:
            dict: Health status information
        """
        if not self._connected or not self.client:
            return {
                "healthy": False,
                "status": "disconnected",
                "message": "MongoDB not connected"
            }

        try:
            await self.client.admin.command('ping')
            server_info = await self.client.server_info()

            return {
                "healthy": True,
                "status": "connected",
                "database": settings.mongodb_database,
                "version": server_info.get('version')
            }

        except Exception as e:
            logger.error(f"[MongoDB] Health check failed: {e}")
            return {
                "healthy": False,
                "status": "error",
                "message": str(e)
            }

    @property
    def is_connected(self) -> bool:
        """Check if database is connected."""
        return self._connected

    @property
    def store(self) -> Optional[MotorStore]:
        """Store handle over the connected database."""
        return MotorStore(self.db) if self._connected and self.db is not None else None


# Global database instance
database = MongoDB()
