"""
Store handles used by the aggregation and index services.

The services only depend on the two protocols below. ``MotorStore``
implements both on top of a motor database.
"""

from typing import Any, Dict, List, Protocol, Sequence, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase


class AggregationStore(Protocol):
    """Runs aggregation pipelines against named collections."""

    async def run(self, collection: str, pipeline: List[Dict[str, Any]], **options: Any) -> List[Dict[str, Any]]:
        ...

    async def explain(self, collection: str, pipeline: List[Dict[str, Any]]) -> Any:
        ...


class IndexStore(Protocol):
    """Index management and access statistics per collection."""

    async def list_indexes(self, collection: str) -> List[Dict[str, Any]]:
        ...

    async def create_index(self, collection: str, keys: Sequence[Tuple[str, Any]], **options: Any) -> str:
        ...

    async def drop_index(self, collection: str, name: str) -> None:
        ...

    async def index_stats(self, collection: str) -> List[Dict[str, Any]]:
        ...


class MotorStore:
    """AggregationStore and IndexStore backed by an AsyncIOMotorDatabase."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def run(self, collection: str, pipeline: List[Dict[str, Any]], **options: Any) -> List[Dict[str, Any]]:
        cursor = self.db[collection].aggregate(pipeline, **options)
        return await cursor.to_list(length=None)

    async def explain(self, collection: str, pipeline: List[Dict[str, Any]]) -> Any:
        return await self.db.command(
            "aggregate", collection, pipeline=pipeline, explain=True
        )

    async def list_indexes(self, collection: str) -> List[Dict[str, Any]]:
        cursor = self.db[collection].list_indexes()
        return [dict(index) async for index in cursor]

    async def create_index(self, collection: str, keys: Sequence[Tuple[str, Any]], **options: Any) -> str:
        return await self.db[collection].create_index(list(keys), **options)

    async def drop_index(self, collection: str, name: str) -> None:
        await self.db[collection].drop_index(name)

    async def index_stats(self, collection: str) -> List[Dict[str, Any]]:
        """
        Access statistics per index.

        $indexStats reports accesses but not sizes, so the sizes from
        collStats are attached to every entry as ``indexSizes``.
        """
        cursor = self.db[collection].aggregate([{"$indexStats": {}}])
        stats = await cursor.to_list(length=None)
        coll_stats = await self.db.command("collStats", collection)
        index_sizes = coll_stats.get("indexSizes", {})
        for stat in stats:
            stat["indexSizes"] = index_sizes
        return stats
