"""
Index management: reconciles the index catalog with a live database.
"""

import logging
from typing import List, Optional

from inspi_db.config import settings
from inspi_db.database.index_catalog import ALL_INDEXES, get_index_definition, indexes_by_collection
from inspi_db.database.store import IndexStore
from inspi_db.exceptions import IndexDefinitionNotFoundError
from inspi_db.models.indexes import (
    IndexCreationResult,
    IndexDefinition,
    IndexUsageStat,
    IndexValidationReport
)
from inspi_db.services.index_usage_analyzer import PRIMARY_KEY_INDEX, build_usage_stat

logger = logging.getLogger(__name__)


class IndexManager:
    """Creates, drops, rebuilds and validates catalog indexes."""

    def __init__(
        self,
        store: IndexStore,
        catalog: Optional[List[IndexDefinition]] = None,
        efficiency_threshold: Optional[float] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.store = store
        self.catalog = list(ALL_INDEXES if catalog is None else catalog)
        self.efficiency_threshold = (
            settings.index_efficiency_threshold if efficiency_threshold is None else efficiency_threshold
        )
        self.logger = logger or logging.getLogger(__name__)

    @property
    def collections(self) -> List[str]:
        """Collections covered by the catalog, in catalog order."""
        return list(indexes_by_collection(self.catalog))

    async def index_exists(self, collection: str, index_name: str) -> bool:
        existing = await self.store.list_indexes(collection)
        return any(index.get("name") == index_name for index in existing)

    async def create_index(self, definition: IndexDefinition) -> bool:
        """
        Create one index unless an index with the same name already exists.

        Returns:
            bool: True if the index was created, False if it already existed
        """
        if await self.index_exists(definition.collection, definition.name):
            self.logger.debug(
                f"[Indexes] Index already exists: {definition.name}",
                extra={"collection": definition.collection}
            )
            return False

        await self.store.create_index(
            definition.collection,
            definition.keys(),
            **definition.create_options()
        )
        return True

    async def create_all_indexes(self) -> IndexCreationResult:
        """
        Create every catalog index, one at a time.

        A failing definition is logged and counted; the remaining ones are
        still attempted.

        Returns:
            IndexCreationResult: created/skipped/failed counters
        """
        self.logger.info("[Indexes] Starting index creation process")
        result = IndexCreationResult()

        for definition in self.catalog:
            try:
                created = await self.create_index(definition)
            except Exception as e:
                result.failed += 1
                self.logger.error(
                    f"[Indexes] Failed to create index: {definition.name}: {e}",
                    extra={"collection": definition.collection, "index": definition.name}
                )
                continue

            if created:
                result.created += 1
                self.logger.info(
                    f"[Indexes] Index created: {definition.name}",
                    extra={"collection": definition.collection, "type": definition.type.value}
                )
            else:
                result.skipped += 1

        self.logger.info(
            f"[Indexes] Index creation completed: {result.created} created, "
            f"{result.skipped} skipped, {result.failed} failed",
            extra={"index_creation": result.model_dump()}
        )
        return result

    async def drop_index(self, collection: str, index_name: str) -> None:
        """Drop an index; store errors are logged and re-raised."""
        try:
            await self.store.drop_index(collection, index_name)
        except Exception as e:
            self.logger.error(
                f"[Indexes] Failed to drop index: {index_name}: {e}",
                extra={"collection": collection, "index": index_name}
            )
            raise
        self.logger.info(
            f"[Indexes] Index dropped: {index_name}",
            extra={"collection": collection, "index": index_name}
        )

    async def rebuild_index(self, collection: str, index_name: str) -> None:
        """
        Drop an index and recreate it from its catalog definition.

        Raises:
            IndexDefinitionNotFoundError: If the catalog has no such index
            Exception: Any store error, after it has been logged
        """
        definition = self.get_index_definition(collection, index_name)
        if definition is None:
            self.logger.error(
                f"[Indexes] Cannot rebuild {collection}.{index_name}: no catalog definition",
                extra={"collection": collection, "index": index_name}
            )
            raise IndexDefinitionNotFoundError(collection, index_name)

        await self.drop_index(collection, index_name)
        try:
            await self.create_index(definition)
        except Exception as e:
            self.logger.error(
                f"[Indexes] Failed to rebuild index: {index_name}: {e}",
                extra={"collection": collection, "index": index_name}
            )
            raise
        self.logger.info(
            f"[Indexes] Index rebuilt: {index_name}",
            extra={"collection": collection, "index": index_name}
        )

    def get_index_definition(self, collection: str, index_name: str) -> Optional[IndexDefinition]:
        return get_index_definition(collection, index_name, self.catalog)

    async def validate_indexes(self) -> IndexValidationReport:
        """
        Compare the catalog with the indexes present in each collection.

        Returns:
            IndexValidationReport: catalog entries missing from the store and
            store indexes ("collection.name") missing from the catalog,
            and collections whose indexes could not be listed
        """
        missing: List[IndexDefinition] = []
        extra: List[str] = []
        failed_collections: List[str] = []

        for collection, expected in indexes_by_collection(self.catalog).items():
            try:
                existing = await self.store.list_indexes(collection)
            except Exception as e:
                self.logger.error(
                    f"[Indexes] Failed to validate indexes for collection: {collection}: {e}",
                    extra={"collection": collection}
                )
                failed_collections.append(collection)
                continue

            existing_names = [index.get("name") for index in existing]
            expected_names = {definition.name for definition in expected}

            missing.extend(d for d in expected if d.name not in existing_names)
            extra.extend(
                f"{collection}.{name}" for name in existing_names
                if name != PRIMARY_KEY_INDEX and name not in expected_names
            )

        return IndexValidationReport(
            valid=not missing and not extra and not failed_collections,
            missing=missing,
            extra=extra,
            failed_collections=failed_collections
        )

    async def get_index_stats(self, collection: str) -> List[IndexUsageStat]:
        """Usage statistics for every index of a collection; empty if the store fails."""
        try:
            raw_stats = await self.store.index_stats(collection)
        except Exception as e:
            self.logger.error(
                f"[Indexes] Failed to get index stats for collection: {collection}: {e}",
                extra={"collection": collection}
            )
            return []

        return [build_usage_stat(collection, raw, self.efficiency_threshold) for raw in raw_stats]
