"""
Shared fixtures for unit tests.

No test here talks to MongoDB: stores are AsyncMock fakes shaped like
inspi_db.database.store.MotorStore.
"""

import logging
import pytest
from unittest.mock import AsyncMock, MagicMock

from inspi_db.models.indexes import IndexDefinition, IndexOptions, IndexType


@pytest.fixture
def fake_store():
    """Store fake implementing both the aggregation and the index protocol."""
    store = MagicMock()
    store.run = AsyncMock(return_value=[])
    store.explain = AsyncMock(return_value={"stages": []})
    store.list_indexes = AsyncMock(return_value=[{"name": "_id_", "key": {"_id": 1}}])
    store.create_index = AsyncMock(side_effect=lambda collection, keys, **options: options["name"])
    store.drop_index = AsyncMock(return_value=None)
    store.index_stats = AsyncMock(return_value=[])
    return store


@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def small_catalog():
    """Three indexes over two collections."""
    return [
        IndexDefinition(
            name="works_author",
            collection="works",
            fields={"authorId": 1},
            type=IndexType.SINGLE,
            options=IndexOptions(unique=True)
        ),
        IndexDefinition(
            name="works_subject_grade",
            collection="works",
            fields={"subject": 1, "grade": 1},
            type=IndexType.COMPOUND
        ),
        IndexDefinition(
            name="sessions_ttl",
            collection="sessions",
            fields={"expiresAt": 1},
            type=IndexType.TTL,
            options=IndexOptions(expire_after_seconds=0)
        ),
    ]
