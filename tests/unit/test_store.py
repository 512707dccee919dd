"""
Unit tests for the motor-backed store and the connection manager.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from pymongo.errors import ServerSelectionTimeoutError

from inspi_db.database.mongodb import MongoDB
from inspi_db.database.store import MotorStore


@pytest.fixture
def motor_db():
    collection = MagicMock()
    db = MagicMock()
    db.__getitem__.return_value = collection
    db.command = AsyncMock()
    return db, collection


class TestMotorStore:

    @pytest.mark.asyncio
    async def test_run(self, motor_db):
        db, collection = motor_db
        cursor = MagicMock()
        cursor.to_list = AsyncMock(return_value=[{"_id": 1}])
        collection.aggregate.return_value = cursor

        result = await MotorStore(db).run("works", [{"$match": {}}], allowDiskUse=True)

        assert result == [{"_id": 1}]
        db.__getitem__.assert_called_with("works")
        collection.aggregate.assert_called_once_with([{"$match": {}}], allowDiskUse=True)
        cursor.to_list.assert_awaited_once_with(length=None)

    @pytest.mark.asyncio
    async def test_explain(self, motor_db):
        db, _ = motor_db
        db.command.return_value = {"ok": 1.0}

        result = await MotorStore(db).explain("works", [{"$match": {}}])

        assert result == {"ok": 1.0}
        db.command.assert_awaited_once_with("aggregate", "works", pipeline=[{"$match": {}}], explain=True)

    @pytest.mark.asyncio
    async def test_list_indexes(self, motor_db):
        db, collection = motor_db
        cursor = MagicMock()
        cursor.__aiter__.return_value = [{"name": "_id_"}, {"name": "works_tags"}]
        collection.list_indexes.return_value = cursor

        result = await MotorStore(db).list_indexes("works")

        assert [index["name"] for index in result] == ["_id_", "works_tags"]

    @pytest.mark.asyncio
    async def test_create_and_drop_index(self, motor_db):
        db, collection = motor_db
        collection.create_index = AsyncMock(return_value="works_tags")
        collection.drop_index = AsyncMock()
        store = MotorStore(db)

        name = await store.create_index("works", [("tags", 1)], name="works_tags", sparse=True)
        await store.drop_index("works", "works_tags")

        assert name == "works_tags"
        collection.create_index.assert_awaited_once_with([("tags", 1)], name="works_tags", sparse=True)
        collection.drop_index.assert_awaited_once_with("works_tags")

    @pytest.mark.asyncio
    async def test_index_stats_include_sizes(self, motor_db):
        db, collection = motor_db
        cursor = MagicMock()
        cursor.to_list = AsyncMock(return_value=[
            {"name": "_id_", "accesses": {"ops": 4}},
            {"name": "works_tags", "accesses": {"ops": 0}},
        ])
        collection.aggregate.return_value = cursor
        db.command.return_value = {"indexSizes": {"_id_": 4096, "works_tags": 2048}}

        stats = await MotorStore(db).index_stats("works")

        collection.aggregate.assert_called_once_with([{"$indexStats": {}}])
        db.command.assert_awaited_once_with("collStats", "works")
        assert all(stat["indexSizes"]["works_tags"] == 2048 for stat in stats)


class TestMongoDB:

    @pytest.mark.asyncio
    async def test_store_unavailable_before_connect(self):
        database = MongoDB()

        assert database.store is None
        assert database.is_connected is False
        health = await database.health_check()
        assert health["healthy"] is False

    @pytest.mark.asyncio
    async def test_connect_failure_returns_false(self):
        client = MagicMock()
        client.admin.command = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers"))

        with patch("inspi_db.database.mongodb.AsyncIOMotorClient", return_value=client):
            database = MongoDB()
            connected = await database.connect()

        assert connected is False
        assert database.is_connected is False

    @pytest.mark.asyncio
    async def test_connect_success(self):
        client = MagicMock()
        client.admin.command = AsyncMock(return_value={"ok": 1})

        with patch("inspi_db.database.mongodb.AsyncIOMotorClient", return_value=client):
            database = MongoDB()
            connected = await database.connect()

        assert connected is True
        assert isinstance(database.store, MotorStore)
