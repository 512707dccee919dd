"""
Unit tests for JSON serialization of pipelines and documents.
"""

import json
from datetime import datetime, timezone
from bson import ObjectId
from bson.decimal128 import Decimal128

from inspi_db.models.pipeline import LimitStage, MatchStage
from inspi_db.utils.serialization import pipeline_to_json, serialize_for_json


def test_bson_values_converted():
    oid = ObjectId("507f1f77bcf86cd799439011")
    created = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    result = serialize_for_json({"_id": oid, "createdAt": created, "price": Decimal128("1.5"), "tags": ("a", "b")})

    assert result == {
        "_id": "507f1f77bcf86cd799439011",
        "createdAt": "2026-03-01T12:00:00+00:00",
        "price": 1.5,
        "tags": ["a", "b"]
    }


def test_pipeline_to_json_accepts_stage_models():
    pipeline = [MatchStage(filter={"authorId": ObjectId("507f1f77bcf86cd799439011")}), LimitStage(count=5)]

    assert json.loads(pipeline_to_json(pipeline)) == [
        {"$match": {"authorId": "507f1f77bcf86cd799439011"}},
        {"$limit": 5}
    ]
