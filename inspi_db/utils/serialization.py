"""
JSON serialization utilities for pipelines and MongoDB documents.

Handles conversion of:
- datetime → ISO 8601 string
- ObjectId → string
- Decimal128 → float
"""

import json
from datetime import datetime
from typing import Any, List
from bson import ObjectId
from bson.decimal128 import Decimal128
from pydantic import BaseModel


def serialize_for_json(obj: Any) -> Any:
    """
    Recursively serialize MongoDB documents (and stage models) for JSON.

    Args:
        obj: dict, list, stage model, datetime, ObjectId, Decimal128 or primitive

    Returns:
        JSON-serializable object

    Example:
        >>> doc = {"_id": ObjectId("507f1f77bcf86cd799439011"), "n": Decimal128("1.5")}
        >>> serialize_for_json(doc)
        {'_id': '507f1f77bcf86cd799439011', 'n': 1.5}
    """
    if isinstance(obj, datetime):
        return obj.isoformat()

    elif isinstance(obj, ObjectId):
        return str(obj)

    elif isinstance(obj, Decimal128):
        return float(obj.to_decimal())

    elif isinstance(obj, BaseModel) and hasattr(obj, "to_mongo"):
        return serialize_for_json(obj.to_mongo())

    elif isinstance(obj, dict):
        return {key: serialize_for_json(value) for key, value in obj.items()}

    elif isinstance(obj, (list, tuple)):
        return [serialize_for_json(item) for item in obj]

    else:
        return obj


def pipeline_to_json(pipeline: List[Any]) -> str:
    """Serialize a pipeline (typed stages or raw documents) to a JSON string for logs."""
    return json.dumps(serialize_for_json(list(pipeline)), default=str)
