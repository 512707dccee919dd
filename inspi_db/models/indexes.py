"""
Pydantic models for index definitions, usage statistics and reports.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pymongo import ASCENDING, DESCENDING, GEOSPHERE, HASHED, TEXT

from inspi_db.exceptions import InvalidIndexDefinitionError


IndexKeyDirection = Union[Literal[1, -1], Literal["text", "2dsphere", "hashed"]]

_KEY_TYPES = {
    1: ASCENDING,
    -1: DESCENDING,
    "text": TEXT,
    "2dsphere": GEOSPHERE,
    "hashed": HASHED,
}


class IndexType(str, Enum):
    """Index type tag."""
    SINGLE = "single"
    COMPOUND = "compound"
    TEXT = "text"
    GEOSPATIAL = "2dsphere"
    HASHED = "hashed"
    PARTIAL = "partial"
    SPARSE = "sparse"
    TTL = "ttl"


class IndexOptions(BaseModel):
    """Options passed to createIndex alongside the key pattern."""
    model_config = ConfigDict(extra="forbid")

    unique: Optional[bool] = None
    sparse: Optional[bool] = None
    partial_filter_expression: Optional[Dict[str, Any]] = None
    expire_after_seconds: Optional[int] = Field(None, ge=0)
    text_index_version: Optional[int] = None
    weights: Optional[Dict[str, int]] = None
    default_language: Optional[str] = None
    language_override: Optional[str] = None

    def to_mongo(self) -> Dict[str, Any]:
        """Driver keyword arguments, omitting unset options."""
        names = {
            "unique": "unique",
            "sparse": "sparse",
            "partial_filter_expression": "partialFilterExpression",
            "expire_after_seconds": "expireAfterSeconds",
            "text_index_version": "textIndexVersion",
            "weights": "weights",
            "default_language": "default_language",
            "language_override": "language_override",
        }
        return {
            names[key]: value
            for key, value in self.model_dump(exclude_none=True).items()
        }


class IndexDefinition(BaseModel):
    """
    Declarative definition of a secondary index.

    The type tag must agree with the key pattern and the options actually
    set: a TTL index needs ``expire_after_seconds``, a partial index needs a
    ``partial_filter_expression``, and so on.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    collection: str = Field(min_length=1)
    fields: Dict[str, IndexKeyDirection] = Field(min_length=1)
    type: IndexType
    options: IndexOptions = Field(default_factory=IndexOptions)
    description: str = ""
    estimated_size: str = ""
    usage: Literal["high", "medium", "low"] = "medium"

    @model_validator(mode="after")
    def validate_type_consistency(self):
        """Ensure the type tag is consistent with fields and options."""
        key_types = list(self.fields.values())

        if self.type == IndexType.TTL:
            if self.options.expire_after_seconds is None:
                raise ValueError(f"TTL index '{self.name}' requires expire_after_seconds")
            if len(self.fields) != 1:
                raise ValueError(f"TTL index '{self.name}' must have exactly one field")
        elif self.options.expire_after_seconds is not None:
            raise ValueError(f"Index '{self.name}' sets expire_after_seconds but is not a TTL index")

        if self.type == IndexType.PARTIAL and not self.options.partial_filter_expression:
            raise ValueError(f"Partial index '{self.name}' requires partial_filter_expression")
        if self.type == IndexType.SPARSE and not self.options.sparse:
            raise ValueError(f"Sparse index '{self.name}' requires sparse=True")
        if self.type == IndexType.TEXT and "text" not in key_types:
            raise ValueError(f"Text index '{self.name}' requires at least one text field")
        if self.type == IndexType.GEOSPATIAL and "2dsphere" not in key_types:
            raise ValueError(f"Geospatial index '{self.name}' requires a 2dsphere field")
        if self.type == IndexType.HASHED and "hashed" not in key_types:
            raise ValueError(f"Hashed index '{self.name}' requires a hashed field")
        if self.type == IndexType.SINGLE and len(self.fields) != 1:
            raise ValueError(f"Single-field index '{self.name}' must have exactly one field")
        if self.type == IndexType.COMPOUND and len(self.fields) < 2:
            raise ValueError(f"Compound index '{self.name}' needs at least two fields")
        if self.options.weights and self.type != IndexType.TEXT:
            raise ValueError(f"Index '{self.name}' sets text weights but is not a text index")
        return self

    def keys(self) -> List[Tuple[str, Any]]:
        """Key pattern in pymongo's list-of-pairs form."""
        return [(field, _KEY_TYPES[direction]) for field, direction in self.fields.items()]

    def create_options(self) -> Dict[str, Any]:
        """Keyword arguments for ``create_index``, including the name."""
        return {"name": self.name, **self.options.to_mongo()}


def parse_index_definition(data: Any) -> IndexDefinition:
    """
    Build an IndexDefinition from a plain mapping.

    Raises:
        InvalidIndexDefinitionError: If the data does not describe a consistent index
    """
    if isinstance(data, IndexDefinition):
        return data
    try:
        return IndexDefinition.model_validate(data)
    except ValidationError as e:
        raise InvalidIndexDefinitionError(f"Invalid index definition: {e}", original_error=e) from e


class IndexUsageStat(BaseModel):
    """Usage statistics for one index, derived from $indexStats."""
    name: str
    collection: str
    size: int = 0
    usage_count: int = 0
    last_used: Optional[datetime] = None
    efficiency: float = Field(ge=0, le=100)
    recommendation: Literal["keep", "optimize", "remove"]


class IndexCreationResult(BaseModel):
    """Outcome counters of a catalog-wide index creation pass."""
    created: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.created + self.skipped + self.failed


class IndexValidationReport(BaseModel):
    """Differences between the catalog and the indexes present in the store."""
    valid: bool
    missing: List[IndexDefinition] = Field(default_factory=list)
    extra: List[str] = Field(default_factory=list)
    failed_collections: List[str] = Field(default_factory=list)


class IndexUsageAnalysis(BaseModel):
    """Aggregated usage analysis across the catalog collections."""
    total_indexes: int
    total_size: int = 0
    unused_indexes: List[IndexUsageStat] = Field(default_factory=list)
    inefficient_indexes: List[IndexUsageStat] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
