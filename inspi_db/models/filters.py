"""
Typed filter expressions for $match stages.

A filter is one of a small set of variants that compile to a MongoDB
query document. ``Raw`` carries any store-specific operator that is not
modelled here.
"""

from typing import Annotated, Any, Dict, List, Literal, Union
from pydantic import BaseModel, Field


ComparisonOperator = Literal["eq", "ne", "gt", "gte", "lt", "lte", "in", "nin", "regex"]


class FieldCondition(BaseModel):
    """Comparison of a single field against a value."""
    kind: Literal["field"] = "field"
    field: str = Field(min_length=1)
    op: ComparisonOperator = "eq"
    value: Any = None

    def operator_document(self) -> Dict[str, Any]:
        return {f"${self.op}": self.value}

    def to_mongo(self) -> Dict[str, Any]:
        if self.op == "eq":
            return {self.field: self.value}
        return {self.field: self.operator_document()}


class Exists(BaseModel):
    """Field presence test."""
    kind: Literal["exists"] = "exists"
    field: str = Field(min_length=1)
    exists: bool = True

    def to_mongo(self) -> Dict[str, Any]:
        return {self.field: {"$exists": self.exists}}


class Not(BaseModel):
    """Negation of a single field condition."""
    kind: Literal["not"] = "not"
    condition: FieldCondition

    def to_mongo(self) -> Dict[str, Any]:
        return {self.condition.field: {"$not": self.condition.operator_document()}}


class Raw(BaseModel):
    """Escape hatch: a query document passed through as-is."""
    kind: Literal["raw"] = "raw"
    document: Dict[str, Any]

    def to_mongo(self) -> Dict[str, Any]:
        return dict(self.document)


class And(BaseModel):
    """Conjunction of filter expressions."""
    kind: Literal["and"] = "and"
    items: List["FilterExpression"]

    def to_mongo(self) -> Dict[str, Any]:
        documents = [item.to_mongo() for item in self.items]
        merged: Dict[str, Any] = {}
        for document in documents:
            if any(key in merged for key in document):
                # Two children constrain the same key; keep both explicitly
                return {"$and": documents}
            merged.update(document)
        return merged


class Or(BaseModel):
    """Disjunction of filter expressions."""
    kind: Literal["or"] = "or"
    items: List["FilterExpression"] = Field(min_length=1)

    def to_mongo(self) -> Dict[str, Any]:
        return {"$or": [item.to_mongo() for item in self.items]}


FilterExpression = Annotated[
    Union[FieldCondition, Exists, Not, Raw, And, Or],
    Field(discriminator="kind"),
]

And.model_rebuild()
Or.model_rebuild()


def compile_filter(expression: Union[Dict[str, Any], BaseModel]) -> Dict[str, Any]:
    """
    Compile a filter expression (or a plain query mapping) to a query document.

    Args:
        expression: A filter expression model or a mapping already in MongoDB form

    Returns:
        dict: A new query document
    """
    if isinstance(expression, BaseModel):
        return expression.to_mongo()
    return dict(expression)
