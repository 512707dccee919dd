"""
Database toolkit specific exceptions.
"""

from typing import Optional


class DatabaseError(Exception):
    """Base class for errors raised by the database toolkit."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)


class InvalidPipelineStageError(DatabaseError):
    """Raised when a raw stage document cannot be mapped to a known stage."""

    def __init__(self, message: str = "Invalid aggregation pipeline stage", original_error: Optional[Exception] = None):
        super().__init__(message, original_error)


class InvalidIndexDefinitionError(DatabaseError):
    """Raised when an index definition's type tag disagrees with its options."""

    def __init__(self, message: str = "Invalid index definition", original_error: Optional[Exception] = None):
        super().__init__(message, original_error)


class IndexDefinitionNotFoundError(DatabaseError):
    """Raised when no catalog entry exists for a collection/index name pair."""

    def __init__(self, collection: str, index_name: str):
        self.collection = collection
        self.index_name = index_name
        super().__init__(f"Index definition not found: {collection}.{index_name}")
