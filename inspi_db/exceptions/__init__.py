"""
Custom exceptions for the Inspi database toolkit.
"""

from .database_exceptions import (
    DatabaseError,
    InvalidPipelineStageError,
    InvalidIndexDefinitionError,
    IndexDefinitionNotFoundError
)

__all__ = [
    "DatabaseError",
    "InvalidPipelineStageError",
    "InvalidIndexDefinitionError",
    "IndexDefinitionNotFoundError"
]
