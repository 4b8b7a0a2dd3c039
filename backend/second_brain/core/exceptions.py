"""
Domain exceptions.

Every failure the indexing pipeline can surface is one of these kinds.
The HTTP layer (see ``second_brain.main``) maps each class to a status
code. Only ValidationError text reaches the caller; for the other kinds
the response carries ``public_message`` and the exception text is logged.

Hierarchy:
----------
SecondBrainError
├── ValidationError    - malformed / out-of-range input (caller's fault)
├── NotFoundError      - entity absent or not owned by the caller
├── StoreError         - relational store unavailable or constraint violated
├── EmbeddingError     - embedding service unavailable or malformed vector
└── VectorIndexError   - vector index service unavailable
"""

from typing import Any


class SecondBrainError(Exception):
    """Base class for all domain errors."""

    code = "internal_error"
    public_message = "An unexpected error occurred."

    def __init__(self, message: str = "", details: Any = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message
        self.details = details


class ValidationError(SecondBrainError):
    code = "validation_error"
    public_message = "Invalid input."


class NotFoundError(SecondBrainError):
    code = "not_found"
    public_message = "Content not found or access denied."


class StoreError(SecondBrainError):
    code = "store_error"
    public_message = "The content store is currently unavailable."


class EmbeddingError(SecondBrainError):
    code = "embedding_error"
    public_message = "The embedding service is currently unavailable."


class VectorIndexError(SecondBrainError):
    code = "vector_index_error"
    public_message = "The search index is currently unavailable."
