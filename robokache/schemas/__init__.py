"""Pydantic schemas for API requests and responses."""

from .document import (
    DocumentCreate,
    DocumentUpdate,
    DocumentResponse,
    DocumentCreated,
)

__all__ = [
    "DocumentCreate",
    "DocumentUpdate",
    "DocumentResponse",
    "DocumentCreated",
]
