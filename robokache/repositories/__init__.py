"""Data access repositories."""

from .base import BaseRepository
from .document_repository import DocumentRepository

__all__ = [
    "BaseRepository",
    "DocumentRepository",
]
