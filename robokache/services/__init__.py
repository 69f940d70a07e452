"""Business logic services."""

from .document_service import DocumentService
from . import policy

__all__ = ["DocumentService", "policy"]
