"""Database models."""

from .document import Document, Visibility

__all__ = ["Document", "Visibility"]
