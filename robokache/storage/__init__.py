"""Payload storage."""

from .blob_store import FilesystemBlobStore, get_blob_store

__all__ = ["FilesystemBlobStore", "get_blob_store"]
