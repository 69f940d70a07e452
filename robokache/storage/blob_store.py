"""Filesystem storage for document payloads.

Each document owns at most one opaque byte blob, stored as
``<root>/<internal id>``. Nothing here checks permissions; callers go through
the document service.
"""

import logging
import os
import tempfile
from functools import lru_cache

from ..core.config import settings
from ..exceptions import StorageError

logger = logging.getLogger(__name__)


class FilesystemBlobStore:
    """Byte payloads keyed by internal document ID."""

    def __init__(self, root: str):
        self.root = root
        os.makedirs(self.root, exist_ok=True)

    def _path(self, doc_id: int) -> str:
        return os.path.join(self.root, str(int(doc_id)))

    def read(self, doc_id: int) -> bytes:
        """Return the payload, or ``b""`` if none was ever written."""
        try:
            with open(self._path(doc_id), "rb") as f:
                return f.read()
        except FileNotFoundError:
            return b""
        except OSError as e:
            raise StorageError("Failed to read document data", e) from e

    def write(self, doc_id: int, data: bytes) -> None:
        """Replace the payload.

        Writes to a temporary file in the same directory and renames it, so
        a concurrent reader sees either the old or the new payload.
        """
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.root, prefix=".upload-")
        except OSError as e:
            raise StorageError("Failed to write document data", e) from e
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, self._path(doc_id))
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise StorageError("Failed to write document data", e) from e
        logger.debug("Stored document data", extra={"bytes": len(data)})

    def delete(self, doc_id: int) -> None:
        """Remove the payload. Missing payloads are not an error."""
        try:
            os.remove(self._path(doc_id))
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError("Failed to delete document data", e) from e


@lru_cache(maxsize=1)
def get_blob_store() -> FilesystemBlobStore:
    """FastAPI dependency: blob store rooted at ``DATA_DIR/files``."""
    return FilesystemBlobStore(os.path.join(settings.data_dir, "files"))
