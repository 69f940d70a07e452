"""Opaque document IDs.

Internal primary keys are sequential integers and must never leave the
service. Every ID that crosses the API boundary is a salted Hashids string:
deterministic for a given salt, reversible only with that salt.
"""

from functools import lru_cache

from hashids import Hashids

from .config import settings
from ..exceptions import InvalidDocumentIDError


class IDCodec:
    """Encode internal integer IDs to external strings and back.

    Pure: the mapping depends only on the integer and the constructor
    arguments.
    """

    def __init__(self, salt: str, min_length: int = 8):
        self._hashids = Hashids(salt=salt, min_length=min_length)

    def encode(self, internal_id: int) -> str:
        """Encode a non-negative integer ID.

        Raises:
            ValueError: If *internal_id* is negative or not an integer.
        """
        if isinstance(internal_id, bool) or not isinstance(internal_id, int) or internal_id < 0:
            raise ValueError(f"Cannot encode document ID {internal_id!r}")
        return self._hashids.encode(internal_id)

    def decode(self, external_id: str) -> int:
        """Decode an external ID produced by :meth:`encode`.

        Hashids only accepts canonical strings: anything encoded under a
        different salt, containing foreign characters, or holding more than
        one number decodes to an empty tuple.

        Raises:
            InvalidDocumentIDError: If *external_id* is not a valid ID.
        """
        if not isinstance(external_id, str) or not external_id:
            raise InvalidDocumentIDError(str(external_id))
        try:
            numbers = self._hashids.decode(external_id)
        except (ValueError, IndexError, TypeError):
            raise InvalidDocumentIDError(external_id)
        if len(numbers) != 1:
            raise InvalidDocumentIDError(external_id)
        return numbers[0]

    def encode_optional(self, internal_id):
        """Encode an ID that may be ``None`` (e.g. a root document's parent)."""
        if internal_id is None:
            return None
        return self.encode(internal_id)


@lru_cache(maxsize=1)
def get_id_codec() -> IDCodec:
    """FastAPI dependency: the process-wide codec built from settings."""
    return IDCodec(salt=settings.hashid_salt, min_length=settings.hashid_min_length)
