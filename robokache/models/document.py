"""Document model."""

from enum import IntEnum

from sqlalchemy import Column, Index, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from ..database import Base


class Visibility(IntEnum):
    """Ordered exposure levels, least to most visible."""

    INVISIBLE = 0
    PRIVATE = 1
    SHAREABLE = 2
    PUBLIC = 3

    @classmethod
    def parse(cls, value) -> "Visibility":
        """Accept a tier as its integer value or lower-case name.

        Raises:
            ValueError: For anything else.
        """
        if isinstance(value, bool):
            raise ValueError(f"Invalid visibility: {value!r}")
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Invalid visibility: {value!r}")
        return cls(value)


class Document(Base):
    """Documents table.

    ``id`` is an internal key and never leaves the service; the API
    works with its encoded form.
    """

    __tablename__ = "document"
    __table_args__ = (
        Index("ix_document_owner", "owner"),
        Index("ix_document_parent", "parent"),
        Index("ix_document_visibility", "visibility"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    # No foreign key: deleting a parent leaves its children in place.
    parent = Column(Integer, nullable=True)

    owner = Column(String(320), nullable=False)
    visibility = Column(Integer, nullable=False, default=int(Visibility.PRIVATE))

    # "metadata" is reserved on declarative classes.
    doc_metadata = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def tier(self) -> Visibility:
        return Visibility(self.visibility)
