"""Document schemas.

Every ID in these schemas is an external (encoded) ID. The owner never
appears in a response; callers only learn whether *they* own a document.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Any, Dict, Optional

from ..models.document import Visibility


def _parse_visibility(v):
    if v is None:
        return v
    return Visibility.parse(v)


class DocumentCreate(BaseModel):
    """Schema for creating a document.

    ``visibility`` defaults to the parent's visibility, or ``shareable`` for
    a root document.
    """
    parent: Optional[str] = None
    visibility: Optional[Visibility] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("visibility", mode="before")
    @classmethod
    def parse_visibility(cls, v):
        return _parse_visibility(v)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "parent": "gY6Nm1kQ",
                    "visibility": 2,
                    "metadata": {"questionName": "My cool question", "hasAnswers": True},
                }
            ]
        }
    }


class DocumentUpdate(BaseModel):
    """Schema for updating a document.

    Omitted fields keep their current value. ``"parent": null`` sent
    explicitly detaches the document and makes it a root.
    """
    parent: Optional[str] = None
    visibility: Optional[Visibility] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("visibility", mode="before")
    @classmethod
    def parse_visibility(cls, v):
        return _parse_visibility(v)

    @property
    def detaches_parent(self) -> bool:
        return "parent" in self.model_fields_set and self.parent is None


class DocumentResponse(BaseModel):
    """Schema for document response.

    ``owned`` is only set when the caller is authenticated; routes serialize
    with ``response_model_exclude_unset`` so anonymous callers never see it.
    """
    id: str
    parent: Optional[str] = None
    visibility: Visibility
    metadata: Dict[str, Any] = {}
    created_at: Optional[datetime] = None
    owned: Optional[bool] = None


class DocumentCreated(BaseModel):
    """ID of a newly created document."""
    id: str
