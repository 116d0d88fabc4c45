"""
Category request/response schemas.
"""
from typing import Any

from pydantic import BaseModel, Field

from storefront.schemas.common import serialize_document


class CategoryCreate(BaseModel):
    """Category creation body."""
    code: str = Field(..., min_length=1)
    active: bool = True
    translation: dict[str, dict[str, Any]] = Field(default_factory=dict)


class AttributeFilterAdd(BaseModel):
    """Reference an attribute as a filter of a category."""
    attribute_id: str


class AttributeFilterRef(BaseModel):
    """Embedded copy of an attribute inside a category."""
    id: str
    code: str | None = None
    param: str | None = None
    position: int = 1
    type: str | None = None
    translation: dict[str, Any] = Field(default_factory=dict)


class CategoryResponse(BaseModel):
    """Category as returned by the API."""
    id: str
    code: str | None = None
    active: bool = True
    translation: dict[str, Any] = Field(default_factory=dict)
    attribute_filters: list[AttributeFilterRef] = Field(default_factory=list)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "CategoryResponse":
        doc = serialize_document(doc)
        refs = (doc.get("filters") or {}).get("attributes") or []
        return cls(
            id=doc["_id"],
            code=doc.get("code"),
            active=doc.get("active", True),
            translation=doc.get("translation", {}),
            attribute_filters=[AttributeFilterRef(**ref) for ref in refs],
        )
