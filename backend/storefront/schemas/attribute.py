"""
Attribute request/response schemas.
"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from storefront.schemas.common import serialize_document


class AttributeScope(str, Enum):
    """What an attribute describes."""
    PRODUCTS = "products"
    USERS = "users"


class AttributeCreate(BaseModel):
    """Attribute creation body. Translation is checked by the service hooks."""
    code: str = Field(..., min_length=1, description="Unique attribute code")
    type: str = Field(..., min_length=1, description="Input type (textfield, color, ...)")
    scope: AttributeScope = Field(default=AttributeScope.PRODUCTS, alias="_type")
    param: str = Field(..., min_length=1)
    set_attributes: list[str] = Field(default_factory=list)
    position: int = Field(default=1)
    default_value: Any = None
    usedInRules: bool = True
    usedInFilters: bool = False
    translation: dict[str, dict[str, Any]] = Field(default_factory=dict)

    model_config = {"populate_by_name": True, "use_enum_values": True}

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class AttributeUpdate(BaseModel):
    """Partial attribute update. Unset fields are left untouched."""
    type: Optional[str] = None
    param: Optional[str] = None
    position: Optional[int] = None
    default_value: Any = None
    usedInRules: Optional[bool] = None
    usedInFilters: Optional[bool] = None
    translation: Optional[dict[str, dict[str, Any]]] = None

    def to_patch(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class AttributeResponse(BaseModel):
    """Attribute as returned by the API."""
    id: str
    code: str
    type: str
    scope: str = Field(..., serialization_alias="_type")
    param: str
    position: int = 1
    default_value: Any = None
    usedInRules: bool = True
    usedInFilters: bool = False
    translation: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "AttributeResponse":
        doc = serialize_document(doc)
        return cls(
            id=doc["_id"],
            code=doc["code"],
            type=doc["type"],
            scope=doc.get("_type", AttributeScope.PRODUCTS.value),
            param=doc["param"],
            position=doc.get("position", 1),
            default_value=doc.get("default_value"),
            usedInRules=doc.get("usedInRules", True),
            usedInFilters=doc.get("usedInFilters", False),
            translation=doc.get("translation", {}),
        )
