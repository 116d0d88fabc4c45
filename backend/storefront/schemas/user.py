"""
User request/response schemas.
"""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from storefront.schemas.common import serialize_document


class UserAttributeRef(BaseModel):
    """Attribute value attached to a user."""
    id: str
    code: Optional[str] = None
    values: Optional[str] = None
    param: Optional[str] = None
    type: str = "unset"
    position: int = 1


class UserCreate(BaseModel):
    """
    User creation body.

    Email and password rules are enforced by the user hooks so that API and
    internal callers get the same errors. A missing password is generated.
    """
    email: str
    password: Optional[str] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    phone: Optional[str] = None
    preferredLanguage: Optional[str] = None
    attributes: list[UserAttributeRef] = Field(default_factory=list)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class UserUpdate(BaseModel):
    """Partial user update."""
    email: Optional[str] = None
    password: Optional[str] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    phone: Optional[str] = None
    preferredLanguage: Optional[str] = None
    attributes: Optional[list[UserAttributeRef]] = None

    def to_patch(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class UserResponse(BaseModel):
    """User as returned by the API. Never carries the password hash."""
    id: str
    email: str
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    phone: Optional[str] = None
    preferredLanguage: Optional[str] = None
    isAdmin: bool = False
    creationDate: Optional[datetime] = None
    attributes: list[UserAttributeRef] = Field(default_factory=list)

    @property
    def fullname(self) -> str:
        return f"{self.firstname or ''} {self.lastname or ''}"

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "UserResponse":
        doc = serialize_document(doc)
        return cls(
            id=doc["_id"],
            email=doc["email"],
            firstname=doc.get("firstname"),
            lastname=doc.get("lastname"),
            phone=doc.get("phone"),
            preferredLanguage=doc.get("preferredLanguage"),
            isAdmin=doc.get("isAdmin", False),
            creationDate=doc.get("creationDate"),
            attributes=[UserAttributeRef(**ref) for ref in doc.get("attributes", [])],
        )
