"""
Helpers shared by response schemas.
"""
from typing import Any

from bson import ObjectId


def serialize_document(value: Any) -> Any:
    """Recursively turn ObjectIds into strings so documents are JSON-ready."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: serialize_document(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize_document(v) for v in value]
    return value
