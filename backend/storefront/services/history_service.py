"""
Order and bill services.

Both hold a back-reference to the customer. When the customer is deleted
the reference is cleared; the documents themselves are kept.
"""
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from storefront.database.databases import shop_db
from storefront.hooks.pipeline import HookPipeline
from storefront.services.base import DocumentService, WriteResult, to_object_id


def get_path(document: dict[str, Any], path: str) -> Any:
    """Value at a dotted path, or None when any part is missing."""
    node: Any = document
    for key in path.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


class ReferencingService(DocumentService):
    """A collection whose documents point at a user through `reference_field`."""

    reference_field: str = ""

    def __init__(self, db: AsyncIOMotorDatabase, hooks: Optional[HookPipeline] = None):
        super().__init__(db, hooks)

    async def find_referencing(self, target_id: Any) -> list[dict[str, Any]]:
        return await self.find({self.reference_field: to_object_id(target_id)})

    async def clear_reference(self, document: dict[str, Any]) -> WriteResult:
        """
        Unset the back-reference through this service's update hooks.

        Only matches while the document still exists and still points at the
        same user, so a dependent deleted or reassigned in the meantime is
        left alone (`matched` is False). Never inserts.
        """
        query = {"_id": document["_id"]}
        current = get_path(document, self.reference_field)
        if current is not None:
            query[self.reference_field] = current
        return await self.update_one(query, {"$unset": {self.reference_field: ""}})


class OrderService(ReferencingService):
    """Service for order documents (`customer.id` -> user)."""

    collection_name = shop_db.Collections.ORDERS
    entity = "order"
    reference_field = "customer.id"


class BillService(ReferencingService):
    """Service for bill documents (`client` -> user)."""

    collection_name = shop_db.Collections.BILLS
    entity = "bill"
    reference_field = "client"
