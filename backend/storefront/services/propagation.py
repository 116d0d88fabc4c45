"""
Denormalization propagator: keeps attribute copies inside categories in sync.

Runs as after-update / after-delete hooks of the attribute pipeline, once
the attribute write has committed. A failure leaves categories stale until
the next successful write of the same attribute or a `resync()`.
"""
import logging
from typing import Any, Optional, Protocol

from storefront.core.errors import PropagationError
from storefront.hooks.pipeline import HookContext, LifecycleHooks
from storefront.services.base import to_object_id

logger = logging.getLogger(__name__)


class AttributeReader(Protocol):
    async def find_one(self, query: dict[str, Any]) -> Optional[dict[str, Any]]: ...


class CategoryRepository(Protocol):
    async def sync_attribute_filter(self, attribute: dict[str, Any]) -> int: ...

    async def pull_attribute_filter(self, attribute_id: Any) -> int: ...


class AttributePropagator(LifecycleHooks):
    """Propagate attribute updates and deletions into category filters."""

    def __init__(self, attributes: AttributeReader, categories: CategoryRepository):
        self.attributes = attributes
        self.categories = categories

    async def after_update(self, ctx: HookContext) -> None:
        # Re-read the committed state rather than trusting the patch
        if ctx.document is not None and "_id" in ctx.document:
            query = {"_id": ctx.document["_id"]}
        else:
            query = ctx.filter
        attribute = await self.attributes.find_one(query)
        if attribute is None:
            return
        await self._sync(attribute)

    async def after_delete(self, ctx: HookContext) -> None:
        await self._pull(ctx.document["_id"])

    async def resync(self, attribute_id: Any) -> int:
        """
        Bring every category back in line with one attribute.

        Safe to run any number of times: refs are updated when the attribute
        exists and removed when it does not.

        Returns:
            Number of categories modified
        """
        attribute_id = to_object_id(attribute_id)
        attribute = await self.attributes.find_one({"_id": attribute_id})
        if attribute is None:
            return await self._pull(attribute_id)
        return await self._sync(attribute)

    async def _sync(self, attribute: dict[str, Any]) -> int:
        try:
            modified = await self.categories.sync_attribute_filter(attribute)
        except Exception as e:
            raise PropagationError(
                f"Failed to sync attribute {attribute['_id']} into categories: {e}"
            ) from e
        logger.info("Attribute %s synced into %d categories", attribute["_id"], modified)
        return modified

    async def _pull(self, attribute_id: Any) -> int:
        try:
            modified = await self.categories.pull_attribute_filter(attribute_id)
        except Exception as e:
            raise PropagationError(
                f"Failed to remove attribute {attribute_id} from categories: {e}"
            ) from e
        logger.info("Attribute %s removed from %d categories", attribute_id, modified)
        return modified
