"""
Category service and the embedded attribute filter references it stores.

`filters.attributes` holds denormalized copies of attributes:
`{id, code, param, position, type, translation}`. code and param are fixed
when the ref is appended; the others follow the attribute.
"""
import logging
from collections import Counter
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from storefront.core.translation import CustomField, validate_translation
from storefront.database.databases import shop_db
from storefront.hooks.pipeline import HookContext, HookPipeline, LifecycleHooks, Operation
from storefront.services.base import DocumentService, WriteResult, to_object_id

logger = logging.getLogger(__name__)

FILTERS_PATH = "filters.attributes"
SYNCED_FIELDS = ("position", "type", "translation")
CATEGORY_TRANSLATION_FIELDS = (CustomField("name"),)


def attribute_filter_ref(attribute: dict[str, Any]) -> dict[str, Any]:
    """Build the embedded copy of an attribute."""
    return {
        "id": attribute["_id"],
        "code": attribute.get("code"),
        "param": attribute.get("param"),
        "position": attribute.get("position", 1),
        "type": attribute.get("type"),
        "translation": attribute.get("translation", {}),
    }


def duplicate_filter_ids(refs: Any) -> list[Any]:
    """Attribute ids referenced more than once in a filter list."""
    if not isinstance(refs, list):
        return []
    counts = Counter(str(ref.get("id")) for ref in refs if isinstance(ref, dict))
    return [ref_id for ref_id, n in counts.items() if n > 1]


class CategoryHooks(LifecycleHooks):
    """Translation checks and one filter ref per attribute."""

    def __init__(self, default_lang: str):
        self.default_lang = default_lang

    def _check_filters(self, refs: Any) -> list[str]:
        return [
            f"{FILTERS_PATH}: attribut {ref_id} en double"
            for ref_id in duplicate_filter_ids(refs)
        ]

    def _check_document(self, doc: dict[str, Any]) -> list[str]:
        errors = validate_translation(doc, self.default_lang, CATEGORY_TRANSLATION_FIELDS)
        errors.extend(self._check_filters((doc.get("filters") or {}).get("attributes")))
        return errors

    async def before_create(self, ctx: HookContext) -> list[str]:
        ctx.document.setdefault("filters", {}).setdefault("attributes", [])
        return self._check_document(ctx.document)

    async def before_update(self, ctx: HookContext) -> list[str]:
        if ctx.operation == Operation.REPLACE:
            return self._check_document(ctx.document)

        fields = ctx.set_fields
        errors = []
        if "translation" in fields:
            errors.extend(
                validate_translation(fields, self.default_lang, CATEGORY_TRANSLATION_FIELDS)
            )
        if FILTERS_PATH in fields:
            errors.extend(self._check_filters(fields[FILTERS_PATH]))
        if "filters" in fields:
            errors.extend(self._check_filters((fields["filters"] or {}).get("attributes")))
        return errors


class CategoryService(DocumentService):
    """Service for category documents."""

    collection_name = shop_db.Collections.CATEGORIES
    entity = "category"

    def __init__(self, db: AsyncIOMotorDatabase, hooks: Optional[HookPipeline] = None):
        super().__init__(db, hooks)

    # ==================== Filter refs ====================

    async def add_attribute_filter(
        self, category_id: Any, attribute: dict[str, Any]
    ) -> WriteResult:
        """
        Append an attribute filter ref unless the category already has one.

        `matched` is False when the category is missing or already
        references the attribute.
        """
        return await self.update_one(
            {
                "_id": to_object_id(category_id),
                f"{FILTERS_PATH}.id": {"$ne": attribute["_id"]},
            },
            {"$push": {FILTERS_PATH: attribute_filter_ref(attribute)}},
        )

    async def remove_attribute_filter(self, category_id: Any, attribute_id: Any) -> WriteResult:
        return await self.update_one(
            {"_id": to_object_id(category_id)},
            {"$pull": {FILTERS_PATH: {"id": to_object_id(attribute_id)}}},
        )

    async def find_by_attribute(self, attribute_id: Any) -> list[dict[str, Any]]:
        return await self.find({f"{FILTERS_PATH}.id": to_object_id(attribute_id)})

    async def sync_attribute_filter(self, attribute: dict[str, Any]) -> int:
        """
        Copy position/type/translation of `attribute` into the matching ref
        of every category holding it.

        The positional operator updates the first matching element of each
        category; categories keep at most one ref per attribute.

        Returns:
            Number of categories modified
        """
        result = await self.collection.update_many(
            {f"{FILTERS_PATH}.id": attribute["_id"]},
            {"$set": {
                f"{FILTERS_PATH}.$.{key}": attribute.get(key) for key in SYNCED_FIELDS
            }},
        )
        return result.modified_count

    async def pull_attribute_filter(self, attribute_id: Any) -> int:
        """
        Remove every ref to `attribute_id` from every category.

        Returns:
            Number of categories modified
        """
        attribute_id = to_object_id(attribute_id)
        result = await self.collection.update_many(
            {f"{FILTERS_PATH}.id": attribute_id},
            {"$pull": {FILTERS_PATH: {"id": attribute_id}}},
        )
        return result.modified_count
