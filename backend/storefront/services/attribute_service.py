"""
Attribute service: catalog/user attributes with translated labels.
"""
import logging
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from storefront.database.databases import shop_db
from storefront.core.translation import validate_translation
from storefront.events.bus import EventBus, Events
from storefront.hooks.pipeline import HookContext, HookPipeline, LifecycleHooks, Operation
from storefront.services.base import DocumentService

logger = logging.getLogger(__name__)

ATTRIBUTE_SCOPES = ("products", "users")
REQUIRED_FIELDS = ("code", "type", "param")

DEFAULTS = {
    "_type": "products",
    "set_attributes": [],
    "position": 1,
    "usedInRules": True,
    "usedInFilters": False,
}


def _is_locale_key(key: str) -> bool:
    return key.startswith("translation.") and key.count(".") == 1


class AttributeHooks(LifecycleHooks):
    """Defaults, required fields and translation checks for attributes."""

    def __init__(self, default_lang: str, attributes: Optional["AttributeService"] = None):
        self.default_lang = default_lang
        self.attributes = attributes

    def _check_document(self, doc: dict[str, Any]) -> list[str]:
        errors = [f"{key} manquant" for key in REQUIRED_FIELDS if not doc.get(key)]
        if doc.get("_type") not in ATTRIBUTE_SCOPES:
            errors.append(f"_type doit être parmi {', '.join(ATTRIBUTE_SCOPES)}")
        errors.extend(validate_translation(doc, self.default_lang))
        return errors

    async def before_create(self, ctx: HookContext) -> list[str]:
        for key, value in DEFAULTS.items():
            ctx.document.setdefault(key, list(value) if isinstance(value, list) else value)
        return self._check_document(ctx.document)

    async def before_update(self, ctx: HookContext) -> list[str]:
        if ctx.operation == Operation.REPLACE:
            return self._check_document(ctx.document)

        errors = await self._keep_translation(ctx)
        fields = ctx.set_fields
        if "_type" in fields and fields["_type"] not in ATTRIBUTE_SCOPES:
            errors.append(f"_type doit être parmi {', '.join(ATTRIBUTE_SCOPES)}")
        for key in REQUIRED_FIELDS:
            if key in fields and not fields[key]:
                errors.append(f"{key} manquant")
            if key in (ctx.patch.get("$unset") or {}):
                errors.append(f"{key} manquant")

        if "translation" in fields:
            errors.extend(validate_translation(fields, self.default_lang))
        for key, bag in fields.items():
            # Single-locale patches such as {"translation.fr": {...}}
            if _is_locale_key(key):
                lang = key.split(".", 1)[1]
                errors.extend(
                    validate_translation({"translation": {lang: bag}}, self.default_lang)
                )
        return errors

    async def _keep_translation(self, ctx: HookContext) -> list[str]:
        """
        Stop a patch from unsetting the translation map into nothing.

        Unsetting the whole map, or every stored locale, resets it to
        `{default_lang: {}}`. Unsetting a bag's `name` is rejected.
        """
        unset = ctx.patch.get("$unset") or {}
        errors = [
            "name manquant"
            for key in unset
            if key.startswith("translation.") and key.count(".") == 2 and key.endswith(".name")
        ]

        if "translation" in unset:
            del unset["translation"]
            if "translation" not in ctx.set_fields:
                ctx.set("translation", {self.default_lang: {}})
            return errors

        dropped = {key.split(".", 1)[1] for key in unset if _is_locale_key(key)}
        if not dropped or self.attributes is None or "translation" in ctx.set_fields:
            return errors

        stored = await self.attributes.find_one(ctx.filter)
        if stored is None:
            return errors
        added = {key.split(".", 1)[1] for key in ctx.set_fields if _is_locale_key(key)}
        if set(stored.get("translation") or {}) - dropped | added:
            return errors

        for lang in dropped:
            del unset[f"translation.{lang}"]
        ctx.set("translation", {self.default_lang: {}})
        return errors


class AttributeEventHooks(LifecycleHooks):
    """Publish attribute changes on the event bus."""

    def __init__(self, bus: EventBus):
        self.bus = bus

    async def after_update(self, ctx: HookContext) -> None:
        self.bus.emit(Events.ATTRIBUTE_UPDATED, ctx.document)

    async def after_delete(self, ctx: HookContext) -> None:
        self.bus.emit(Events.ATTRIBUTE_REMOVED, ctx.document)


class AttributeService(DocumentService):
    """Service for attribute documents."""

    collection_name = shop_db.Collections.ATTRIBUTES
    entity = "attribute"

    def __init__(self, db: AsyncIOMotorDatabase, hooks: Optional[HookPipeline] = None):
        super().__init__(db, hooks)

    async def get_by_code(self, code: str) -> Optional[dict[str, Any]]:
        return await self.collection.find_one({"code": code})

    async def list_attributes(self, scope: Optional[str] = None) -> list[dict[str, Any]]:
        """List attributes ordered by position, optionally for one scope."""
        query = {"_type": scope} if scope else {}
        cursor = self.collection.find(query).sort("position", 1)
        return await cursor.to_list(length=None)
