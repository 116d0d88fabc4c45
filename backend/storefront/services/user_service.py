"""
User service: customer accounts, credentials and account lifecycle events.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from storefront.core.security import generate_password, hash_password, validate_password
from storefront.database.databases import shop_db
from storefront.events.bus import EventBus, Events
from storefront.hooks.pipeline import HookContext, HookPipeline, LifecycleHooks, Operation
from storefront.services.base import DocumentService, to_object_id

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(
    r'^(([^<>()\[\].,;:\s@"]+(\.[^<>()\[\].,;:\s@"]+)*)|(".+"))'
    r'@(([^<>()\[\].,;:\s@"]+\.)+[^<>()\[\].,;:\s@"]{2,})$',
    re.IGNORECASE,
)

BAD_EMAIL_FORMAT = "BAD_EMAIL_FORMAT"
EMAIL_ALREADY_EXISTS = "EMAIL_ALREADY_EXISTS"
FORMAT_PASSWORD = "FORMAT_PASSWORD"
PASSWORD_REQUIRED = "PASSWORD_REQUIRED"

DEFAULTS = {
    "isAdmin": False,
    "isActiveAccount": False,
    "taxDisplay": True,
    "migrated": False,
    "delivery_address": -1,
    "billing_address": -1,
}


def public_user(document: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """Copy of a user document without its password hash."""
    if document is None:
        return None
    return {k: v for k, v in document.items() if k != "password"}


def email_query(email: str) -> dict[str, Any]:
    """Case-insensitive exact match on email."""
    return {"email": {"$regex": f"^{re.escape(email)}$", "$options": "i"}}


def document_changes(previous: dict[str, Any], current: dict[str, Any]) -> dict[str, Any]:
    """Update document describing how `previous` became `current`."""
    changed = {k: v for k, v in current.items() if previous.get(k) != v}
    removed = {k: "" for k in previous if k not in current}
    diff: dict[str, Any] = {}
    if changed:
        diff["$set"] = changed
    if removed:
        diff["$unset"] = removed
    return diff


class UserProfileHooks(LifecycleHooks):
    """Email format/uniqueness, defaults and embedded attribute refs."""

    def __init__(self, users: "UserService"):
        self.users = users

    async def _check_email(self, email: Any, own_id: Any = None) -> list[str]:
        if not isinstance(email, str) or not EMAIL_PATTERN.match(email):
            return [BAD_EMAIL_FORMAT]
        existing = await self.users.find_one(email_query(email))
        if existing is not None and existing["_id"] != own_id:
            return [EMAIL_ALREADY_EXISTS]
        return []

    @staticmethod
    def _normalize_attributes(refs: Any) -> None:
        if not isinstance(refs, list):
            return
        for ref in refs:
            if isinstance(ref, dict):
                if "id" in ref:
                    ref["id"] = to_object_id(ref["id"])
                ref.setdefault("type", "unset")
                ref.setdefault("position", 1)

    async def before_create(self, ctx: HookContext) -> list[str]:
        doc = ctx.document
        for key, value in DEFAULTS.items():
            doc.setdefault(key, value)
        doc.setdefault("creationDate", datetime.now(timezone.utc))
        doc.setdefault("addresses", [])
        doc.setdefault("attributes", [])
        self._normalize_attributes(doc["attributes"])
        return await self._check_email(doc.get("email"))

    async def before_update(self, ctx: HookContext) -> list[str]:
        fields = ctx.set_fields
        if "attributes" in fields:
            self._normalize_attributes(fields["attributes"])

        if ctx.operation == Operation.REPLACE:
            if ctx.document.get("email") == ctx.previous.get("email"):
                return []
            return await self._check_email(ctx.document.get("email"), ctx.document["_id"])

        if "email" in (ctx.patch.get("$unset") or {}):
            return [BAD_EMAIL_FORMAT]
        if "email" not in fields:
            return []
        target = await self.users.find_one(ctx.filter)
        return await self._check_email(fields["email"], target and target["_id"])


class CredentialHooks(LifecycleHooks):
    """
    Password rules and hashing.

    The plain password is validated with the other before hooks; it is
    hashed in `on_validated`, i.e. only once every check passed.
    """

    async def before_create(self, ctx: HookContext) -> list[str]:
        if not ctx.document.get("password"):
            ctx.document["password"] = generate_password()
        if not validate_password(ctx.document["password"]):
            return [FORMAT_PASSWORD]
        return []

    async def before_update(self, ctx: HookContext) -> list[str]:
        if ctx.operation == Operation.REPLACE:
            if not ctx.document.get("password"):
                return [PASSWORD_REQUIRED]
            if self._changed(ctx) and not validate_password(ctx.document["password"]):
                return [FORMAT_PASSWORD]
            return []

        if "password" in (ctx.patch.get("$unset") or {}):
            return [PASSWORD_REQUIRED]
        if "password" in ctx.set_fields and not validate_password(ctx.set_fields["password"]):
            return [FORMAT_PASSWORD]
        return []

    @staticmethod
    def _changed(ctx: HookContext) -> bool:
        if ctx.operation == Operation.CREATE:
            return True
        if ctx.operation == Operation.REPLACE:
            return ctx.document.get("password") != ctx.previous.get("password")
        return "password" in ctx.set_fields

    async def on_validated(self, ctx: HookContext) -> None:
        if not self._changed(ctx):
            return
        if ctx.operation == Operation.UPDATE:
            ctx.set("password", hash_password(ctx.set_fields["password"]))
        else:
            ctx.document["password"] = hash_password(ctx.document["password"])


class UserEventHooks(LifecycleHooks):
    """Publish account lifecycle events. Password hashes are never published."""

    def __init__(self, bus: EventBus):
        self.bus = bus

    async def after_create(self, ctx: HookContext) -> None:
        self.bus.emit(Events.USER_CREATED, public_user(ctx.document))

    async def after_update(self, ctx: HookContext) -> None:
        if ctx.operation == Operation.REPLACE:
            diff = document_changes(ctx.previous, ctx.document)
        else:
            diff = ctx.patch
        diff = {op: public_user(fields) for op, fields in diff.items()}
        self.bus.emit(Events.USER_UPDATED, {"_id": ctx.document["_id"]}, diff)

    async def after_delete(self, ctx: HookContext) -> None:
        self.bus.emit(Events.USER_REMOVED, public_user(ctx.document))


class UserService(DocumentService):
    """Service for user documents."""

    collection_name = shop_db.Collections.USERS
    entity = "user"

    def __init__(self, db: AsyncIOMotorDatabase, hooks: Optional[HookPipeline] = None):
        super().__init__(db, hooks)

    async def get_by_email(self, email: str) -> Optional[dict[str, Any]]:
        return await self.collection.find_one(email_query(email))

    async def change_password(self, user_id: Any, new_password: str):
        """Set a new password; validated and hashed by the credential hooks."""
        return await self.update_by_id(user_id, {"password": new_password})
