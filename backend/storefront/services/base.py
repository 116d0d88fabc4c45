"""
Document service base: CRUD verbs wrapped in the entity's hook pipeline.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from storefront.core.errors import ValidationError
from storefront.hooks.pipeline import HookPipeline, Operation

logger = logging.getLogger(__name__)


def to_object_id(value: Any) -> Any:
    """Coerce a 24-hex string to ObjectId, leave anything else untouched."""
    if isinstance(value, str):
        try:
            return ObjectId(value)
        except InvalidId:
            return value
    return value


def normalize_patch(patch: dict[str, Any]) -> dict[str, Any]:
    """Wrap a plain field dict as a `$set` update."""
    if any(key.startswith("$") for key in patch):
        return {key: dict(value) for key, value in patch.items()}
    return {"$set": dict(patch)}


@dataclass
class WriteResult:
    """Outcome of a write. Warnings come from post-commit hooks."""
    document: Optional[dict[str, Any]]
    operation: Operation
    matched: bool = True
    warnings: list[str] = field(default_factory=list)

    @property
    def created(self) -> bool:
        return self.operation == Operation.CREATE


class DocumentService:
    """
    Persistence service for one collection.

    Every write goes through `self.hooks`. Both partial update entry points
    (`update_by_id` and `update_one`) share a single code path.
    """

    collection_name: str = ""
    entity: str = ""

    def __init__(self, db: AsyncIOMotorDatabase, hooks: Optional[HookPipeline] = None):
        self.db = db
        self.collection: AsyncIOMotorCollection = db[self.collection_name]
        self.hooks = hooks or HookPipeline(self.entity)

    # ==================== Reads ====================

    async def get_by_id(self, doc_id: Any) -> Optional[dict[str, Any]]:
        return await self.collection.find_one({"_id": to_object_id(doc_id)})

    async def find_one(self, query: dict[str, Any]) -> Optional[dict[str, Any]]:
        return await self.collection.find_one(query)

    async def find(
        self, query: Optional[dict[str, Any]] = None, limit: Optional[int] = None
    ) -> list[dict[str, Any]]:
        cursor = self.collection.find(query or {})
        return await cursor.to_list(length=limit)

    async def count(self, query: Optional[dict[str, Any]] = None) -> int:
        return await self.collection.count_documents(query or {})

    # ==================== Whole-document save ====================

    async def save(self, document: dict[str, Any]) -> WriteResult:
        """
        Insert a new document, or replace the stored one with the same `_id`.

        Raises:
            ValidationError: If a before hook rejected the document
        """
        doc = dict(document)
        previous = None
        if doc.get("_id") is not None:
            doc["_id"] = to_object_id(doc["_id"])
            previous = await self.collection.find_one({"_id": doc["_id"]})

        if previous is None:
            return await self._create(doc)
        return await self._replace(doc, previous)

    async def _create(self, doc: dict[str, Any]) -> WriteResult:
        ctx = self.hooks.context(Operation.CREATE, document=doc)
        await self.hooks.run_before(ctx)

        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            raise ValidationError([self._duplicate_message(e)]) from e
        doc["_id"] = result.inserted_id
        logger.debug("%s %s created", self.entity, doc["_id"])

        warnings = await self.hooks.run_after(ctx)
        return WriteResult(document=doc, operation=Operation.CREATE, warnings=warnings)

    async def _replace(self, doc: dict[str, Any], previous: dict[str, Any]) -> WriteResult:
        ctx = self.hooks.context(
            Operation.REPLACE,
            document=doc,
            previous=previous,
            filter={"_id": doc["_id"]},
        )
        await self.hooks.run_before(ctx)

        try:
            result = await self.collection.replace_one({"_id": doc["_id"]}, doc)
        except DuplicateKeyError as e:
            raise ValidationError([self._duplicate_message(e)]) from e

        if result.matched_count == 0:
            # Deleted between our read and the replace
            return WriteResult(document=None, operation=Operation.REPLACE, matched=False)

        warnings = await self.hooks.run_after(ctx)
        return WriteResult(document=doc, operation=Operation.REPLACE, warnings=warnings)

    # ==================== Partial update ====================

    async def update_by_id(self, doc_id: Any, patch: dict[str, Any]) -> WriteResult:
        """Patch fields of the document with this primary key."""
        return await self.update_one({"_id": to_object_id(doc_id)}, patch)

    async def update_one(self, query: dict[str, Any], patch: dict[str, Any]) -> WriteResult:
        """
        Patch fields of the first document matching `query`.

        `patch` is either a plain field dict (treated as `$set`) or a
        MongoDB update document.

        Raises:
            ValidationError: If a before hook rejected the patch
        """
        ctx = self.hooks.context(
            Operation.UPDATE, filter=dict(query), patch=normalize_patch(patch)
        )
        await self.hooks.run_before(ctx)

        update = {op: fields for op, fields in ctx.patch.items() if fields}
        if not update:
            doc = await self.collection.find_one(ctx.filter)
            return WriteResult(document=doc, operation=Operation.UPDATE, matched=doc is not None)

        try:
            doc = await self.collection.find_one_and_update(
                ctx.filter, update, return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as e:
            raise ValidationError([self._duplicate_message(e)]) from e

        if doc is None:
            return WriteResult(document=None, operation=Operation.UPDATE, matched=False)

        ctx.document = doc
        warnings = await self.hooks.run_after(ctx)
        return WriteResult(document=doc, operation=Operation.UPDATE, warnings=warnings)

    # ==================== Delete ====================

    async def delete_by_id(self, doc_id: Any) -> WriteResult:
        return await self.delete_one({"_id": to_object_id(doc_id)})

    async def delete_one(self, query: dict[str, Any]) -> WriteResult:
        """
        Delete the first document matching `query`.

        Before hooks see the stored document and may abort; after hooks get
        the same snapshot once the delete committed.
        """
        snapshot = await self.collection.find_one(query)
        if snapshot is None:
            return WriteResult(document=None, operation=Operation.DELETE, matched=False)

        ctx = self.hooks.context(
            Operation.DELETE, document=snapshot, filter={"_id": snapshot["_id"]}
        )
        await self.hooks.run_before(ctx)

        result = await self.collection.delete_one({"_id": snapshot["_id"]})
        if result.deleted_count == 0:
            return WriteResult(
                document=snapshot, operation=Operation.DELETE, matched=False,
                warnings=ctx.warnings,
            )
        logger.debug("%s %s deleted", self.entity, snapshot["_id"])

        warnings = await self.hooks.run_after(ctx)
        return WriteResult(document=snapshot, operation=Operation.DELETE, warnings=warnings)

    def _duplicate_message(self, error: DuplicateKeyError) -> str:
        key = (error.details or {}).get("keyValue") or {}
        if key:
            return f"{self.entity}: duplicate {', '.join(key)}"
        return f"{self.entity}: duplicate key"
