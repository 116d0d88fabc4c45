"""
Index setup for the shop database.

The propagator and the cascade anonymizer look documents up by embedded
reference; those lookups must be indexed. `create_indexes` records what it
set up in `_metadata` so readiness can tell a database that was never
initialized (or initialized by an older release) from a healthy one.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorDatabase

from storefront.database.databases import shop_db

logger = logging.getLogger(__name__)

# Bump when INDEXES changes
SCHEMA_VERSION = 1
SCHEMA_DOC_ID = "indexes"


@dataclass(frozen=True)
class IndexSpec:
    collection: str
    key: str
    unique: bool = False

    @property
    def name(self) -> str:
        return f"{self.key}_1"


INDEXES = [
    IndexSpec(shop_db.Collections.ATTRIBUTES, "code", unique=True),
    IndexSpec(shop_db.Collections.USERS, "email", unique=True),
    # Lookups issued by the propagator and the cascade anonymizer
    IndexSpec(shop_db.Collections.CATEGORIES, "filters.attributes.id"),
    IndexSpec(shop_db.Collections.USERS, "attributes.id"),
    IndexSpec(shop_db.Collections.ORDERS, "customer.id"),
    IndexSpec(shop_db.Collections.BILLS, "client"),
]


async def create_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create every index and record the schema version in `_metadata`."""
    for spec in INDEXES:
        await db[spec.collection].create_index(spec.key, unique=spec.unique, name=spec.name)

    now = datetime.now(timezone.utc)
    await db[shop_db.Collections.METADATA].update_one(
        {"_id": SCHEMA_DOC_ID},
        {
            "$set": {
                "schema_version": SCHEMA_VERSION,
                "collections": shop_db.DATA_COLLECTIONS,
                "indexes": [f"{spec.collection}.{spec.name}" for spec in INDEXES],
                "updated_at": now,
            },
            "$setOnInsert": {"created_at": now},
        },
        upsert=True,
    )
    logger.info("Shop indexes ready (schema version %d)", SCHEMA_VERSION)


async def check_indexes(db: AsyncIOMotorDatabase) -> list[str]:
    """
    Compare the database against INDEXES.

    Returns:
        Problems found; empty when the schema is current
    """
    meta = await db[shop_db.Collections.METADATA].find_one({"_id": SCHEMA_DOC_ID})
    if meta is None:
        return ["indexes never created"]

    problems = []
    if meta.get("schema_version") != SCHEMA_VERSION:
        problems.append(
            f"schema version {meta.get('schema_version')}, expected {SCHEMA_VERSION}"
        )
    for spec in INDEXES:
        existing = await db[spec.collection].index_information()
        if spec.name not in existing:
            problems.append(f"missing index {spec.collection}.{spec.name}")
    return problems
