#!/usr/bin/env python3
"""
Consistency repair job.

Re-runs the propagation and anonymization steps that a crash between a
primary write and its hooks may have skipped. Every step is idempotent.

Usage:
    python -m storefront.maintenance
"""
import asyncio
import logging
from dataclasses import dataclass, field

from storefront.config import get_settings
from storefront.core.log_config import setup_logging
from storefront.database.connections import close_connections, get_database
from storefront.events.bus import EventBus
from storefront.wiring import Services, build_services

logger = logging.getLogger("storefront.maintenance")


@dataclass
class RepairReport:
    attributes_synced: int = 0
    orphan_refs_pulled: int = 0
    users_anonymized: int = 0
    errors: list[str] = field(default_factory=list)


async def resync_category_filters(services: Services, report: RepairReport) -> None:
    """Sync every live attribute and pull refs to deleted ones."""
    live_ids = set()
    for attribute in await services.attributes.find():
        live_ids.add(attribute["_id"])
        await services.propagator.resync(attribute["_id"])
        report.attributes_synced += 1

    referenced = await services.categories.collection.distinct("filters.attributes.id")
    for attribute_id in referenced:
        if attribute_id not in live_ids:
            report.orphan_refs_pulled += await services.propagator.resync(attribute_id)


async def anonymize_deleted_users(services: Services, report: RepairReport) -> None:
    """Clear order/bill references to users that no longer exist."""
    referenced = set(await services.orders.collection.distinct("customer.id"))
    referenced |= set(await services.bills.collection.distinct("client"))
    for user_id in referenced:
        if user_id is None or await services.users.get_by_id(user_id) is not None:
            continue
        result = await services.anonymizer.anonymize(user_id)
        report.errors.extend(result.errors)
        report.users_anonymized += 1


async def run_repair(services: Services) -> RepairReport:
    report = RepairReport()
    await resync_category_filters(services, report)
    await anonymize_deleted_users(services, report)
    logger.info(
        "Repair done: %d attributes synced, %d orphan refs pulled, %d users anonymized, %d errors",
        report.attributes_synced, report.orphan_refs_pulled,
        report.users_anonymized, len(report.errors),
    )
    return report


async def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    db = await get_database()
    services = build_services(db, EventBus(), settings)
    try:
        await run_repair(services)
    finally:
        await close_connections()


if __name__ == "__main__":
    asyncio.run(main())
