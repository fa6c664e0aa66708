#!/usr/bin/env python3
"""
Display Order Repair
Rewrites every ordering scope as 0..n-1, removing duplicates and gaps left by
interrupted reorders or manual database edits.

Usage:
    python compact_orders.py            - Repair all scopes
    python compact_orders.py --dry-run  - Report what would change
"""
import asyncio
import logging
import sys

from clinic_cms.database import AsyncSessionLocal, close_db, init_db
from clinic_cms.routes.content import promotions, services, specialists, timeline
from clinic_cms.services.gallery import gallery_service
from clinic_cms.services.resources import OrderedResource

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("compact_orders")

RESOURCES = [
    promotions,
    services,
    specialists,
    timeline,
    gallery_service.categories,
    gallery_service.images,
]


async def compact_resource(db, resource: OrderedResource) -> int:
    changed = 0
    for scope in await resource.collection.scopes(db):
        async with resource.collection.lock(scope):
            count = await resource.collection.compact(db, scope)
        if count:
            logger.info(f"{resource.label}: {count} record(s) renumbered in scope {resource.scope_field}={scope}")
        changed += count
    return changed


async def main(dry_run: bool = False) -> int:
    await init_db(create_tables=False)
    total = 0
    try:
        async with AsyncSessionLocal() as db:
            try:
                for resource in RESOURCES:
                    total += await compact_resource(db, resource)
                if dry_run:
                    await db.rollback()
                else:
                    await db.commit()
            except Exception:
                await db.rollback()
                raise
    finally:
        await close_db()

    action = "would be renumbered" if dry_run else "renumbered"
    logger.info(f"{total} record(s) {action}")
    return total


if __name__ == "__main__":
    asyncio.run(main(dry_run="--dry-run" in sys.argv))
