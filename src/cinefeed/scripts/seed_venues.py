"""Sync the venue registry into the venues table.

Safe to re-run: each venue is upserted by canonical id.

Run with:
    python -m cinefeed.scripts.seed_venues
"""

import asyncio
import logging

from cinefeed.errors import PersistenceError
from cinefeed.registry import get_registry
from cinefeed.tasks.scrape_job import get_pipeline

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logger = logging.getLogger(__name__)


async def seed_venues() -> int:
    """Upsert every registry venue, active or not. Returns the number of failures."""
    pipeline = get_pipeline()
    failures = 0
    for venue in get_registry().all_venues():
        try:
            await pipeline.ensure_venue_exists(venue)
        except PersistenceError as e:
            logger.error(str(e))
            failures += 1
            continue
        logger.info(f"  {venue.id:<28} {venue.name}{'' if venue.active else '  (inactive)'}")

    logger.info(f"Venue seeding complete ({failures} failure(s))")
    return failures


if __name__ == "__main__":
    raise SystemExit(1 if asyncio.run(seed_venues()) else 0)
