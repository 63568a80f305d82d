"""Scheduled jobs: scrape every active venue, then check venue health.

Each job builds its collaborators from settings so it can be called from the
scheduler, an admin route or a script without a request context.
"""

import logging
from functools import lru_cache

from cinefeed.config import HealthThresholds, RunnerConfig, settings
from cinefeed.database import session_factory
from cinefeed.registry import get_registry
from cinefeed.services.alerts import HealthAlerter
from cinefeed.services.health import HealthMonitor, HealthReport
from cinefeed.services.pipeline import IngestionPipeline
from cinefeed.services.runner import RunResult, ScrapeRunner

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_pipeline() -> IngestionPipeline:
    # One instance per process so per-venue write locks are shared
    return IngestionPipeline(session_factory, get_registry())


@lru_cache(maxsize=1)
def get_monitor() -> HealthMonitor:
    return HealthMonitor(
        session_factory,
        get_registry(),
        thresholds=HealthThresholds.from_settings(settings),
        alerter=HealthAlerter.from_settings(settings),
    )


@lru_cache(maxsize=1)
def get_runner() -> ScrapeRunner:
    return ScrapeRunner(
        get_registry(),
        get_pipeline(),
        config=RunnerConfig.from_settings(settings),
        is_blocked=get_monitor().is_blocked,
    )


async def run_scrape_all() -> list[RunResult]:
    """Scrape every active venue with bounded concurrency."""
    logger.info("Starting scheduled scrape for all venues")
    results = await get_runner().run_all()

    failed = [r for r in results if not r.success and not r.blocked]
    for result in failed:
        logger.warning(f"{result.venue_id}: {result.error_type}: {result.error}")
    logger.info(
        f"Scheduled scrape complete: {sum(r.success for r in results)} succeeded, "
        f"{len(failed)} failed, {sum(r.count for r in results)} screenings saved"
    )
    return results


async def run_health_check() -> HealthReport:
    """Run the full health check, snapshot every venue and send alerts."""
    logger.info("Starting scheduled health check")
    return await get_monitor().run_full_health_check()
