"""Scrape runner: uniform lifecycle around every venue's extraction job."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from cinefeed.config import RunnerConfig
from cinefeed.errors import (
    CinefeedError,
    ExtractionError,
    PersistenceError,
    RunFailure,
    UnknownVenue,
    ValidationError,
)
from cinefeed.models import ScrapeRun
from cinefeed.models.scrape_run import RUN_FAILED, RUN_SUCCESS
from cinefeed.registry import CinemaRegistry, VenueDefinition
from cinefeed.scrapers import get_scraper
from cinefeed.scrapers.base import BaseScraper
from cinefeed.scrapers.models import RawScreening
from cinefeed.scrapers.validation import validate_screenings
from cinefeed.services.pipeline import IngestionPipeline
from cinefeed.utils.dates import utcnow

logger = logging.getLogger(__name__)

ScraperFactory = Callable[[str, VenueDefinition], BaseScraper | None]
BlockCheck = Callable[[str], Awaitable[bool]]

_ERROR_TYPES: dict[type[Exception], str] = {
    ExtractionError: "extraction",
    ValidationError: "validation",
    PersistenceError: "persistence",
}


@dataclass
class RunResult:
    """Structured outcome of one venue run, success or failure."""

    venue_id: str
    success: bool
    count: int = 0  # screenings written (added + updated)
    added: int = 0
    updated: int = 0
    skipped: int = 0
    contaminated: int = 0
    duration_ms: int = 0
    error: str | None = None
    error_type: str | None = None
    blocked: bool = False  # skipped by the circuit breaker; nothing ran


class ScrapeRunner:
    """
    Executes extraction jobs for venues.

    Per invocation: resolve the venue, consult the circuit breaker, register
    the venue row, run the scraper (bounded by ``run_timeout``), validate,
    and hand the full result to the ingestion pipeline. Any failure is
    logged with the venue id, recorded as a failed ScrapeRun and raised as
    ``RunFailure``.

    Args:
        registry: Venue lookups
        pipeline: Persistence for screenings and run history
        config: Validation / concurrency / timeout options
        scraper_factory: Builds the scraper for a job id and venue
        is_blocked: Async predicate for the circuit breaker (see
            ``HealthMonitor.is_blocked``); omitted means never blocked
    """

    def __init__(
        self,
        registry: CinemaRegistry,
        pipeline: IngestionPipeline,
        config: RunnerConfig | None = None,
        scraper_factory: ScraperFactory = get_scraper,
        is_blocked: BlockCheck | None = None,
    ) -> None:
        self.registry = registry
        self.pipeline = pipeline
        self.config = config or RunnerConfig()
        self.scraper_factory = scraper_factory
        self.is_blocked = is_blocked

    async def run_extraction(self, venue_id: str, force: bool = False) -> RunResult:
        """
        Run one venue's extraction job end to end.

        Args:
            venue_id: Canonical or legacy venue id
            force: Run even if the circuit breaker has blocked the venue

        Raises:
            UnknownVenue: venue_id is not registered (caller error, not recorded)
            RunFailure: any extraction, validation or persistence failure
        """
        canonical = self.registry.resolve_canonical(venue_id)
        venue = self.registry.require_venue(canonical)

        started_at = utcnow()
        started = time.monotonic()
        raw: list[RawScreening] = []
        try:
            if not force and self.is_blocked is not None and await self.is_blocked(canonical):
                logger.warning(f"{canonical}: skipped, blocked by health check (use force to override)")
                return RunResult(venue_id=canonical, success=False, blocked=True,
                                 error="blocked by health check")

            await self.pipeline.ensure_venue_exists(venue)
            raw = await self._scrape(venue)
            if self.config.validation:
                validate_screenings(venue, raw, self.config.forward_window_days)
            saved = await self.pipeline.save_screenings(canonical, raw)
        except Exception as e:
            result = RunResult(
                venue_id=canonical,
                success=False,
                duration_ms=_elapsed_ms(started),
                error=str(e),
                error_type=_error_type(e),
            )
            logger.error(
                f"{canonical}: {result.error_type} failure: {e}",
                exc_info=result.error_type == "unexpected",
            )
            await self._record(result, started_at, len(raw))
            raise RunFailure(result, e) from e

        result = RunResult(
            venue_id=canonical,
            success=True,
            count=saved.saved,
            added=saved.added,
            updated=saved.updated,
            skipped=saved.skipped,
            contaminated=len(saved.contaminated),
            duration_ms=_elapsed_ms(started),
        )
        logger.info(f"{canonical}: {result.count} screenings saved in {result.duration_ms}ms")
        await self._record(result, started_at, len(raw))
        return result

    async def _scrape(self, venue: VenueDefinition) -> list[RawScreening]:
        scraper = self.scraper_factory(venue.job_id, venue)
        if scraper is None:
            raise ExtractionError(f"No scraper registered for job {venue.job_id!r}")

        try:
            raw = await asyncio.wait_for(scraper.scrape(), timeout=self.config.run_timeout)
        except asyncio.TimeoutError as e:
            raise ExtractionError(
                f"Extraction timed out after {self.config.run_timeout}s"
            ) from e
        except CinefeedError:
            raise
        except Exception as e:
            logger.error(f"{venue.id}: scraper raised unexpectedly", exc_info=True)
            raise ExtractionError(f"Scraper error: {e}") from e

        logger.info(f"{venue.id}: scraper returned {len(raw)} screenings")
        return list(raw)

    async def _record(self, result: RunResult, started_at: datetime, screening_count: int) -> None:
        await self.pipeline.record_run(
            ScrapeRun(
                venue_id=result.venue_id,
                started_at=started_at,
                completed_at=utcnow(),
                status=RUN_SUCCESS if result.success else RUN_FAILED,
                error_type=result.error_type,
                error=result.error,
                screening_count=screening_count,
                added=result.added,
                updated=result.updated,
                duration_ms=result.duration_ms,
            )
        )

    # ------------------------------------------------------------------
    # Batch mode
    # ------------------------------------------------------------------

    async def run_batch(self, venue_ids: Sequence[str], force: bool = False) -> list[RunResult]:
        """
        Run several venues concurrently, bounded by ``max_concurrency``.

        One venue's failure never stops the others: its RunResult carries
        the error. Results are returned in input order.
        """
        semaphore = asyncio.Semaphore(self.config.max_concurrency)

        async def run_one(venue_id: str) -> RunResult:
            async with semaphore:
                try:
                    return await self.run_extraction(venue_id, force=force)
                except RunFailure as failure:
                    return failure.result
                except UnknownVenue as e:
                    logger.error(f"Batch: {e}")
                    return RunResult(venue_id=venue_id, success=False, error=str(e),
                                     error_type="unknown_venue")
                except Exception as e:
                    logger.error(f"Batch: {venue_id}: unexpected error: {e}", exc_info=True)
                    return RunResult(venue_id=venue_id, success=False, error=str(e),
                                     error_type="unexpected")

        results = await asyncio.gather(*(run_one(v) for v in venue_ids))

        succeeded = sum(1 for r in results if r.success)
        blocked = sum(1 for r in results if r.blocked)
        logger.info(
            f"Batch complete: {succeeded} succeeded, "
            f"{len(results) - succeeded - blocked} failed, {blocked} blocked"
        )
        return list(results)

    async def run_chain(self, chain: str, force: bool = False) -> list[RunResult]:
        """Run every active venue of a chain (one strategy, parameterised per site)."""
        venues = self.registry.venues_by_chain(chain)
        if not venues:
            logger.warning(f"No active venues for chain {chain!r}")
        return await self.run_batch([v.id for v in venues], force=force)

    async def run_orchestration_id(self, orchestration_id: str, force: bool = False) -> list[RunResult]:
        """Run the venues an external scheduler job id stands for."""
        venues = self.registry.venues_for_orchestration_id(orchestration_id)
        if not venues:
            # Scheduler may also address a single venue directly
            venues = [self.registry.require_venue(orchestration_id)]
        return await self.run_batch([v.id for v in venues], force=force)

    async def run_all(self, force: bool = False) -> list[RunResult]:
        return await self.run_batch([v.id for v in self.registry.active_venues()], force=force)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _error_type(error: Exception) -> str:
    for error_class, name in _ERROR_TYPES.items():
        if isinstance(error, error_class):
            return name
    return "unexpected"
