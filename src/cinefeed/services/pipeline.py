"""Ingestion pipeline: idempotent, per-venue transactional persistence of scraped screenings."""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cinefeed.errors import ContaminationDetected, PersistenceError, UnknownVenue
from cinefeed.models import ScrapeRun, Screening, Venue
from cinefeed.registry import CinemaRegistry, VenueDefinition
from cinefeed.scrapers.models import RawScreening
from cinefeed.services.film_resolver import FilmResolver
from cinefeed.utils.dates import ensure_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    """Outcome of one ``save_screenings`` call."""

    venue_id: str
    added: int = 0
    updated: int = 0
    skipped: int = 0
    contaminated: list[ContaminationDetected] = field(default_factory=list)

    @property
    def saved(self) -> int:
        return self.added + self.updated


@dataclass
class RepairFilter:
    """Restricts a contamination repair. Empty means every venue."""

    venue_ids: list[str] = field(default_factory=list)
    chain: str | None = None


@dataclass
class RepairChange:
    screening_id: int
    venue_id: str
    start_time: datetime
    old_url: str
    new_url: str | None
    owner: str


@dataclass
class RepairReport:
    dry_run: bool
    changes: list[RepairChange] = field(default_factory=list)

    @property
    def screening_ids(self) -> list[int]:
        return [change.screening_id for change in self.changes]


def _apply_definition(row: Venue, venue: VenueDefinition) -> None:
    row.name = venue.name
    row.short_name = venue.short_name
    row.chain = venue.chain
    row.website = venue.website
    row.address = venue.address
    row.area = venue.area
    row.postcode = venue.postcode
    row.latitude = venue.coordinates[0] if venue.coordinates else None
    row.longitude = venue.coordinates[1] if venue.coordinates else None
    row.features = list(venue.features)
    row.active = venue.active


class IngestionPipeline:
    """
    Writes scraped screenings against the canonical store.

    Writes for one venue are serialised: an in-process lock per venue, plus a
    row lock on the venue inside the transaction for other processes. Writes
    for different venues proceed independently.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        registry: CinemaRegistry,
    ) -> None:
        self.session_factory = session_factory
        self.registry = registry
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ------------------------------------------------------------------
    # Venue registration
    # ------------------------------------------------------------------

    async def ensure_venue_exists(self, venue: VenueDefinition) -> None:
        """Idempotent upsert of the venue row by canonical id (last writer wins)."""
        async with self.session_factory() as db:
            try:
                await self._upsert_venue(db, venue)
                await db.commit()
            except IntegrityError:
                # A concurrent registration inserted first; apply ours as an update
                await db.rollback()
                try:
                    await self._upsert_venue(db, venue)
                    await db.commit()
                except SQLAlchemyError as e:
                    await db.rollback()
                    raise PersistenceError(f"{venue.id}: failed to register venue: {e}") from e
            except SQLAlchemyError as e:
                await db.rollback()
                raise PersistenceError(f"{venue.id}: failed to register venue: {e}") from e

    async def _upsert_venue(self, db: AsyncSession, venue: VenueDefinition) -> None:
        row = await db.get(Venue, venue.id, populate_existing=True)
        if row is None:
            row = Venue(id=venue.id)
            _apply_definition(row, venue)
            db.add(row)
            logger.info(f"Registered venue {venue.id}")
        else:
            _apply_definition(row, venue)
        await db.flush()

    # ------------------------------------------------------------------
    # Screenings
    # ------------------------------------------------------------------

    async def save_screenings(
        self,
        venue_id: str,
        raw_screenings: Sequence[RawScreening],
    ) -> SaveResult:
        """
        Upsert a venue's complete scrape result in one transaction.

        Screenings are keyed by (venue, film, start time, screen): a repeat
        of the same logical screening updates the existing row. Booking URLs
        on another venue's or chain's domain are nulled and reported on
        ``SaveResult.contaminated``; the screening itself is still saved.

        Raises:
            UnknownVenue: venue_id is not registered
            PersistenceError: the write failed; nothing from the batch was applied
        """
        canonical = self.registry.resolve_canonical(venue_id)

        async with self._locks[canonical]:
            async with self.session_factory() as db:
                try:
                    result = await self._apply(db, canonical, raw_screenings)
                    await db.commit()
                except SQLAlchemyError as e:
                    await db.rollback()
                    logger.error(f"{canonical}: save failed, rolled back: {e}", exc_info=True)
                    raise PersistenceError(f"{canonical}: failed to save screenings: {e}") from e

        logger.info(
            f"{canonical}: {result.added} added, {result.updated} updated, "
            f"{result.skipped} skipped, {len(result.contaminated)} contaminated"
        )
        return result

    async def _apply(
        self,
        db: AsyncSession,
        venue_id: str,
        raw_screenings: Sequence[RawScreening],
    ) -> SaveResult:
        now = utcnow()
        result = SaveResult(venue_id=venue_id)

        venue_row = (
            await db.execute(select(Venue).where(Venue.id == venue_id).with_for_update())
        ).scalar_one_or_none()
        if venue_row is None:
            raise PersistenceError(f"{venue_id}: venue row missing; register the venue first")

        resolver = FilmResolver(db)
        seen: set[tuple[str, datetime, str]] = set()

        for raw in raw_screenings:
            if raw.venue_id and self._canonical_or_none(raw.venue_id) != venue_id:
                logger.warning(
                    f"{venue_id}: dropping '{raw.title}' scraped for venue {raw.venue_id!r}"
                )
                result.skipped += 1
                continue

            film = await resolver.resolve(raw.title, raw.year, raw.directors, raw.poster_url)
            start_time = ensure_utc(raw.start_time)
            screen = (raw.screen_name or "").strip()

            key = (film.id, start_time, screen)
            if key in seen:
                result.skipped += 1
                continue
            seen.add(key)

            booking_url = raw.booking_url
            owner = self.registry.is_contaminated(venue_id, booking_url)
            if owner is not None:
                incident = ContaminationDetected(venue_id, booking_url, owner, raw.title)
                logger.warning(f"Data quality: {incident}")
                result.contaminated.append(incident)
                booking_url = None

            existing = (
                await db.execute(
                    select(Screening).where(
                        Screening.venue_id == venue_id,
                        Screening.film_id == film.id,
                        Screening.start_time == start_time,
                        Screening.screen == screen,
                    )
                )
            ).scalar_one_or_none()

            if existing:
                existing.booking_url = booking_url
                existing.format_tags = list(raw.format_tags)
                existing.end_time = ensure_utc(raw.end_time) if raw.end_time else None
                existing.raw_title = raw.title
                existing.updated_at = now
                result.updated += 1
            else:
                db.add(
                    Screening(
                        venue_id=venue_id,
                        film_id=film.id,
                        start_time=start_time,
                        end_time=ensure_utc(raw.end_time) if raw.end_time else None,
                        screen=screen,
                        booking_url=booking_url,
                        format_tags=list(raw.format_tags),
                        raw_title=raw.title,
                    )
                )
                result.added += 1

        venue_row.last_scraped_at = now
        await db.flush()
        return result

    def _canonical_or_none(self, venue_id: str) -> str | None:
        try:
            return self.registry.resolve_canonical(venue_id)
        except UnknownVenue:
            return None

    # ------------------------------------------------------------------
    # Run history
    # ------------------------------------------------------------------

    async def record_run(self, run: ScrapeRun) -> None:
        """Append a ScrapeRun row. Failures are logged, never raised."""
        async with self.session_factory() as db:
            try:
                db.add(run)
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"{run.venue_id}: failed to record scrape run: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def repair_contamination(
        self,
        filter: RepairFilter | None = None,
        dry_run: bool = False,
        now: datetime | None = None,
    ) -> RepairReport:
        """
        Null booking URLs on future screenings that point at another venue's domain.

        Past screenings are never touched. With ``dry_run`` the report lists
        what would change and the store is left as is.
        """
        filter = filter or RepairFilter()
        now = now or utcnow()
        report = RepairReport(dry_run=dry_run)

        venue_ids = [self.registry.resolve_canonical(v) for v in filter.venue_ids]
        if filter.chain:
            venue_ids.extend(
                v.id for v in self.registry.venues_by_chain(filter.chain, active_only=False)
            )

        async with self.session_factory() as db:
            stmt = (
                select(Screening)
                .where(Screening.start_time > now, Screening.booking_url.is_not(None))
                .order_by(Screening.venue_id, Screening.start_time)
            )
            if filter.venue_ids or filter.chain:
                stmt = stmt.where(Screening.venue_id.in_(venue_ids))

            affected: list[Screening] = []
            for screening in (await db.execute(stmt)).scalars():
                if self.registry.get_venue(screening.venue_id) is None:
                    logger.warning(f"Skipping screening {screening.id}: venue {screening.venue_id!r} not in registry")
                    continue
                owner = self.registry.is_contaminated(screening.venue_id, screening.booking_url)
                if owner is None:
                    continue
                affected.append(screening)
                report.changes.append(
                    RepairChange(
                        screening_id=screening.id,
                        venue_id=screening.venue_id,
                        start_time=ensure_utc(screening.start_time),
                        old_url=screening.booking_url,
                        new_url=None,
                        owner=owner,
                    )
                )

            for change in report.changes:
                action = "Would null" if dry_run else "Nulling"
                logger.info(
                    f"{action} booking URL on screening {change.screening_id} "
                    f"({change.venue_id}, owner {change.owner}): {change.old_url}"
                )

            if dry_run or not affected:
                return report

            try:
                for screening in affected:
                    screening.booking_url = None
                    screening.updated_at = now
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                raise PersistenceError(f"Contamination repair failed: {e}") from e

        logger.info(f"Repaired {len(report.changes)} contaminated booking URL(s)")
        return report
