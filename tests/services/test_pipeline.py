"""Tests for the ingestion pipeline against a real (SQLite) database."""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from cinefeed.errors import PersistenceError, UnknownVenue
from cinefeed.models import Film, ScrapeRun, Screening, Venue
from cinefeed.models.scrape_run import RUN_SUCCESS
from cinefeed.registry import CinemaRegistry
from cinefeed.scrapers.models import RawScreening
from cinefeed.services.film_resolver import FilmResolver
from cinefeed.services.pipeline import IngestionPipeline, RepairFilter, SaveResult
from cinefeed.utils.dates import ensure_utc, utcnow

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def at(days: float, hour: int = 19) -> datetime:
    base = utcnow().replace(hour=hour, minute=0, second=0, microsecond=0)
    return base + timedelta(days=days)


def make_raw(
    title: str = "Anora",
    start: datetime | None = None,
    booking_url: str | None = "https://www.indieone.example/book/1",
    **kwargs,
) -> RawScreening:
    return RawScreening(title=title, start_time=start or at(2), booking_url=booking_url, **kwargs)


@pytest.fixture
async def pipeline(session_factory, registry: CinemaRegistry) -> IngestionPipeline:
    pipeline = IngestionPipeline(session_factory, registry)
    for venue_id in ("indie-one", "indie-two", "ph-one", "ph-two"):
        await pipeline.ensure_venue_exists(registry.require_venue(venue_id))
    return pipeline


async def count_rows(session_factory, model) -> int:
    async with session_factory() as db:
        return (await db.execute(select(func.count()).select_from(model))).scalar_one()


async def all_screenings(session_factory) -> list[Screening]:
    async with session_factory() as db:
        result = await db.execute(select(Screening).order_by(Screening.start_time))
        return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Venue registration
# ---------------------------------------------------------------------------


class TestEnsureVenueExists:
    async def test_creates_venue_row(self, pipeline: IngestionPipeline, session_factory) -> None:
        async with session_factory() as db:
            venue = await db.get(Venue, "ph-one")
        assert venue.name == "Picturehouse One"
        assert venue.chain == "picturehouse"

    async def test_is_idempotent(self, pipeline: IngestionPipeline, registry, session_factory) -> None:
        await pipeline.ensure_venue_exists(registry.require_venue("ph-one"))
        await pipeline.ensure_venue_exists(registry.require_venue("ph-one"))
        assert await count_rows(session_factory, Venue) == 4

    async def test_updates_changed_metadata(self, pipeline: IngestionPipeline, session_factory) -> None:
        renamed = replace(pipeline.registry.require_venue("indie-two"), name="Indie Two Renamed")
        await pipeline.ensure_venue_exists(renamed)

        async with session_factory() as db:
            venue = await db.get(Venue, "indie-two")
        assert venue.name == "Indie Two Renamed"


# ---------------------------------------------------------------------------
# save_screenings
# ---------------------------------------------------------------------------


class TestSaveScreenings:
    async def test_saves_new_screenings_and_films(self, pipeline: IngestionPipeline, session_factory) -> None:
        raw = [
            make_raw("Anora", at(1)),
            make_raw("Preview: Anora [35mm]", at(2)),
            make_raw("Nosferatu (1922)", at(3), format_tags=["35mm"]),
        ]

        result = await pipeline.save_screenings("indie-one", raw)

        assert (result.added, result.updated, result.skipped) == (3, 0, 0)
        assert await count_rows(session_factory, Film) == 2
        screenings = await all_screenings(session_factory)
        assert [s.film_id for s in screenings] == ["anora", "anora", "nosferatu-1922"]
        assert screenings[1].raw_title == "Preview: Anora [35mm]"
        assert screenings[2].format_tags == ["35mm"]

    async def test_rerun_is_idempotent(self, pipeline: IngestionPipeline, session_factory) -> None:
        raw = [make_raw("Anora", at(1)), make_raw("Anora", at(2)), make_raw("Flow", at(2, hour=15))]

        first = await pipeline.save_screenings("indie-one", raw)
        second = await pipeline.save_screenings("indie-one", raw)

        assert first.added == 3
        assert (second.added, second.updated) == (0, 3)
        assert await count_rows(session_factory, Screening) == 3
        assert await count_rows(session_factory, Film) == 2

    async def test_rerun_updates_changed_fields(self, pipeline: IngestionPipeline, session_factory) -> None:
        start = at(1)
        await pipeline.save_screenings("indie-one", [make_raw("Anora", start)])
        await pipeline.save_screenings(
            "indie-one",
            [make_raw("Anora", start, booking_url="https://www.indieone.example/book/2", format_tags=["Subtitled"])],
        )

        [screening] = await all_screenings(session_factory)
        assert screening.booking_url == "https://www.indieone.example/book/2"
        assert screening.format_tags == ["Subtitled"]

    async def test_legacy_id_writes_to_canonical_venue(self, pipeline: IngestionPipeline, session_factory) -> None:
        result = await pipeline.save_screenings("the-indie", [make_raw()])

        assert result.venue_id == "indie-one"
        [screening] = await all_screenings(session_factory)
        assert screening.venue_id == "indie-one"

    async def test_unknown_venue_raises(self, pipeline: IngestionPipeline) -> None:
        with pytest.raises(UnknownVenue):
            await pipeline.save_screenings("nowhere", [make_raw()])

    async def test_unregistered_venue_row_is_a_persistence_error(self, pipeline: IngestionPipeline) -> None:
        # curzon-one is in the registry but ensure_venue_exists was never called for it
        with pytest.raises(PersistenceError):
            await pipeline.save_screenings("curzon-one", [make_raw()])

    async def test_screens_are_distinct_screenings(self, pipeline: IngestionPipeline, session_factory) -> None:
        start = at(1)
        raw = [make_raw(start=start, screen_name="Screen 1"), make_raw(start=start, screen_name="Screen 2")]

        result = await pipeline.save_screenings("indie-one", raw)

        assert result.added == 2
        assert await count_rows(session_factory, Screening) == 2

    async def test_duplicates_within_batch_are_skipped(self, pipeline: IngestionPipeline, session_factory) -> None:
        start = at(1)
        result = await pipeline.save_screenings("indie-one", [make_raw(start=start), make_raw(start=start)])

        assert (result.added, result.skipped) == (1, 1)
        assert await count_rows(session_factory, Screening) == 1

    async def test_screening_for_another_venue_is_skipped(self, pipeline: IngestionPipeline, session_factory) -> None:
        raw = [
            make_raw("Anora", booking_url=None, venue_id="ph-one"),
            make_raw("Flow", booking_url=None, venue_id="ph-two"),
        ]

        result = await pipeline.save_screenings("ph-one", raw)

        assert (result.added, result.skipped) == (1, 1)
        [screening] = await all_screenings(session_factory)
        assert screening.film_id == "anora"

    async def test_sets_last_scraped_at(self, pipeline: IngestionPipeline, session_factory) -> None:
        before = utcnow() - timedelta(seconds=1)
        await pipeline.save_screenings("indie-one", [make_raw()])

        async with session_factory() as db:
            venue = await db.get(Venue, "indie-one")
        assert ensure_utc(venue.last_scraped_at) >= before

    async def test_stores_times_in_utc(self, pipeline: IngestionPipeline, session_factory) -> None:
        bst = timezone(timedelta(hours=1))
        start = (at(1) + timedelta(hours=1)).astimezone(bst)
        await pipeline.save_screenings("indie-one", [make_raw(start=start)])

        [screening] = await all_screenings(session_factory)
        assert ensure_utc(screening.start_time) == start


class TestContamination:
    async def test_foreign_booking_url_is_nulled(
        self, pipeline: IngestionPipeline, session_factory, caplog
    ) -> None:
        raw = [
            make_raw("Anora", at(1), booking_url="https://www.picturehouses.com/booking/999"),
            make_raw("Flow", at(2)),
        ]

        with caplog.at_level(logging.WARNING, logger="cinefeed.services.pipeline"):
            result = await pipeline.save_screenings("indie-one", raw)

        assert result.added == 2
        assert len(result.contaminated) == 1
        incident = result.contaminated[0]
        assert incident.owner == "picturehouse"
        assert incident.venue_id == "indie-one"
        assert "Data quality" in caplog.text

        anora, flow = await all_screenings(session_factory)
        assert anora.booking_url is None
        assert flow.booking_url == "https://www.indieone.example/book/1"

    async def test_same_chain_url_is_kept(self, pipeline: IngestionPipeline, session_factory) -> None:
        url = "https://www.picturehouses.com/booking/1"
        result = await pipeline.save_screenings("ph-one", [make_raw(booking_url=url)])

        assert result.contaminated == []
        [screening] = await all_screenings(session_factory)
        assert screening.booking_url == url


class TestRollback:
    async def test_failed_batch_leaves_prior_state(self, pipeline: IngestionPipeline, session_factory) -> None:
        start = at(1)
        await pipeline.save_screenings("indie-one", [make_raw("Anora", start)])

        original_resolve = FilmResolver.resolve

        async def flaky_resolve(self, raw_title, *args, **kwargs):
            if raw_title == "Broken":
                raise OperationalError("INSERT INTO films", {}, Exception("disk I/O error"))
            return await original_resolve(self, raw_title, *args, **kwargs)

        raw = [
            make_raw("Anora", start, booking_url="https://www.indieone.example/book/changed"),
            make_raw("Flow", at(2)),
            make_raw("Broken", at(3)),
        ]
        with patch.object(FilmResolver, "resolve", flaky_resolve):
            with pytest.raises(PersistenceError):
                await pipeline.save_screenings("indie-one", raw)

        [screening] = await all_screenings(session_factory)
        assert screening.booking_url == "https://www.indieone.example/book/1"
        assert await count_rows(session_factory, Film) == 1


# ---------------------------------------------------------------------------
# Run history
# ---------------------------------------------------------------------------


class TestRecordRun:
    async def test_appends_run(self, pipeline: IngestionPipeline, session_factory) -> None:
        now = utcnow()
        await pipeline.record_run(
            ScrapeRun(
                venue_id="indie-one",
                started_at=now,
                completed_at=now,
                status=RUN_SUCCESS,
                screening_count=12,
            )
        )
        assert await count_rows(session_factory, ScrapeRun) == 1

    async def test_failure_is_logged_not_raised(self, pipeline: IngestionPipeline, caplog) -> None:
        db = AsyncMock()
        db.add = MagicMock(side_effect=OperationalError("INSERT", {}, Exception("gone")))
        factory = MagicMock()
        factory.return_value.__aenter__.return_value = db
        pipeline.session_factory = factory

        await pipeline.record_run(ScrapeRun(venue_id="indie-one", status=RUN_SUCCESS))

        db.rollback.assert_awaited_once()
        assert "failed to record scrape run" in caplog.text


# ---------------------------------------------------------------------------
# Write ordering
# ---------------------------------------------------------------------------


class TestWriteOrdering:
    def track_apply(self, events: list, delay: float = 0.02, run_original: bool = True):
        """Wrap ``_apply`` to record when each venue's transaction starts and ends."""
        original = IngestionPipeline._apply

        async def tracked(pipeline_self, db, venue_id, raw_screenings):
            events.append(("enter", venue_id))
            try:
                await asyncio.sleep(delay)
                if run_original:
                    return await original(pipeline_self, db, venue_id, raw_screenings)
                return SaveResult(venue_id=venue_id, added=len(raw_screenings))
            finally:
                events.append(("exit", venue_id))

        return patch.object(IngestionPipeline, "_apply", tracked)

    async def test_same_venue_writes_do_not_interleave(
        self, pipeline: IngestionPipeline, session_factory
    ) -> None:
        first_start, second_start = at(1), at(2)
        batch_a = [
            make_raw("Anora", first_start, booking_url="https://www.indieone.example/a/1"),
            make_raw("Flow", second_start, booking_url="https://www.indieone.example/a/2"),
        ]
        batch_b = [
            make_raw("Anora", first_start, booking_url="https://www.indieone.example/b/1"),
            make_raw("Flow", second_start, booking_url="https://www.indieone.example/b/2"),
        ]
        events: list = []

        with self.track_apply(events):
            results = await asyncio.gather(
                pipeline.save_screenings("indie-one", batch_a),
                pipeline.save_screenings("indie-1", batch_b),  # legacy id, same venue
            )

        assert events == [
            ("enter", "indie-one"),
            ("exit", "indie-one"),
            ("enter", "indie-one"),
            ("exit", "indie-one"),
        ]
        assert sorted((r.added, r.updated) for r in results) == [(0, 2), (2, 0)]

        # The final rows are one batch's complete result, never a mix of both
        urls = [s.booking_url for s in await all_screenings(session_factory)]
        assert urls in (
            [r.booking_url for r in batch_a],
            [r.booking_url for r in batch_b],
        )

    async def test_distinct_venues_write_in_parallel(self, pipeline: IngestionPipeline) -> None:
        events: list = []

        with self.track_apply(events, run_original=False):
            results = await asyncio.gather(
                pipeline.save_screenings("indie-one", [make_raw()]),
                pipeline.save_screenings("indie-two", [make_raw()]),
            )

        assert [r.venue_id for r in results] == ["indie-one", "indie-two"]
        # Both transactions were open before either finished
        assert [kind for kind, _ in events[:2]] == ["enter", "enter"]
        assert {venue for _, venue in events[:2]} == {"indie-one", "indie-two"}


# ---------------------------------------------------------------------------
# Contamination repair
# ---------------------------------------------------------------------------


class TestRepairContamination:
    @pytest.fixture
    async def contaminated(self, pipeline: IngestionPipeline, session_factory) -> None:
        """Write contaminated rows directly, as an older pipeline would have."""
        async with session_factory() as db:
            db.add(Film(id="anora", title="Anora", directors=[]))
            db.add_all([
                Screening(
                    venue_id="indie-one", film_id="anora", start_time=at(1), screen="",
                    booking_url="https://www.picturehouses.com/booking/1", format_tags=[],
                ),
                Screening(
                    venue_id="indie-one", film_id="anora", start_time=at(-3), screen="",
                    booking_url="https://www.picturehouses.com/booking/2", format_tags=[],
                ),
                Screening(
                    venue_id="indie-two", film_id="anora", start_time=at(2), screen="",
                    booking_url="https://tickets.indieone.example/3", format_tags=[],
                ),
                Screening(
                    venue_id="ph-one", film_id="anora", start_time=at(2), screen="",
                    booking_url="https://www.picturehouses.com/booking/4", format_tags=[],
                ),
            ])
            await db.commit()

    async def test_dry_run_reports_without_writing(
        self, pipeline: IngestionPipeline, contaminated, session_factory
    ) -> None:
        report = await pipeline.repair_contamination(dry_run=True)

        assert report.dry_run is True
        assert [(c.venue_id, c.owner) for c in report.changes] == [
            ("indie-one", "picturehouse"),
            ("indie-two", "indie-one"),
        ]
        screenings = await all_screenings(session_factory)
        assert sum(1 for s in screenings if s.booking_url is None) == 0

    async def test_repair_nulls_future_contaminated_urls(
        self, pipeline: IngestionPipeline, contaminated, session_factory
    ) -> None:
        report = await pipeline.repair_contamination()

        assert len(report.changes) == 2
        by_venue = {}
        for s in await all_screenings(session_factory):
            by_venue.setdefault(s.venue_id, []).append(s)

        past, future = by_venue["indie-one"]
        assert past.booking_url == "https://www.picturehouses.com/booking/2"
        assert future.booking_url is None
        assert by_venue["indie-two"][0].booking_url is None
        assert by_venue["ph-one"][0].booking_url == "https://www.picturehouses.com/booking/4"

    async def test_filter_by_venue(self, pipeline: IngestionPipeline, contaminated) -> None:
        report = await pipeline.repair_contamination(RepairFilter(venue_ids=["indie-1"]), dry_run=True)
        assert [c.venue_id for c in report.changes] == ["indie-one"]

        report = await pipeline.repair_contamination(RepairFilter(venue_ids=["indie-two"]), dry_run=True)
        assert [c.venue_id for c in report.changes] == ["indie-two"]

    async def test_filter_by_chain(self, pipeline: IngestionPipeline, contaminated) -> None:
        report = await pipeline.repair_contamination(RepairFilter(chain="picturehouse"), dry_run=True)
        assert report.changes == []

    async def test_second_repair_finds_nothing(self, pipeline: IngestionPipeline, contaminated) -> None:
        await pipeline.repair_contamination()
        report = await pipeline.repair_contamination()
        assert report.changes == []
