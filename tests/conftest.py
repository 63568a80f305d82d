"""Shared test fixtures."""

from collections.abc import AsyncIterator

import pytest
from fastapi import FastAPI
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cinefeed.api.routes import admin, health, venues
from cinefeed.models import Base
from cinefeed.registry import CinemaRegistry, VenueDefinition

TEST_VENUES = [
    VenueDefinition(
        id="indie-one",
        name="Indie One",
        short_name="Indie 1",
        website="https://www.indieone.example",
        job_id="fake",
        legacy_ids=("indie-1", "the-indie"),
        booking_domains=("tickets.indieone.example",),
    ),
    VenueDefinition(
        id="indie-two",
        name="Indie Two",
        short_name="Indie 2",
        website="https://indietwo.example",
        job_id="fake",
    ),
    VenueDefinition(
        id="ph-one",
        name="Picturehouse One",
        short_name="PH 1",
        website="https://www.picturehouses.com/cinema/one",
        job_id="fake",
        chain="picturehouse",
        legacy_ids=("one-picturehouse",),
        job_config={"cinema_id": "001"},
    ),
    VenueDefinition(
        id="ph-two",
        name="Picturehouse Two",
        short_name="PH 2",
        website="https://www.picturehouses.com/cinema/two",
        job_id="fake",
        chain="picturehouse",
        job_config={"cinema_id": "002"},
    ),
    VenueDefinition(
        id="curzon-one",
        name="Curzon One",
        short_name="Curzon 1",
        website="https://www.curzon.com/venues/one",
        job_id="fake",
        chain="curzon",
        orchestration_id="curzon-one-legacy-job",
    ),
    VenueDefinition(
        id="closed",
        name="Closed Cinema",
        short_name="Closed",
        website="https://closed.example",
        job_id="fake",
        active=False,
    ),
]

TEST_CHAIN_DOMAINS = {
    "picturehouse": ["picturehouses.com"],
    "curzon": ["curzon.com"],
    "everyman": ["everymancinema.com"],
}

TEST_AGNOSTIC_DOMAINS = ["eventbrite.co.uk", "ticketsource.co.uk"]


@pytest.fixture
def registry() -> CinemaRegistry:
    return CinemaRegistry(TEST_VENUES, TEST_CHAIN_DOMAINS, TEST_AGNOSTIC_DOMAINS)


@pytest.fixture
async def session_factory(tmp_path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """A fresh SQLite database per test, schema created from the models."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest correctly on SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        # Enforce foreign keys as PostgreSQL does
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def test_app() -> FastAPI:
    """Minimal FastAPI app without the APScheduler lifespan, for API tests."""
    app = FastAPI()
    app.include_router(health.router)
    app.include_router(venues.router, prefix="/api")
    app.include_router(admin.router, prefix="/api")
    return app
