"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI

from cinefeed.api.routes import admin, health, venues
from cinefeed.config import settings
from cinefeed.tasks.scrape_job import run_health_check, run_scrape_all

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: the scheduler is the only orchestration in-process
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_scrape_all,
        trigger=CronTrigger(hour=settings.scrape_cron_hour, minute=0),
        id="daily_scrape",
        name="Daily scrape of all active venues",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        run_health_check,
        trigger=CronTrigger(hour=settings.health_cron_hour, minute=0),
        id="daily_health_check",
        name="Daily venue health check",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started: scrape daily at {settings.scrape_cron_hour:02d}:00 UTC, "
        f"health check at {settings.health_cron_hour:02d}:00 UTC"
    )

    yield

    # Shutdown: stop the scheduler gracefully
    scheduler.shutdown(wait=False)
    logger.info("Scheduler shut down")


# Create FastAPI app
app = FastAPI(
    title="cinefeed",
    description="Cinema listings ingestion and scraper health monitoring",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(health.router)
app.include_router(venues.router, prefix="/api", tags=["venues"])
app.include_router(admin.router, prefix="/api", tags=["admin"])
