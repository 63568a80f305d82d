"""Shared FastAPI dependencies."""

import secrets

from fastapi import Header, HTTPException, status

from cinefeed.config import settings
from cinefeed.registry import CinemaRegistry, get_registry
from cinefeed.services.health import HealthMonitor
from cinefeed.services.pipeline import IngestionPipeline
from cinefeed.services.runner import ScrapeRunner
from cinefeed.tasks.scrape_job import get_monitor, get_pipeline, get_runner


async def require_admin(authorization: str | None = Header(default=None)) -> str:
    """
    Accept callers presenting the configured admin bearer token.

    Returns the caller identity recorded in logs. Authentication itself is
    the deployment's concern; this only checks the shared token.
    """
    if not settings.admin_api_token:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Admin API is not configured")

    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(token, settings.admin_api_token):
        raise HTTPException(
            status.HTTP_401_UNAUTHORIZED,
            "Invalid or missing admin token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return "admin"


def registry_dep() -> CinemaRegistry:
    return get_registry()


def runner_dep() -> ScrapeRunner:
    return get_runner()


def pipeline_dep() -> IngestionPipeline:
    return get_pipeline()


def monitor_dep() -> HealthMonitor:
    return get_monitor()
