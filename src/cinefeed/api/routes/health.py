"""Liveness endpoint."""

from fastapi import APIRouter, Depends

from cinefeed.api.deps import registry_dep
from cinefeed.registry import CinemaRegistry

router = APIRouter()


@router.get("/health", tags=["health"])
async def health_check(registry: CinemaRegistry = Depends(registry_dep)) -> dict[str, str | int]:
    """
    Liveness check.

    Returns:
        Status plus the number of active venues in the loaded registry. Venue
        health lives under ``/api/admin/health-check``.
    """
    return {"status": "ok", "venues": len(registry.active_venues())}
