"""Venue lookup endpoints."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query

from cinefeed.api.deps import registry_dep
from cinefeed.errors import UnknownVenue
from cinefeed.registry import CinemaRegistry, VenueDefinition
from cinefeed.schemas import VenueResolution, VenueResponse

router = APIRouter()


def _to_response(venue: VenueDefinition, registry: CinemaRegistry) -> VenueResponse:
    return VenueResponse(
        **(asdict(venue) | {"orchestration_id": registry.map_to_orchestration_id(venue.id)})
    )


@router.get("/venues", response_model=list[VenueResponse])
async def get_venues(
    chain: str | None = Query(default=None, description="Only venues of this chain"),
    include_inactive: bool = False,
    registry: CinemaRegistry = Depends(registry_dep),
) -> list[VenueResponse]:
    venues = registry.all_venues() if include_inactive else registry.active_venues()
    if chain:
        venues = [v for v in venues if v.chain == chain]
    return [_to_response(v, registry) for v in sorted(venues, key=lambda v: v.name)]


@router.get("/venues/{venue_id}", response_model=VenueResponse)
async def get_venue(
    venue_id: str,
    registry: CinemaRegistry = Depends(registry_dep),
) -> VenueResponse:
    """Get one venue by canonical or legacy id."""
    venue = registry.get_venue(venue_id)
    if venue is None:
        raise HTTPException(status_code=404, detail=f"Unknown venue: {venue_id!r}")
    return _to_response(venue, registry)


@router.get("/venues/{venue_id}/resolve", response_model=VenueResolution)
async def resolve_venue(
    venue_id: str,
    registry: CinemaRegistry = Depends(registry_dep),
) -> VenueResolution:
    try:
        canonical = registry.resolve_canonical(venue_id)
    except UnknownVenue as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return VenueResolution(
        requested_id=venue_id,
        canonical_id=canonical,
        is_legacy=registry.is_legacy_id(venue_id),
    )
