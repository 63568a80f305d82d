"""Pydantic schemas for venue data."""

from pydantic import BaseModel, ConfigDict


class VenueResponse(BaseModel):
    """Venue as declared in the registry."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    short_name: str
    chain: str | None = None
    website: str
    area: str | None = None
    address: str | None = None
    postcode: str | None = None
    coordinates: tuple[float, float] | None = None
    features: list[str] = []
    active: bool
    legacy_ids: list[str] = []
    job_id: str
    orchestration_id: str


class VenueResolution(BaseModel):
    """Result of resolving a canonical or legacy id."""

    requested_id: str
    canonical_id: str
    is_legacy: bool
