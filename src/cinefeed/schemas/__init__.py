"""Pydantic schemas for API requests and responses."""

from cinefeed.schemas.health import (
    HealthMetricsResponse,
    HealthReportResponse,
    HealthSnapshotResponse,
)
from cinefeed.schemas.scrape import (
    BatchRequest,
    BatchResponse,
    DuplicateFilmResponse,
    RepairChangeResponse,
    RepairRequest,
    RepairResponse,
    RunResultResponse,
)
from cinefeed.schemas.venue import VenueResolution, VenueResponse

__all__ = [
    "BatchRequest",
    "BatchResponse",
    "DuplicateFilmResponse",
    "HealthMetricsResponse",
    "HealthReportResponse",
    "HealthSnapshotResponse",
    "RepairChangeResponse",
    "RepairRequest",
    "RepairResponse",
    "RunResultResponse",
    "VenueResolution",
    "VenueResponse",
]
