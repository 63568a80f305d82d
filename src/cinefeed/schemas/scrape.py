"""Pydantic schemas for scrape runs and maintenance operations."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class RunResultResponse(BaseModel):
    """Outcome of one venue run."""

    model_config = ConfigDict(from_attributes=True)

    venue_id: str
    success: bool
    count: int
    added: int
    updated: int
    skipped: int
    contaminated: int
    duration_ms: int
    error: str | None = None
    error_type: str | None = None
    blocked: bool = False


class BatchRequest(BaseModel):
    venue_ids: list[str]
    force: bool = False


class BatchResponse(BaseModel):
    """Heterogeneous per-venue results for a batch run."""

    succeeded: int
    failed: int
    blocked: int
    results: list[RunResultResponse]


class RepairRequest(BaseModel):
    """Contamination repair scope. Defaults to a dry run over every venue."""

    dry_run: bool = True
    venue_ids: list[str] = []
    chain: str | None = None


class RepairChangeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    screening_id: int
    venue_id: str
    start_time: datetime
    old_url: str
    new_url: str | None
    owner: str


class RepairResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    dry_run: bool
    changes: list[RepairChangeResponse]


class DuplicateFilmResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    film_id: str
    other_id: str
    title: str
    other_title: str
    score: float
