"""Pydantic schemas for health check data."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class HealthMetricsResponse(BaseModel):
    """Per-venue classification from one health check."""

    model_config = ConfigDict(from_attributes=True)

    venue_id: str
    checked_at: datetime
    screening_count: int
    baseline_count: float | None = None
    ratio: float | None = None
    future_screenings: int
    zero_results: bool
    last_run_failed: bool
    hours_since_last_run: float | None = None
    severity: str
    warnings: list[str]
    anomaly_detected: bool
    consecutive_anomalies: int
    should_block_next_run: bool
    triggered_alert: bool


class HealthReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    checked_at: datetime
    healthy: int
    warning: int
    critical: int
    warnings: list[str]
    blocked: list[str]
    alerted: list[str]
    errors: dict[str, str]
    metrics: list[HealthMetricsResponse]


class HealthSnapshotResponse(BaseModel):
    """Stored snapshot row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    venue_id: str
    snapshot_at: datetime
    screening_count: int
    baseline_count: float | None = None
    ratio: float | None = None
    future_screenings: int
    zero_results: bool
    last_run_failed: bool
    hours_since_last_run: float | None = None
    severity: str
    warnings: list[str]
    anomaly_detected: bool
    consecutive_anomalies: int
    should_block_next_run: bool
    triggered_alert: bool
