"""Health snapshot model: append-only history of per-venue health checks."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from cinefeed.models.base import Base, JSONType


class HealthSnapshot(Base):
    """
    One row per venue per health check. Rows are never updated.

    Used to compute rolling baselines, to count consecutive anomalous checks,
    to derive the should-block-next-run circuit breaker, and to deduplicate
    alerts (``triggered_alert``).
    """

    __tablename__ = "health_snapshots"
    __table_args__ = (
        Index("ix_health_snapshots_venue_time", "venue_id", "snapshot_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # Registry id, no FK: active venues are checked before their first run
    # has registered the venues row
    venue_id: Mapped[str] = mapped_column(String(100), nullable=False)
    snapshot_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Volume
    screening_count: Mapped[int] = mapped_column(Integer, nullable=False)
    baseline_count: Mapped[float | None] = mapped_column(Float, nullable=True)
    ratio: Mapped[float | None] = mapped_column(Float, nullable=True)
    future_screenings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    zero_results: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Freshness
    last_run_failed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    hours_since_last_run: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Classification
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    warnings: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    anomaly_detected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    consecutive_anomalies: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    should_block_next_run: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Alerting
    triggered_alert: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<HealthSnapshot(venue_id={self.venue_id!r}, severity={self.severity!r}, "
            f"snapshot_at={self.snapshot_at})>"
        )
