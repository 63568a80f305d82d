"""Scrape run model: one row per extraction attempt for a venue."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cinefeed.models.base import Base

RUN_SUCCESS = "success"
RUN_FAILED = "failed"


class ScrapeRun(Base):
    """
    Extraction run history.

    ``screening_count`` is the number of raw screenings the scraper returned,
    whether or not they were persisted. ``error_type`` is one of
    ``extraction``, ``validation``, ``persistence`` or ``unexpected``
    for failed runs.
    """

    __tablename__ = "scrape_runs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    venue_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("venues.id"),
        nullable=False,
        index=True,
    )
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    error_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    screening_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    added: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<ScrapeRun(venue_id={self.venue_id!r}, status={self.status!r}, "
            f"screening_count={self.screening_count})>"
        )
