"""Data models for scrapers."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class RawScreening:
    """
    Raw screening data from a cinema scraper.

    This is the output format that all scrapers must return. The ingestion
    pipeline resolves the title to a Film and upserts a Screening row.
    """

    title: str  # Film title as it appears on cinema website
    start_time: datetime  # Screening time (timezone-aware)
    end_time: datetime | None = None
    screen_name: str | None = None  # Screen/auditorium name
    format_tags: list[str] = field(default_factory=list)  # e.g. ["35mm", "Subtitled"]
    booking_url: str | None = None  # URL to book tickets
    venue_id: str | None = None  # Source venue; set by chain scrapers
    year: int | None = None
    directors: list[str] = field(default_factory=list)
    poster_url: str | None = None

    def __post_init__(self) -> None:
        """Validate that times are timezone-aware."""
        if self.start_time.tzinfo is None:
            raise ValueError("start_time must be timezone-aware")
        if self.end_time is not None and self.end_time.tzinfo is None:
            raise ValueError("end_time must be timezone-aware")
