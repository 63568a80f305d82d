"""SQLAlchemy ORM models."""

from cinefeed.models.base import Base
from cinefeed.models.film import Film
from cinefeed.models.health_snapshot import HealthSnapshot
from cinefeed.models.scrape_run import ScrapeRun
from cinefeed.models.screening import Screening
from cinefeed.models.venue import Venue

__all__ = ["Base", "Film", "HealthSnapshot", "ScrapeRun", "Screening", "Venue"]
