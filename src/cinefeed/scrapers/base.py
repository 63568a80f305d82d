"""Base scraper interface for all cinema scrapers."""

from abc import ABC, abstractmethod

from cinefeed.registry import VenueDefinition
from cinefeed.scrapers.models import RawScreening


class BaseScraper(ABC):
    """
    Abstract base class for all cinema scrapers.

    One instance is built per venue run. Chain scrapers read their per-site
    parameters from ``venue.job_config``. Titles are returned as scraped;
    normalisation happens in the ingestion pipeline.
    """

    def __init__(self, venue: VenueDefinition) -> None:
        self.venue = venue

    @abstractmethod
    async def scrape(self) -> list[RawScreening]:
        """
        Fetch all upcoming screenings for this venue.

        Returns:
            List of raw screenings, collected in full before returning

        Raises:
            ExtractionError: The site was unreachable or its markup/payload
                could not be parsed. Never return an empty list to hide a
                failure.
        """
