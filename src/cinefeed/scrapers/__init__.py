"""Scraper registry for mapping extraction job ids to scraper classes."""

from typing import Type

from cinefeed.registry import VenueDefinition
from cinefeed.scrapers.base import BaseScraper
from cinefeed.scrapers.garden import GardenScraper
from cinefeed.scrapers.models import RawScreening
from cinefeed.scrapers.picturehouse import PicturehouseScraper
from cinefeed.scrapers.rio import RioScraper

# Registry mapping extraction job ids to scraper classes
SCRAPER_REGISTRY: dict[str, Type[BaseScraper]] = {
    "garden": GardenScraper,
    "picturehouse": PicturehouseScraper,
    "rio": RioScraper,
}


def get_scraper(job_id: str, venue: VenueDefinition) -> BaseScraper | None:
    """
    Get a scraper instance for one venue.

    Args:
        job_id: The extraction job id from the registry (e.g., "rio")
        venue: The venue the scraper will run for

    Returns:
        Scraper instance or None if no scraper is registered for job_id
    """
    scraper_class = SCRAPER_REGISTRY.get(job_id)
    if scraper_class is None:
        return None
    return scraper_class(venue)


__all__ = [
    "SCRAPER_REGISTRY",
    "get_scraper",
    "BaseScraper",
    "GardenScraper",
    "PicturehouseScraper",
    "RawScreening",
    "RioScraper",
]
