"""Picturehouse Cinemas scraper using their API."""

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

import httpx

from cinefeed.config import settings
from cinefeed.errors import ExtractionError
from cinefeed.registry import VenueDefinition
from cinefeed.scrapers.base import BaseScraper
from cinefeed.scrapers.models import RawScreening

logger = logging.getLogger(__name__)

LONDON_TZ = ZoneInfo("Europe/London")


class PicturehouseScraper(BaseScraper):
    """
    Scraper for Picturehouse Cinemas.

    One implementation serves every site in the chain; the site is selected by
    ``job_config["cinema_id"]`` (verified against the live ajax-cinema-list
    endpoint).
    """

    BASE_URL = "https://www.picturehouses.com"
    API_URL = "https://www.picturehouses.com/api/scheduled-movies-ajax"

    def __init__(self, venue: VenueDefinition) -> None:
        super().__init__(venue)
        cinema_id = venue.job_config.get("cinema_id")
        if not cinema_id:
            raise ValueError(f"Picturehouse venue {venue.id} has no cinema_id in job_config")
        self.cinema_id = cinema_id

    async def scrape(self) -> list[RawScreening]:
        """
        Fetch screenings from the Picturehouse API.

        The API ignores the date parameter and always returns every future
        screening from the current moment, so a single call is sufficient.
        """
        headers = {
            "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36",
            "Referer": f"{self.BASE_URL}/whats-on",
            "Content-Type": "application/x-www-form-urlencoded",
        }
        data = {
            "cinema_id": self.cinema_id,
            "date": datetime.now(LONDON_TZ).strftime("%Y-%m-%d"),
        }

        try:
            async with httpx.AsyncClient(timeout=settings.scrape_timeout) as client:
                response = await client.post(self.API_URL, headers=headers, data=data)
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPError as e:
            raise ExtractionError(f"Picturehouse ({self.venue.id}): request failed: {e}") from e
        except ValueError as e:
            raise ExtractionError(f"Picturehouse ({self.venue.id}): response is not JSON") from e

        screenings = self._parse_response(result)
        logger.info(f"Picturehouse ({self.venue.id}): Found {len(screenings)} screenings")
        return screenings

    def _parse_response(self, result: dict) -> list[RawScreening]:
        if not isinstance(result, dict) or result.get("response") != "success":
            message = result.get("message", "Unknown error") if isinstance(result, dict) else result
            raise ExtractionError(f"Picturehouse ({self.venue.id}): API returned error: {message}")

        screenings: list[RawScreening] = []
        for movie in result.get("movies", []):
            try:
                screenings.extend(self._parse_movie(movie))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Picturehouse ({self.venue.id}): Failed to parse movie: {e}")
        return screenings

    def _parse_movie(self, movie: dict) -> list[RawScreening]:
        """Parse a movie dict from the API into RawScreening objects."""
        title = str(movie.get("Title") or "").strip()
        if not title:
            return []

        screenings: list[RawScreening] = []
        for show_time in movie.get("show_times", []):
            # The payload can include other sites of the chain
            if show_time.get("CinemaId") != self.cinema_id:
                continue

            # ISO format: "2026-03-25T20:00:00"
            showtime_str = show_time.get("Showtime")
            if not showtime_str:
                continue
            try:
                start_time = datetime.fromisoformat(showtime_str)
            except ValueError:
                logger.warning(f"Picturehouse: Unparseable showtime {showtime_str!r} for '{title}'")
                continue
            if start_time.tzinfo is None:
                start_time = start_time.replace(tzinfo=LONDON_TZ)

            event_id = show_time.get("EventId")
            booking_url = f"{self.BASE_URL}/booking/{event_id}" if event_id else None

            screenings.append(
                RawScreening(
                    title=title,
                    start_time=start_time,
                    booking_url=booking_url,
                    screen_name=show_time.get("ScreenName") or None,
                    venue_id=self.venue.id,
                )
            )
            logger.debug(f"Parsed: {title} at {start_time}")

        return screenings
