"""The Garden Cinema scraper."""

import logging
import re
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import httpx
from bs4 import BeautifulSoup, Tag

from cinefeed.config import settings
from cinefeed.errors import ExtractionError
from cinefeed.scrapers.base import BaseScraper
from cinefeed.scrapers.models import RawScreening

logger = logging.getLogger(__name__)

LONDON_TZ = ZoneInfo("Europe/London")

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_BOOKING_HREF_RE = re.compile(r"bookings\.thegardencinema\.co\.uk")


def infer_date(day: int, month: int, today: date) -> date:
    """
    Resolve a year-less "30 Jan" listing date.

    Dates more than two months behind today belong to next year, so a
    January listing scraped in December rolls over.
    """
    candidate = date(today.year, month, day)
    if candidate < today - timedelta(days=60):
        candidate = date(today.year + 1, month, day)
    return candidate


class GardenScraper(BaseScraper):
    """
    Scraper for The Garden Cinema.

    Uses Savoy Systems ticketing platform with structured film listings.
    """

    BASE_URL = "https://www.thegardencinema.co.uk"

    async def scrape(self) -> list[RawScreening]:
        try:
            async with httpx.AsyncClient(timeout=settings.scrape_timeout) as client:
                response = await client.get(self.BASE_URL)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise ExtractionError(f"Garden Cinema: request failed: {e}") from e

        screenings = self._parse_html(response.text, datetime.now(LONDON_TZ).date())
        logger.info(f"Garden Cinema ({self.venue.id}): Found {len(screenings)} screenings")
        return screenings

    def _parse_html(self, html: str, today: date) -> list[RawScreening]:
        """Parse Garden Cinema HTML to extract screenings."""
        soup = BeautifulSoup(html, "html.parser")

        film_containers = soup.find_all("div", class_="films-list__by-date__film")
        if not film_containers:
            # The listing markup is missing entirely: treat as a redesign, not an empty week
            raise ExtractionError("Garden Cinema: no film containers found in page")

        logger.debug(f"Found {len(film_containers)} film containers")

        screenings: list[RawScreening] = []
        for container in film_containers:
            try:
                screenings.extend(self._parse_container(container, today))
            except (AttributeError, ValueError) as e:
                logger.warning(f"Garden Cinema: Failed to parse film container: {e}")

        return screenings

    def _parse_container(self, container: Tag, today: date) -> list[RawScreening]:
        title_elem = container.find("h1", class_="films-list__by-date__film__title")
        title_link = title_elem.find("a") if title_elem else None
        if not title_link:
            return []

        # Rating badge sits inside the title link
        rating_span = title_link.find("span", class_="films-list__by-date__film__rating")
        if rating_span:
            rating_span.decompose()

        title = title_link.get_text(strip=True)
        if not title:
            return []

        screening_times = container.find("div", class_="films-list__by-date__film__screeningtimes")
        if not screening_times:
            return []

        screenings: list[RawScreening] = []
        for panel in screening_times.find_all("div", class_="screening-panel"):
            date_elem = panel.find("div", class_="screening-panel__date-title")
            if not date_elem:
                continue

            # "Fri 30 Jan"
            date_match = re.search(r"\b(\d{1,2})\s+([A-Za-z]{3})", date_elem.get_text(strip=True))
            if not date_match:
                continue
            month = _MONTHS.get(date_match.group(2).lower())
            if not month:
                continue
            try:
                screening_date = infer_date(int(date_match.group(1)), month, today)
            except ValueError:
                continue
            if screening_date < today:
                continue

            screen_elem = panel.find("div", class_="screening-panel__day")
            screen_name = screen_elem.get_text(strip=True) if screen_elem else None

            for time_link in panel.find_all("a", href=_BOOKING_HREF_RE):
                time_match = re.match(r"^(\d{1,2}):(\d{2})$", time_link.get_text(strip=True))
                if not time_match:
                    continue

                start_time = datetime(
                    screening_date.year,
                    screening_date.month,
                    screening_date.day,
                    int(time_match.group(1)),
                    int(time_match.group(2)),
                    tzinfo=LONDON_TZ,
                )
                screenings.append(
                    RawScreening(
                        title=title,
                        start_time=start_time,
                        booking_url=time_link.get("href"),
                        screen_name=screen_name or None,
                        venue_id=self.venue.id,
                    )
                )
                logger.debug(f"Added: {title} at {start_time}")

        return screenings
