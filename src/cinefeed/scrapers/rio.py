"""Rio Cinema scraper using embedded JSON in page HTML."""

import json
import logging
import re
from datetime import date, datetime
from zoneinfo import ZoneInfo

import httpx

from cinefeed.config import settings
from cinefeed.errors import ExtractionError
from cinefeed.scrapers.base import BaseScraper
from cinefeed.scrapers.models import RawScreening

logger = logging.getLogger(__name__)

LONDON_TZ = ZoneInfo("Europe/London")

BASE_URL = "https://riocinema.org.uk"
WHATS_ON_URL = f"{BASE_URL}/Rio.dll/WhatsOn"

# Performance flag → human-readable label
_PERF_FLAGS: dict[str, str] = {
    "CB": "Carers & Babies",
    "HoH": "Hard of Hearing",
    "PP": "Pink Palace",
    "SP": "Special",
    "CM": "Classic Matinee",
    "QA": "Q&A",
    "FF": "Family Flicks",
    "RS": "Relaxed Screening",
    "NoAds": "No Ads",
}


class RioScraper(BaseScraper):
    """
    Scraper for Rio Cinema (Dalston).

    The What's On page embeds all film/performance data as a JavaScript
    ``var Events = {...}`` assignment, so plain httpx + json is enough.
    """

    WHATS_ON_URL = WHATS_ON_URL

    async def scrape(self) -> list[RawScreening]:
        try:
            async with httpx.AsyncClient(
                timeout=settings.scrape_timeout, follow_redirects=True
            ) as client:
                response = await client.get(self.WHATS_ON_URL)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise ExtractionError(f"Rio Cinema: request failed: {e}") from e

        screenings = self._parse_html(response.text, datetime.now(LONDON_TZ).date())
        logger.info(f"Rio Cinema ({self.venue.id}): Found {len(screenings)} screenings")
        return screenings

    def _parse_html(self, html: str, date_from: date) -> list[RawScreening]:
        """Extract the embedded Events JSON and parse it into RawScreenings."""
        # raw_decode parses exactly one JSON value regardless of what follows
        marker_match = re.search(r"var\s+Events\s*=\s*", html)
        if not marker_match:
            logger.debug(f"Rio Cinema: Page HTML snippet (first 2000 chars): {html[:2000]}")
            raise ExtractionError("Rio Cinema: 'var Events' not found in page HTML")

        try:
            events_data, _ = json.JSONDecoder().raw_decode(html, marker_match.end())
        except json.JSONDecodeError as e:
            raise ExtractionError(f"Rio Cinema: Events JSON is malformed: {e}") from e

        if not isinstance(events_data, dict):
            raise ExtractionError("Rio Cinema: Events payload is not an object")

        films = events_data.get("Events", [])
        logger.debug(f"Rio Cinema: {len(films)} films found in embedded JSON")

        screenings: list[RawScreening] = []
        for film in films:
            try:
                screenings.extend(self._parse_film(film, date_from))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Rio Cinema ({self.venue.id}): Failed to parse film entry: {e}")

        return screenings

    def _parse_film(self, film: dict, date_from: date) -> list[RawScreening]:
        title = str(film.get("Title") or "").strip()
        if not title:
            return []

        screenings: list[RawScreening] = []
        for perf in film.get("Performances", []):
            try:
                screening = self._parse_performance(title, perf, date_from)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Rio Cinema: Failed to parse performance for '{title}': {e}")
                continue
            if screening:
                screenings.append(screening)

        return screenings

    def _parse_performance(
        self,
        title: str,
        perf: dict,
        date_from: date,
    ) -> RawScreening | None:
        start_date_str = perf.get("StartDate", "")  # "2026-02-16"
        start_time_str = perf.get("StartTime", "")  # "1100" (= 11:00), "2040" (= 20:40)

        if not start_date_str or not start_time_str:
            return None

        try:
            perf_date = date.fromisoformat(start_date_str)
        except ValueError:
            return None

        if perf_date < date_from:
            return None

        time_str = str(start_time_str).zfill(4)
        try:
            hour = int(time_str[:2])
            minute = int(time_str[2:])
        except ValueError:
            return None

        start_time = datetime(
            perf_date.year,
            perf_date.month,
            perf_date.day,
            hour,
            minute,
            tzinfo=LONDON_TZ,
        )

        # Booking URL is relative: "Booking?Booking=TSelectItems..."
        perf_url = perf.get("URL", "")
        booking_url: str | None = None
        if perf_url:
            if perf_url.startswith("http"):
                booking_url = perf_url
            else:
                booking_url = f"{BASE_URL}/Rio.dll/{perf_url}"

        screen_name = perf.get("AuditoriumName") or None

        return RawScreening(
            title=title,
            start_time=start_time,
            booking_url=booking_url,
            screen_name=str(screen_name) if screen_name else None,
            format_tags=self._extract_format_tags(perf),
            venue_id=self.venue.id,
        )

    def _extract_format_tags(self, perf: dict) -> list[str]:
        return [label for flag, label in _PERF_FLAGS.items() if perf.get(flag) == "Y"]
