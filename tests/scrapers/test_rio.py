"""Unit tests for the Rio Cinema scraper."""

import json
from datetime import date, datetime
from unittest.mock import AsyncMock, MagicMock, patch
from zoneinfo import ZoneInfo

import httpx
import pytest

from cinefeed.errors import ExtractionError
from cinefeed.registry import get_registry
from cinefeed.scrapers.rio import RioScraper

LONDON_TZ = ZoneInfo("Europe/London")

EVENTS = {
    "Events": [
        {
            "Title": "Nosferatu (1922)",
            "Performances": [
                {
                    "StartDate": "2026-10-20",
                    "StartTime": "1830",
                    "URL": "Booking?ShowtimeId=1001",
                    "AuditoriumName": "Screen 1",
                    "QA": "Y",
                },
                {"StartDate": "2026-10-21", "StartTime": "2040", "URL": "Booking?ShowtimeId=1002"},
            ],
        },
        {
            "Title": "Preview: The Substance",
            "Performances": [
                {"StartDate": "2026-10-20", "StartTime": "0930", "URL": "Booking?ShowtimeId=1003"},
            ],
        },
        {
            "Title": "Old Film",
            "Performances": [
                {"StartDate": "2026-10-01", "StartTime": "1800", "URL": "Booking?ShowtimeId=900"},
            ],
        },
    ]
}


def make_html(events: dict | list = EVENTS) -> str:
    return (
        "<html><head><script>"
        f"var Events = {json.dumps(events)}; var Other = {{\"k\": \"v; with }}; inside\"}};"
        "</script></head><body></body></html>"
    )


@pytest.fixture
def scraper() -> RioScraper:
    return RioScraper(get_registry().require_venue("rio-dalston"))


def make_mock_client(response: MagicMock | None = None, get_error: Exception | None = None):
    mock_client = AsyncMock()
    if get_error is not None:
        mock_client.get = AsyncMock(side_effect=get_error)
    else:
        mock_client.get = AsyncMock(return_value=response)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


# ---------------------------------------------------------------------------
# _parse_html — pure parsing, no HTTP
# ---------------------------------------------------------------------------


class TestRioParseHtml:
    def test_extracts_upcoming_screenings(self, scraper: RioScraper) -> None:
        # Nosferatu x2 + The Substance; Old Film is before date_from
        screenings = scraper._parse_html(make_html(), date(2026, 10, 17))
        assert len(screenings) == 3

    def test_keeps_raw_titles(self, scraper: RioScraper) -> None:
        screenings = scraper._parse_html(make_html(), date(2026, 10, 17))
        assert {s.title for s in screenings} == {"Nosferatu (1922)", "Preview: The Substance"}

    def test_tags_screenings_with_source_venue(self, scraper: RioScraper) -> None:
        screenings = scraper._parse_html(make_html(), date(2026, 10, 17))
        assert {s.venue_id for s in screenings} == {"rio-dalston"}

    def test_missing_events_is_an_extraction_error(self, scraper: RioScraper) -> None:
        with pytest.raises(ExtractionError):
            scraper._parse_html("<html><body>Site redesigned</body></html>", date(2026, 10, 17))

    def test_malformed_json_is_an_extraction_error(self, scraper: RioScraper) -> None:
        with pytest.raises(ExtractionError):
            scraper._parse_html("var Events = {'Events': [}", date(2026, 10, 17))

    def test_non_object_payload_is_an_extraction_error(self, scraper: RioScraper) -> None:
        with pytest.raises(ExtractionError):
            scraper._parse_html(make_html([]), date(2026, 10, 17))

    def test_empty_programme_is_not_an_error(self, scraper: RioScraper) -> None:
        assert scraper._parse_html(make_html({"Events": []}), date(2026, 10, 17)) == []

    def test_skips_untitled_films(self, scraper: RioScraper) -> None:
        events = {"Events": [{"Title": "", "Performances": EVENTS["Events"][0]["Performances"]}]}
        assert scraper._parse_html(make_html(events), date(2026, 10, 17)) == []


# ---------------------------------------------------------------------------
# _parse_performance — pure parsing, no HTTP
# ---------------------------------------------------------------------------


class TestRioParsePerformance:
    def setup_method(self) -> None:
        self.scraper = RioScraper(get_registry().require_venue("rio-dalston"))
        self.date_from = date(2026, 10, 17)

    def test_parses_basic_performance(self) -> None:
        perf = {
            "StartDate": "2026-10-20",
            "StartTime": "1830",
            "URL": "Booking?ShowtimeId=1001",
            "AuditoriumName": "Screen 1",
        }
        screening = self.scraper._parse_performance("Nosferatu", perf, self.date_from)
        assert screening is not None
        assert screening.start_time == datetime(2026, 10, 20, 18, 30, tzinfo=LONDON_TZ)
        assert screening.screen_name == "Screen 1"

    def test_parses_time_with_leading_zero(self) -> None:
        perf = {"StartDate": "2026-10-20", "StartTime": "930", "URL": "Booking?id=1"}
        screening = self.scraper._parse_performance("Film", perf, self.date_from)
        assert screening is not None
        assert (screening.start_time.hour, screening.start_time.minute) == (9, 30)

    def test_past_performance_is_dropped(self) -> None:
        perf = {"StartDate": "2026-10-16", "StartTime": "1800", "URL": "Booking?id=99"}
        assert self.scraper._parse_performance("Film", perf, self.date_from) is None

    def test_missing_fields_are_dropped(self) -> None:
        assert self.scraper._parse_performance("Film", {"StartTime": "1800"}, self.date_from) is None
        assert self.scraper._parse_performance("Film", {"StartDate": "2026-10-20"}, self.date_from) is None

    def test_bad_date_is_dropped(self) -> None:
        perf = {"StartDate": "20/10/2026", "StartTime": "1800"}
        assert self.scraper._parse_performance("Film", perf, self.date_from) is None

    def test_builds_absolute_booking_url(self) -> None:
        perf = {"StartDate": "2026-10-20", "StartTime": "1800", "URL": "Booking?ShowtimeId=1001"}
        screening = self.scraper._parse_performance("Film", perf, self.date_from)
        assert screening.booking_url == "https://riocinema.org.uk/Rio.dll/Booking?ShowtimeId=1001"

    def test_passes_through_absolute_booking_url(self) -> None:
        perf = {"StartDate": "2026-10-20", "StartTime": "1800", "URL": "https://www.eventbrite.co.uk/e/1"}
        screening = self.scraper._parse_performance("Film", perf, self.date_from)
        assert screening.booking_url == "https://www.eventbrite.co.uk/e/1"


class TestRioExtractFormatTags:
    def setup_method(self) -> None:
        self.scraper = RioScraper(get_registry().require_venue("rio-dalston"))

    def test_no_active_flags(self) -> None:
        assert self.scraper._extract_format_tags({"HoH": "N", "RS": "N"}) == []

    def test_active_flags_become_labels(self) -> None:
        assert self.scraper._extract_format_tags({"HoH": "Y", "QA": "N", "RS": "Y"}) == [
            "Hard of Hearing",
            "Relaxed Screening",
        ]


# ---------------------------------------------------------------------------
# scrape — mocked HTTP
# ---------------------------------------------------------------------------


class TestRioScrape:
    async def test_returns_screenings_from_mocked_response(self, scraper: RioScraper) -> None:
        mock_response = MagicMock()
        mock_response.text = make_html()
        mock_response.raise_for_status = MagicMock()
        mock_client = make_mock_client(mock_response)

        with (
            patch("httpx.AsyncClient", return_value=mock_client),
            patch("cinefeed.scrapers.rio.datetime") as mock_datetime,
        ):
            mock_datetime.now.return_value = datetime(2026, 10, 17, 9, 0, tzinfo=LONDON_TZ)
            mock_datetime.side_effect = lambda *args, **kwargs: datetime(*args, **kwargs)
            screenings = await scraper.scrape()

        assert len(screenings) == 3
        assert all(s.start_time.tzinfo is not None for s in screenings)
        mock_client.get.assert_awaited_once_with(RioScraper.WHATS_ON_URL)

    async def test_http_error_is_an_extraction_error(self, scraper: RioScraper) -> None:
        mock_client = make_mock_client(get_error=httpx.ConnectError("Connection refused"))

        with patch("httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(ExtractionError):
                await scraper.scrape()
