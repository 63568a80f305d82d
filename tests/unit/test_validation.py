"""Unit tests for scrape result validation."""

from datetime import datetime, timedelta, timezone

import pytest

from cinefeed.errors import ValidationError
from cinefeed.registry import VenueDefinition
from cinefeed.scrapers.models import RawScreening
from cinefeed.scrapers.validation import find_problems, validate_screenings

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)

VENUE = VenueDefinition(
    id="indie-one",
    name="Indie One",
    short_name="Indie 1",
    website="https://www.indieone.example",
    job_id="fake",
    min_screenings=2,
)


def make_raw(title: str = "Anora", days: float = 1, **kwargs) -> RawScreening:
    return RawScreening(title=title, start_time=NOW + timedelta(days=days), **kwargs)


class TestFindProblems:
    def test_clean_batch(self) -> None:
        batch = [make_raw(), make_raw(days=2, booking_url="https://www.indieone.example/b/1")]
        assert find_problems(VENUE, batch, forward_window_days=30, now=NOW) == []

    def test_too_few_screenings(self) -> None:
        problems = find_problems(VENUE, [make_raw()], forward_window_days=30, now=NOW)
        assert problems == ["expected at least 2 screening(s), got 1"]

    def test_empty_title(self) -> None:
        problems = find_problems(VENUE, [make_raw(), make_raw(title="  ")], 30, now=NOW)
        assert problems == ["#1: empty title"]

    def test_screening_earlier_today_is_tolerated(self) -> None:
        batch = [make_raw(days=-0.5), make_raw()]
        assert find_problems(VENUE, batch, 30, now=NOW) == []

    def test_screening_in_the_past(self) -> None:
        problems = find_problems(VENUE, [make_raw(days=-3), make_raw()], 30, now=NOW)
        assert len(problems) == 1
        assert "is in the past" in problems[0]

    def test_screening_beyond_forward_window(self) -> None:
        problems = find_problems(VENUE, [make_raw(days=45), make_raw()], 30, now=NOW)
        assert len(problems) == 1
        assert "more than 30 days ahead" in problems[0]

    def test_end_before_start(self) -> None:
        raw = make_raw(end_time=NOW)
        problems = find_problems(VENUE, [raw, make_raw()], 30, now=NOW)
        assert problems == ["#0 'Anora': ends before it starts"]

    def test_relative_booking_url(self) -> None:
        problems = find_problems(VENUE, [make_raw(booking_url="/book/1"), make_raw()], 30, now=NOW)
        assert len(problems) == 1
        assert "not absolute http(s)" in problems[0]


class TestValidateScreenings:
    def test_passes_silently(self) -> None:
        validate_screenings(VENUE, [make_raw(), make_raw()], 30, now=NOW)

    def test_raises_with_every_problem(self) -> None:
        batch = [make_raw(title="", days=-5) for _ in range(5)]
        with pytest.raises(ValidationError) as exc_info:
            validate_screenings(VENUE, batch, 30, now=NOW)

        error = exc_info.value
        assert len(error.problems) == 10
        assert "indie-one: validation failed" in str(error)
        assert "(+7 more)" in str(error)

    def test_empty_result_fails_when_screenings_are_expected(self) -> None:
        with pytest.raises(ValidationError):
            validate_screenings(VENUE, [], 30, now=NOW)


class TestRawScreening:
    def test_naive_start_time_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            RawScreening(title="Anora", start_time=datetime(2026, 10, 18, 19, 0))
