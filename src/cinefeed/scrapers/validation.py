"""Sanity rules applied to a venue's raw screenings before ingestion."""

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta

from cinefeed.errors import ValidationError
from cinefeed.registry import VenueDefinition
from cinefeed.scrapers.models import RawScreening
from cinefeed.utils.dates import utcnow
from cinefeed.utils.urls import is_absolute_http_url

logger = logging.getLogger(__name__)

# Screenings that started earlier today are still listed by most sites
PAST_TOLERANCE = timedelta(days=1)

# Problems quoted in the error message; the full list is on the exception
_MESSAGE_LIMIT = 3


def find_problems(
    venue: VenueDefinition,
    screenings: Sequence[RawScreening],
    forward_window_days: int,
    now: datetime | None = None,
) -> list[str]:
    """Return a human-readable problem for every rule the batch breaks."""
    now = now or utcnow()
    earliest = now - PAST_TOLERANCE
    latest = now + timedelta(days=forward_window_days)

    problems: list[str] = []
    if len(screenings) < venue.min_screenings:
        problems.append(
            f"expected at least {venue.min_screenings} screening(s), got {len(screenings)}"
        )

    for index, screening in enumerate(screenings):
        label = f"#{index} {screening.title!r}"
        if not screening.title or not screening.title.strip():
            problems.append(f"#{index}: empty title")
        if screening.start_time < earliest:
            problems.append(f"{label}: start {screening.start_time.isoformat()} is in the past")
        elif screening.start_time > latest:
            problems.append(
                f"{label}: start {screening.start_time.isoformat()} is more than "
                f"{forward_window_days} days ahead"
            )
        if screening.end_time is not None and screening.end_time <= screening.start_time:
            problems.append(f"{label}: ends before it starts")
        if screening.booking_url and not is_absolute_http_url(screening.booking_url):
            problems.append(f"{label}: booking URL {screening.booking_url!r} is not absolute http(s)")

    return problems


def validate_screenings(
    venue: VenueDefinition,
    screenings: Sequence[RawScreening],
    forward_window_days: int,
    now: datetime | None = None,
) -> None:
    """
    Check a complete scrape result against the venue's sanity rules.

    Raises:
        ValidationError: with every problem found on ``.problems``
    """
    problems = find_problems(venue, screenings, forward_window_days, now)
    if not problems:
        return

    shown = "; ".join(problems[:_MESSAGE_LIMIT])
    more = len(problems) - _MESSAGE_LIMIT
    if more > 0:
        shown += f" (+{more} more)"
    logger.warning(f"{venue.id}: {len(problems)} validation problem(s)")
    raise ValidationError(f"{venue.id}: validation failed: {shown}", problems)
