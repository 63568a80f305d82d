"""Error types raised across the ingestion and health core."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cinefeed.services.runner import RunResult


class CinefeedError(Exception):
    """Base class for all cinefeed errors."""


class UnknownVenue(CinefeedError):
    """An identifier matched neither a canonical nor a legacy venue id."""

    def __init__(self, venue_id: str) -> None:
        super().__init__(f"Unknown venue: {venue_id!r}")
        self.venue_id = venue_id


class ExtractionError(CinefeedError):
    """The upstream site was unreachable, timed out, or could not be parsed.

    Retryable by the orchestrator.
    """


class ValidationError(CinefeedError):
    """Extracted data failed the venue's sanity rules. Not retried automatically."""

    def __init__(self, message: str, problems: list[str] | None = None) -> None:
        super().__init__(message)
        self.problems = problems or []


class PersistenceError(CinefeedError):
    """A storage write failed; nothing from the batch was applied."""


class ContaminationDetected(CinefeedError):
    """
    A booking URL pointed at a different venue or chain than the screening's own.

    Never raised out of the pipeline: the offending field is nulled and the
    instance is recorded on the save result.
    """

    def __init__(self, venue_id: str, booking_url: str, owner: str, title: str | None = None) -> None:
        super().__init__(
            f"Booking URL for {venue_id!r} belongs to {owner!r}: {booking_url}"
        )
        self.venue_id = venue_id
        self.booking_url = booking_url
        self.owner = owner
        self.title = title


class RunFailure(CinefeedError):
    """A single venue's run failed. Carries the structured result for the caller."""

    def __init__(self, result: "RunResult", cause: Exception) -> None:
        super().__init__(f"Run failed for {result.venue_id}: {result.error}")
        self.result = result
        self.cause = cause
