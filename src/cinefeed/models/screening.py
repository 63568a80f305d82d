"""Screening model for film screening times at venues."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cinefeed.models.base import Base, JSONType, TimestampMixin

if TYPE_CHECKING:
    from cinefeed.models.film import Film
    from cinefeed.models.venue import Venue


class Screening(Base, TimestampMixin):
    """
    Film screening model.

    A screening is identified by (venue, film, start time, screen). The screen
    label is stored as an empty string rather than NULL so the unique
    constraint also holds for venues that do not publish screen names.
    """

    __tablename__ = "screenings"
    __table_args__ = (
        UniqueConstraint(
            "venue_id",
            "film_id",
            "start_time",
            "screen",
            name="uq_venue_film_time_screen",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Foreign keys
    venue_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("venues.id"),
        nullable=False,
        index=True,
    )
    film_id: Mapped[str] = mapped_column(
        String(200),
        ForeignKey("films.id"),
        nullable=False,
        index=True,
    )

    # Screening details
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    screen: Mapped[str] = mapped_column(String(100), nullable=False, default="", server_default="")
    booking_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    format_tags: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    # Debugging: store the original title from the cinema website
    raw_title: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    venue: Mapped["Venue"] = relationship(back_populates="screenings")
    film: Mapped["Film"] = relationship(back_populates="screenings")

    def __repr__(self) -> str:
        return (
            f"<Screening(venue_id={self.venue_id!r}, "
            f"film_id={self.film_id!r}, "
            f"start_time={self.start_time})>"
        )
