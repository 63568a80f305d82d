"""Venue model for storing cinema venue information."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cinefeed.models.base import Base, JSONType, TimestampMixin

if TYPE_CHECKING:
    from cinefeed.models.screening import Screening


class Venue(Base, TimestampMixin):
    """
    Cinema venue model.

    Rows mirror the static registry; they are upserted by canonical id before
    any screening is written for the venue.
    """

    __tablename__ = "venues"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    short_name: Mapped[str] = mapped_column(String(50), nullable=False)
    chain: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    website: Mapped[str] = mapped_column(String(500), nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    area: Mapped[str | None] = mapped_column(String(100), nullable=True)
    postcode: Mapped[str | None] = mapped_column(String(20), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    features: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    last_scraped_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    screenings: Mapped[list["Screening"]] = relationship(back_populates="venue")

    def __repr__(self) -> str:
        return f"<Venue(id={self.id!r}, name={self.name!r}, chain={self.chain!r})>"
