"""Film model for storing film metadata."""

from typing import TYPE_CHECKING

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cinefeed.models.base import Base, JSONType, TimestampMixin

if TYPE_CHECKING:
    from cinefeed.models.screening import Screening


class Film(Base, TimestampMixin):
    """
    Film model.

    The primary key is derived from the normalised title and year (see
    ``cinefeed.utils.text.film_key``), so two scrapes of the same work resolve
    to the same row and concurrent creations collide on the key instead of
    producing duplicates.
    """

    __tablename__ = "films"

    id: Mapped[str] = mapped_column(String(200), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    directors: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    poster_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # Relationships
    screenings: Mapped[list["Screening"]] = relationship(back_populates="film")

    def __repr__(self) -> str:
        return f"<Film(id={self.id!r}, title={self.title!r}, year={self.year})>"
