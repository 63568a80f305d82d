"""Film resolution: map scraped titles onto canonical Film rows."""

import logging
from dataclasses import dataclass

from rapidfuzz import fuzz, process
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cinefeed.models.film import Film
from cinefeed.utils.text import extract_year, film_key, normalise_title, title_match_key

logger = logging.getLogger(__name__)


class FilmResolver:
    """
    Resolve a raw cinema title to a Film, creating one when none matches.

    Matching policy:
    1. Normalise the title (event prefixes, format brackets, year suffix)
    2. Take the year from the scraper, else from a "(YYYY)" in the raw title
    3. Look up the Film whose key (normalised title + year) is identical
    4. Otherwise create a new Film under that key

    There is no fuzzy merge. Likely duplicates are listed for curation by
    ``find_duplicate_film_candidates``.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._cache: dict[str, Film] = {}

    async def resolve(
        self,
        raw_title: str,
        year: int | None = None,
        directors: list[str] | None = None,
        poster_url: str | None = None,
    ) -> Film:
        title = normalise_title(raw_title) or raw_title.strip()
        year = year or extract_year(raw_title)
        film_id = film_key(title, year)

        film = self._cache.get(film_id)
        if film is None:
            film = await self.db.get(Film, film_id)
            if film is None:
                film = await self._create(film_id, title, year, directors, poster_url)
                logger.info(f"Created film {film_id!r} from '{raw_title}'")
            self._cache[film_id] = film

        # Metadata only fills gaps; it never overwrites curated values
        if directors and not film.directors:
            film.directors = list(directors)
        if poster_url and not film.poster_url:
            film.poster_url = poster_url
        return film

    async def _create(
        self,
        film_id: str,
        title: str,
        year: int | None,
        directors: list[str] | None,
        poster_url: str | None,
    ) -> Film:
        film = Film(
            id=film_id,
            title=title,
            year=year,
            directors=list(directors or []),
            poster_url=poster_url,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(film)
                await self.db.flush()
        except IntegrityError:
            # Another venue's run created the same film concurrently
            existing = await self.db.get(Film, film_id)
            if existing is None:
                raise
            logger.debug(f"Film {film_id!r} already exists, reusing.")
            return existing
        return film


@dataclass
class DuplicateCandidate:
    film_id: str
    other_id: str
    title: str
    other_title: str
    score: float


async def find_duplicate_film_candidates(
    db: AsyncSession,
    threshold: float = 90.0,
) -> list[DuplicateCandidate]:
    """
    List pairs of Film rows that are probably the same work.

    Read-only: candidates are for a human to merge. Films with two different
    known years are never paired.
    """
    result = await db.execute(select(Film).order_by(Film.id))
    films = list(result.scalars().all())
    keys = {film.id: title_match_key(film.title).replace("-", " ") for film in films}

    candidates: list[DuplicateCandidate] = []
    for index, film in enumerate(films):
        # Only compare against later films so each pair is reported once
        later = {other.id: keys[other.id] for other in films[index + 1:]}
        if not later:
            break
        matches = process.extract(
            keys[film.id],
            later,
            scorer=fuzz.token_sort_ratio,
            score_cutoff=threshold,
            limit=None,
        )
        by_id = {other.id: other for other in films[index + 1:]}
        for _, score, other_id in matches:
            other = by_id[other_id]
            if film.year and other.year and film.year != other.year:
                continue
            candidates.append(
                DuplicateCandidate(
                    film_id=film.id,
                    other_id=other.id,
                    title=film.title,
                    other_title=other.title,
                    score=float(score),
                )
            )

    candidates.sort(key=lambda c: c.score, reverse=True)
    logger.info(f"Found {len(candidates)} duplicate film candidate(s) above {threshold}")
    return candidates
