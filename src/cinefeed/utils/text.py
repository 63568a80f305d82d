"""Text normalisation utilities for film title resolution."""

import re
import unicodedata

# Screening descriptors and event-series names that precede the real title,
# e.g. "Preview: Film" or "Saturday Morning Picture Club: Film".
_EVENT_PREFIXES = [
    r"preview",
    r"sneak preview",
    r"advance(?:d)? screening",
    r"special screening",
    r"members?'? screening",
    r"q&a",
    r"intro",
    r"nt live",
    r"roh",
    r"film club",
    r"doc ?house",
    r"shorts(?: club)?",
    r"documentary",
    r"relaxed(?: screening)?",
    r"dementia friendly",
    r"silver screen",
    r"parent & baby",
    r"baby (?:cinema|club)",
    r"autism friendly",
    r"saturday morning picture club",
    r"kids'? club",
    r"family film",
    r"uk premiere",
    r"35mm",
    r"70mm",
    r"4k restoration",
    r"cult classics?",
    r"double bill",
    r"late night",
]
_PREFIX_RE = re.compile(r"^(?:" + "|".join(_EVENT_PREFIXES) + r")\s*:\s+", re.IGNORECASE)

_YEAR_SUFFIX_RE = re.compile(r"\s*\((\d{4})(?:-\d{2,4})?\)\s*$")


def normalise_title(title: str) -> str:
    """
    Normalise a film title as scraped from a cinema website.

    Removes common variations:
    - Year suffixes: "Film (2024)" -> "Film"
    - Dash suffixes: "Film - Subtitled", "Film — Restoration" -> "Film"
    - Event prefixes: "Preview: Film" -> "Film"
    - Format tags: "Film [35mm]" -> "Film"
    - Trailing non-numeric notes: "Film (Director's Cut)" -> "Film"
    - Extra whitespace

    Hyphenated titles ("Spider-Man") are kept: a dash suffix must be surrounded
    by whitespace.
    """
    title = re.sub(r"\s+", " ", title).strip()

    # Dash suffix first so "Film (1929) — Restoration" keeps its year for the next step
    title = re.sub(r"\s+[-–—]\s+\S.*$", "", title)

    # Square bracket tags anywhere in the title
    title = re.sub(r"\s*\[[^\]]+\]\s*", " ", title).strip()

    title = _YEAR_SUFFIX_RE.sub("", title)

    # Trailing parenthetical without digits
    title = re.sub(r"\s*\([^)]*(?<!\d)\)\s*$", "", title)

    title = _PREFIX_RE.sub("", title)

    return re.sub(r"\s+", " ", title).strip()


def extract_year(title: str) -> int | None:
    """Return the year from a trailing "(YYYY)" in a raw title, if any."""
    title = re.sub(r"\s+[-–—]\s+\S.*$", "", title.strip())
    title = re.sub(r"\s*\[[^\]]+\]\s*", " ", title).strip()
    match = _YEAR_SUFFIX_RE.search(title)
    return int(match.group(1)) if match else None


def title_match_key(title: str) -> str:
    """
    Key used to decide whether two titles name the same film.

    Case, accents, punctuation and whitespace are ignored and "&" reads as
    "and". Leading articles are kept: "The Thing" and "Thing" stay distinct.
    Non-Latin scripts survive (``\\w`` is Unicode-aware), so titles with
    no ASCII letters still get a usable key.
    """
    text = normalise_title(title)
    text = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = text.casefold().replace("&", " and ")
    text = re.sub(r"[\W_]+", "-", text)
    return text.strip("-")


def film_key(title: str, year: int | None) -> str:
    """Stable Film primary key: the title match key plus the year when known."""
    # Room for "-YYYY" within the 200-character column
    key = (title_match_key(title) or "untitled")[:190].rstrip("-")
    if year:
        return f"{key}-{year}"
    return key
