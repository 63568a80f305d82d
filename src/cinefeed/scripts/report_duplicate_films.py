"""List Film rows that are probably the same work, for manual merging.

Read-only. Run with:
    python -m cinefeed.scripts.report_duplicate_films --threshold 92
"""

import argparse
import asyncio
import logging

from cinefeed.database import session_factory
from cinefeed.services.film_resolver import find_duplicate_film_candidates

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 90.0


async def report_duplicate_films(threshold: float) -> int:
    async with session_factory() as session:
        candidates = await find_duplicate_film_candidates(session, threshold=threshold)

    for candidate in candidates:
        logger.info(
            f"  {candidate.score:5.1f}  {candidate.film_id!r} ({candidate.title})"
            f"  ~  {candidate.other_id!r} ({candidate.other_title})"
        )
    return len(candidates)


def main() -> None:
    parser = argparse.ArgumentParser(description="Report likely duplicate films.")
    parser.add_argument(
        "--threshold",
        type=float,
        default=DEFAULT_THRESHOLD,
        metavar="N",
        help=f"Minimum similarity score, 0-100 (default: {DEFAULT_THRESHOLD:g})",
    )
    args = parser.parse_args()
    asyncio.run(report_duplicate_films(args.threshold))


if __name__ == "__main__":
    main()
