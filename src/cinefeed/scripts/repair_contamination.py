"""Null booking URLs that point at another venue's or chain's site.

Only future screenings are considered; past screenings are left as the
historical record. Every affected row is printed before anything is written.

Run with:
    python -m cinefeed.scripts.repair_contamination --dry-run
    python -m cinefeed.scripts.repair_contamination --venue picturehouse-ritzy
"""

import argparse
import asyncio
import logging

from cinefeed.services.pipeline import RepairFilter, RepairReport
from cinefeed.tasks.scrape_job import get_pipeline

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logger = logging.getLogger(__name__)


async def repair_contamination(
    venue_ids: list[str],
    chain: str | None = None,
    dry_run: bool = False,
) -> RepairReport:
    tag = "[DRY RUN] " if dry_run else ""
    report = await get_pipeline().repair_contamination(
        RepairFilter(venue_ids=venue_ids, chain=chain),
        dry_run=dry_run,
    )

    for change in report.changes:
        logger.info(
            f"  {tag}{change.screening_id:>8}  {change.venue_id:<28} "
            f"{change.start_time:%Y-%m-%d %H:%M}  {change.old_url} -> NULL  (owner: {change.owner})"
        )
    logger.info(
        f"\nDone. {len(report.changes)} screening(s) "
        + ("would be repaired (dry run, no changes written)" if dry_run else "repaired")
    )
    return report


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Null cross-venue booking URLs on future screenings."
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report affected screenings without changing them",
    )
    parser.add_argument(
        "--venue",
        action="append",
        default=[],
        metavar="ID",
        help="Limit to this venue (canonical or legacy id); repeatable",
    )
    parser.add_argument("--chain", default=None, help="Limit to venues of this chain")
    args = parser.parse_args()

    asyncio.run(repair_contamination(args.venue, chain=args.chain, dry_run=args.dry_run))


if __name__ == "__main__":
    main()
