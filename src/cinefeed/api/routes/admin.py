"""Admin API endpoints: the trigger and maintenance interface for the scheduler and operators."""

import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from cinefeed.api.deps import monitor_dep, pipeline_dep, require_admin, runner_dep
from cinefeed.database import get_session
from cinefeed.errors import RunFailure, UnknownVenue
from cinefeed.schemas import (
    BatchRequest,
    BatchResponse,
    DuplicateFilmResponse,
    HealthReportResponse,
    HealthSnapshotResponse,
    RepairRequest,
    RepairResponse,
    RunResultResponse,
)
from cinefeed.services.film_resolver import find_duplicate_film_candidates
from cinefeed.services.health import HealthMonitor
from cinefeed.services.pipeline import IngestionPipeline, RepairFilter
from cinefeed.services.runner import RunResult, ScrapeRunner
from cinefeed.tasks.scrape_job import run_scrape_all

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin")


def _batch_response(results: list[RunResult]) -> BatchResponse:
    succeeded = sum(1 for r in results if r.success)
    blocked = sum(1 for r in results if r.blocked)
    return BatchResponse(
        succeeded=succeeded,
        failed=len(results) - succeeded - blocked,
        blocked=blocked,
        results=[RunResultResponse.model_validate(r) for r in results],
    )


@router.post("/scrape/{venue_id}", response_model=RunResultResponse)
async def trigger_scrape(
    venue_id: str,
    force: bool = Query(default=False, description="Run even if the health check blocked this venue"),
    caller: str = Depends(require_admin),
    runner: ScrapeRunner = Depends(runner_dep),
) -> RunResultResponse | JSONResponse:
    """
    Run one venue's extraction now.

    Accepts canonical or legacy ids. A failed run returns 502 and a blocked
    venue 409, both with the structured result as the body.
    """
    logger.info(f"Scrape of {venue_id} requested by {caller} (force={force})")
    try:
        result = await runner.run_extraction(venue_id, force=force)
    except UnknownVenue as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except RunFailure as failure:
        body = RunResultResponse.model_validate(failure.result)
        return JSONResponse(status_code=502, content=body.model_dump(mode="json"))

    body = RunResultResponse.model_validate(result)
    if result.blocked:
        return JSONResponse(status_code=409, content=body.model_dump(mode="json"))
    return body


@router.post("/scrape-batch", response_model=BatchResponse)
async def trigger_scrape_batch(
    request: BatchRequest,
    caller: str = Depends(require_admin),
    runner: ScrapeRunner = Depends(runner_dep),
) -> BatchResponse:
    logger.info(f"Batch scrape of {len(request.venue_ids)} venue(s) requested by {caller}")
    results = await runner.run_batch(request.venue_ids, force=request.force)
    return _batch_response(results)


@router.post("/scrape-chain/{chain}", response_model=BatchResponse)
async def trigger_scrape_chain(
    chain: str,
    force: bool = False,
    caller: str = Depends(require_admin),
    runner: ScrapeRunner = Depends(runner_dep),
) -> BatchResponse:
    logger.info(f"Chain scrape of {chain} requested by {caller}")
    return _batch_response(await runner.run_chain(chain, force=force))


@router.post("/scrape-all")
async def trigger_scrape_all(
    background_tasks: BackgroundTasks,
    caller: str = Depends(require_admin),
) -> dict[str, str]:
    """Trigger a full scrape of all active venues as a background task.

    Returns immediately; the scrape runs asynchronously.
    """
    logger.info(f"Full scrape requested by {caller}")
    background_tasks.add_task(run_scrape_all)
    return {"status": "started"}


@router.post("/health-check", response_model=HealthReportResponse)
async def trigger_health_check(
    caller: str = Depends(require_admin),
    monitor: HealthMonitor = Depends(monitor_dep),
) -> HealthReportResponse:
    logger.info(f"Health check requested by {caller}")
    report = await monitor.run_full_health_check()
    return HealthReportResponse.model_validate(report)


@router.get("/venues/{venue_id}/snapshots", response_model=list[HealthSnapshotResponse])
async def get_venue_snapshots(
    venue_id: str,
    since: datetime | None = None,
    until: datetime | None = None,
    limit: int = Query(default=100, ge=1, le=1000),
    caller: str = Depends(require_admin),
    monitor: HealthMonitor = Depends(monitor_dep),
) -> list[HealthSnapshotResponse]:
    """Health snapshots for a venue in [since, until), newest first."""
    try:
        snapshots = await monitor.get_recent_snapshots(venue_id, since=since, until=until, limit=limit)
    except UnknownVenue as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return [HealthSnapshotResponse.model_validate(s) for s in snapshots]


@router.post("/repair-contamination", response_model=RepairResponse)
async def repair_contamination(
    request: RepairRequest,
    caller: str = Depends(require_admin),
    pipeline: IngestionPipeline = Depends(pipeline_dep),
) -> RepairResponse:
    """
    Null cross-venue booking URLs on future screenings.

    Dry run by default; the response lists every affected screening with its
    old and new booking URL either way.
    """
    logger.info(f"Contamination repair requested by {caller} (dry_run={request.dry_run})")
    try:
        report = await pipeline.repair_contamination(
            RepairFilter(venue_ids=request.venue_ids, chain=request.chain),
            dry_run=request.dry_run,
        )
    except UnknownVenue as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return RepairResponse.model_validate(report)


@router.get("/films/duplicates", response_model=list[DuplicateFilmResponse])
async def get_duplicate_films(
    threshold: float = Query(default=90.0, ge=50.0, le=100.0),
    caller: str = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[DuplicateFilmResponse]:
    """Likely duplicate Film rows for manual curation. Read-only."""
    candidates = await find_duplicate_film_candidates(db, threshold=threshold)
    return [DuplicateFilmResponse.model_validate(c) for c in candidates]
