"""
Per-venue health monitoring.

Each check classifies every active venue as healthy, warning or critical from
its latest scrape run and its own append-only snapshot history, then appends
one HealthSnapshot per venue. Nothing is carried between checks except that
history, so a missed check or a restart cannot skew the classification.

Classification rules (thresholds from ``HealthThresholds``):
- Baseline: mean screening count of the last ``baseline_window`` snapshots
  that were not anomalous. Meaningful once it is at least ``min_baseline``
  from at least ``min_history`` snapshots.
- Last run failed to extract or persist: warning; volume rules are skipped
  because the count says nothing about the site.
- Zero screenings against a meaningful baseline, or a ratio at or below
  ``critical_ratio``: critical.
- Zero screenings without a meaningful baseline, or a ratio below
  ``warn_ratio``: warning.
- No run ever, or the last run older than ``stale_warning_hours``: warning.
- A warning that has persisted for ``consecutive_limit`` checks (this one
  included): critical.
- Critical blocks the next run, unless the run it judges was already judged
  by the previous, blocking snapshot: then the breaker lets one trial run
  through (half-open) instead of blocking forever on stale evidence.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from statistics import mean
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cinefeed.config import HealthThresholds
from cinefeed.models import HealthSnapshot, ScrapeRun, Screening
from cinefeed.models.scrape_run import RUN_FAILED
from cinefeed.registry import CinemaRegistry
from cinefeed.utils.dates import ensure_utc, utcnow

if TYPE_CHECKING:
    from cinefeed.services.alerts import HealthAlerter

logger = logging.getLogger(__name__)

HEALTHY = "healthy"
WARNING = "warning"
CRITICAL = "critical"

SEVERITY_RANK = {HEALTHY: 0, WARNING: 1, CRITICAL: 2}

# Failures where the screening count is meaningless
_NON_VOLUME_FAILURES = {"extraction", "persistence", "unexpected"}

# Snapshots loaded per venue per check; anomalous rows don't count towards the baseline
_HISTORY_LIMIT = 60


@dataclass
class HealthMetrics:
    venue_id: str
    checked_at: datetime
    screening_count: int
    baseline_count: float | None
    ratio: float | None
    future_screenings: int
    zero_results: bool
    last_run_failed: bool
    hours_since_last_run: float | None
    severity: str
    warnings: list[str]
    anomaly_detected: bool
    consecutive_anomalies: int
    should_block_next_run: bool
    triggered_alert: bool = False


@dataclass
class HealthReport:
    checked_at: datetime
    metrics: list[HealthMetrics] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)  # venue_id -> why it couldn't be checked
    alerted: list[str] = field(default_factory=list)

    def _count(self, severity: str) -> int:
        return sum(1 for m in self.metrics if m.severity == severity)

    @property
    def healthy(self) -> int:
        return self._count(HEALTHY)

    @property
    def warning(self) -> int:
        return self._count(WARNING)

    @property
    def critical(self) -> int:
        return self._count(CRITICAL)

    @property
    def warnings(self) -> list[str]:
        return [f"{m.venue_id}: {w}" for m in self.metrics for w in m.warnings]

    @property
    def blocked(self) -> list[str]:
        return [m.venue_id for m in self.metrics if m.should_block_next_run]


def _escalate(current: str, severity: str) -> str:
    return severity if SEVERITY_RANK[severity] > SEVERITY_RANK[current] else current


def compute_baseline(
    history: Sequence[HealthSnapshot],
    window: int,
) -> tuple[float | None, int]:
    """Mean count over the newest ``window`` non-anomalous snapshots, and how many were used."""
    normal = [s.screening_count for s in history if not s.anomaly_detected][:window]
    if not normal:
        return None, 0
    return float(mean(normal)), len(normal)


def classify(
    venue_id: str,
    last_run: ScrapeRun | None,
    history: Sequence[HealthSnapshot],
    future_screenings: int,
    thresholds: HealthThresholds,
    now: datetime,
) -> HealthMetrics:
    """
    Classify one venue. Pure: everything it needs is passed in.

    Args:
        last_run: The venue's most recent ScrapeRun, if any
        history: The venue's previous snapshots, newest first
    """
    warnings: list[str] = []
    severity = HEALTHY

    count = last_run.screening_count if last_run else 0
    baseline, used = compute_baseline(history, thresholds.baseline_window)
    ratio = count / baseline if baseline else None
    meaningful = (
        baseline is not None
        and baseline >= thresholds.min_baseline
        and used >= thresholds.min_history
    )
    last_run_failed = last_run is not None and last_run.status == RUN_FAILED
    hours_since = None

    if last_run is None:
        warnings.append("No scrape run recorded")
        severity = WARNING
    else:
        hours_since = (now - ensure_utc(last_run.completed_at)).total_seconds() / 3600
        if hours_since > thresholds.stale_warning_hours:
            warnings.append(f"Last scrape run was {hours_since:.0f}h ago")
            severity = WARNING

        if last_run_failed and last_run.error_type in _NON_VOLUME_FAILURES:
            warnings.append(f"Last run failed ({last_run.error_type}): {last_run.error}")
            severity = _escalate(severity, WARNING)
        else:
            if last_run_failed:
                warnings.append(f"Last run failed ({last_run.error_type}): {last_run.error}")
                severity = _escalate(severity, WARNING)

            if count == 0 and meaningful:
                warnings.append(f"Zero screenings (baseline {baseline:.1f})")
                severity = CRITICAL
            elif count == 0:
                warnings.append("Zero screenings")
                severity = _escalate(severity, WARNING)
            elif meaningful and ratio <= thresholds.critical_ratio:
                warnings.append(
                    f"{count} screenings is {ratio:.0%} of baseline {baseline:.1f}"
                )
                severity = CRITICAL
            elif meaningful and ratio < thresholds.warn_ratio:
                warnings.append(
                    f"{count} screenings is {ratio:.0%} of baseline {baseline:.1f}"
                )
                severity = _escalate(severity, WARNING)

    anomaly = severity != HEALTHY
    consecutive = 0
    if anomaly:
        consecutive = 1
        for snapshot in history:
            if not snapshot.anomaly_detected:
                break
            consecutive += 1

    if severity == WARNING and consecutive >= thresholds.consecutive_limit:
        warnings.append(f"Degraded for {consecutive} consecutive checks")
        severity = CRITICAL

    should_block = severity == CRITICAL
    previous = history[0] if history else None
    if should_block and previous is not None and previous.should_block_next_run:
        judged_before = last_run is None or (
            ensure_utc(last_run.completed_at) <= ensure_utc(previous.snapshot_at)
        )
        if judged_before:
            warnings.append("No run since the last block; allowing a trial run")
            should_block = False

    return HealthMetrics(
        venue_id=venue_id,
        checked_at=now,
        screening_count=count,
        baseline_count=baseline,
        ratio=ratio,
        future_screenings=future_screenings,
        zero_results=last_run is not None and count == 0,
        last_run_failed=last_run_failed,
        hours_since_last_run=hours_since,
        severity=severity,
        warnings=warnings,
        anomaly_detected=anomaly,
        consecutive_anomalies=consecutive,
        should_block_next_run=should_block,
    )


def should_alert(
    metrics: HealthMetrics,
    last_alert: HealthSnapshot | None,
    cooldown_hours: float,
) -> bool:
    """
    Alert cadence: at most once per venue per ``cooldown_hours``.

    Healthy venues never alert. A venue alerted within the cooldown alerts
    again only if its severity has escalated since that alert.
    """
    if metrics.severity == HEALTHY:
        return False
    if last_alert is None:
        return True
    since = metrics.checked_at - ensure_utc(last_alert.snapshot_at)
    if since >= timedelta(hours=cooldown_hours):
        return True
    return SEVERITY_RANK[metrics.severity] > SEVERITY_RANK.get(last_alert.severity, 0)


class HealthMonitor:
    """
    Runs health checks and answers circuit-breaker queries.

    Only reads screenings and run history; only writes health snapshots.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        registry: CinemaRegistry,
        thresholds: HealthThresholds | None = None,
        alerter: "HealthAlerter | None" = None,
    ) -> None:
        self.session_factory = session_factory
        self.registry = registry
        self.thresholds = thresholds or HealthThresholds()
        self.alerter = alerter

    async def run_full_health_check(self, now: datetime | None = None) -> HealthReport:
        """
        Check every active venue, snapshot each one and dispatch alerts.

        A venue that can't be checked is listed in ``report.errors``; the
        others are unaffected.
        """
        now = now or utcnow()
        report = HealthReport(checked_at=now)

        for venue in self.registry.active_venues():
            try:
                async with self.session_factory() as db:
                    metrics = await self._check_venue(db, venue.id, now)
                await self.save_health_snapshot(metrics)
            except Exception as e:
                logger.error(f"{venue.id}: health check failed: {e}", exc_info=True)
                report.errors[venue.id] = str(e)
                continue
            report.metrics.append(metrics)
            if metrics.severity != HEALTHY:
                logger.warning(f"{venue.id}: {metrics.severity}: {'; '.join(metrics.warnings)}")

        logger.info(
            f"Health check: {report.healthy} healthy, {report.warning} warning, "
            f"{report.critical} critical, {len(report.errors)} errors"
        )

        if self.alerter is not None:
            await self.alerter.send_health_alerts(report)
        return report

    async def _check_venue(self, db: AsyncSession, venue_id: str, now: datetime) -> HealthMetrics:
        last_run = (
            await db.execute(
                select(ScrapeRun)
                .where(ScrapeRun.venue_id == venue_id)
                .order_by(ScrapeRun.started_at.desc(), ScrapeRun.id.desc())
                .limit(1)
            )
        ).scalar_one_or_none()

        history = await self._history(db, venue_id, limit=_HISTORY_LIMIT)

        future_screenings = (
            await db.execute(
                select(func.count(Screening.id)).where(
                    Screening.venue_id == venue_id,
                    Screening.start_time > now,
                )
            )
        ).scalar_one()

        metrics = classify(venue_id, last_run, history, future_screenings, self.thresholds, now)

        if self.alerter is not None:
            last_alert = await self._last_alert(db, venue_id)
            metrics.triggered_alert = should_alert(
                metrics, last_alert, self.thresholds.alert_cooldown_hours
            )
        return metrics

    async def _history(
        self,
        db: AsyncSession,
        venue_id: str,
        limit: int | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[HealthSnapshot]:
        stmt = (
            select(HealthSnapshot)
            .where(HealthSnapshot.venue_id == venue_id)
            .order_by(HealthSnapshot.snapshot_at.desc(), HealthSnapshot.id.desc())
        )
        if since is not None:
            stmt = stmt.where(HealthSnapshot.snapshot_at >= since)
        if until is not None:
            stmt = stmt.where(HealthSnapshot.snapshot_at < until)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list((await db.execute(stmt)).scalars().all())

    async def _last_alert(self, db: AsyncSession, venue_id: str) -> HealthSnapshot | None:
        return (
            await db.execute(
                select(HealthSnapshot)
                .where(HealthSnapshot.venue_id == venue_id, HealthSnapshot.triggered_alert.is_(True))
                .order_by(HealthSnapshot.snapshot_at.desc(), HealthSnapshot.id.desc())
                .limit(1)
            )
        ).scalar_one_or_none()

    async def save_health_snapshot(self, metrics: HealthMetrics) -> HealthSnapshot:
        """Append one snapshot row. Snapshots are never updated afterwards."""
        snapshot = HealthSnapshot(
            venue_id=metrics.venue_id,
            snapshot_at=metrics.checked_at,
            screening_count=metrics.screening_count,
            baseline_count=metrics.baseline_count,
            ratio=metrics.ratio,
            future_screenings=metrics.future_screenings,
            zero_results=metrics.zero_results,
            last_run_failed=metrics.last_run_failed,
            hours_since_last_run=metrics.hours_since_last_run,
            severity=metrics.severity,
            warnings=list(metrics.warnings),
            anomaly_detected=metrics.anomaly_detected,
            consecutive_anomalies=metrics.consecutive_anomalies,
            should_block_next_run=metrics.should_block_next_run,
            triggered_alert=metrics.triggered_alert,
        )
        async with self.session_factory() as db:
            db.add(snapshot)
            await db.commit()
        return snapshot

    async def get_recent_snapshots(
        self,
        venue_id: str,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int | None = None,
    ) -> list[HealthSnapshot]:
        """Snapshots for a venue in [since, until), newest first."""
        canonical = self.registry.resolve_canonical(venue_id)
        async with self.session_factory() as db:
            return await self._history(db, canonical, limit=limit, since=since, until=until)

    async def is_blocked(self, venue_id: str, now: datetime | None = None) -> bool:
        """
        Circuit breaker read, derived from the latest snapshot.

        A block expires after ``block_ttl_hours`` even without a new check.
        """
        now = now or utcnow()
        async with self.session_factory() as db:
            latest = await self._history(db, venue_id, limit=1)
        if not latest or not latest[0].should_block_next_run:
            return False
        age = now - ensure_utc(latest[0].snapshot_at)
        return age < timedelta(hours=self.thresholds.block_ttl_hours)
