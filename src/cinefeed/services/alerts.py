"""Health alert formatting and delivery."""

import logging

import httpx

from cinefeed.config import Settings
from cinefeed.services.health import CRITICAL, HEALTHY, SEVERITY_RANK, HealthMetrics, HealthReport
from cinefeed.services.summarizer import AnthropicSummarizer

logger = logging.getLogger(__name__)


class LogChannel:
    """Fallback channel: alerts go to the application log."""

    async def send(self, text: str) -> bool:
        logger.warning(f"HEALTH ALERT\n{text}")
        return True


class SlackWebhookChannel:
    """Posts alerts to a Slack incoming webhook."""

    def __init__(self, webhook_url: str, timeout: float = 10.0) -> None:
        self.webhook_url = webhook_url
        self.timeout = timeout

    async def send(self, text: str) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.webhook_url, json={"text": text})
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Slack alert delivery failed: {e}")
            return False
        return True


def _by_severity(metrics: list[HealthMetrics]) -> list[HealthMetrics]:
    return sorted(metrics, key=lambda m: (-SEVERITY_RANK[m.severity], m.venue_id))


def _venue_line(metrics: HealthMetrics) -> str:
    line = f"[{metrics.severity.upper()}] {metrics.venue_id}: {'; '.join(metrics.warnings)}"
    if metrics.should_block_next_run:
        line += " (next run blocked)"
    return line


def generate_health_summary(report: HealthReport) -> str:
    """Plain-text summary of a health report, degraded venues first."""
    lines = [
        f"Cinema health check {report.checked_at:%Y-%m-%d %H:%M} UTC: "
        f"{report.healthy} healthy, {report.warning} warning, {report.critical} critical"
    ]

    degraded = [m for m in report.metrics if m.severity != HEALTHY]
    if degraded:
        lines.append("")
        lines.extend(_venue_line(m) for m in _by_severity(degraded))

    if report.errors:
        lines.append("")
        lines.append("Could not check:")
        lines.extend(f"- {venue_id}: {error}" for venue_id, error in sorted(report.errors.items()))

    return "\n".join(lines)


class HealthAlerter:
    """
    Sends alerts for the venues a health check marked ``triggered_alert``.

    Which venues are due is decided by the monitor from snapshot history (see
    ``cinefeed.services.health.should_alert``), so this class only formats
    and delivers.
    """

    def __init__(
        self,
        channel: LogChannel | SlackWebhookChannel | None = None,
        summarizer: AnthropicSummarizer | None = None,
    ) -> None:
        self.channel = channel or LogChannel()
        self.summarizer = summarizer

    @classmethod
    def from_settings(cls, settings: Settings) -> "HealthAlerter":
        channel = (
            SlackWebhookChannel(settings.slack_webhook_url)
            if settings.slack_webhook_url
            else LogChannel()
        )
        summarizer = (
            AnthropicSummarizer(settings.anthropic_api_key, settings.summary_model)
            if settings.anthropic_api_key
            else None
        )
        return cls(channel, summarizer)

    async def send_health_alerts(self, report: HealthReport) -> list[str]:
        """
        Deliver one message covering every venue due an alert.

        Returns:
            Venue ids alerted (empty when nothing was due or delivery failed)
        """
        due = _by_severity([m for m in report.metrics if m.triggered_alert])
        if not due:
            logger.info("No health alerts due")
            return []

        critical = sum(1 for m in due if m.severity == CRITICAL)
        lines = [f"{len(due)} cinema(s) need attention ({critical} critical):"]
        lines.extend(_venue_line(m) for m in due)
        text = "\n".join(lines)

        if self.summarizer is not None:
            commentary = await self.summarizer.summarize(generate_health_summary(report))
            if commentary:
                text += f"\n\n{commentary}"

        if not await self.channel.send(text):
            return []

        report.alerted = [m.venue_id for m in due]
        logger.info(f"Sent health alert for {len(due)} venue(s)")
        return report.alerted
