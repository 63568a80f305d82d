"""Optional AI-written paragraph for health alert messages."""

import logging

import httpx

logger = logging.getLogger(__name__)

PROMPT = (
    "You are monitoring cinema listing scrapers. Below is today's health check. "
    "In at most three sentences, say which venues need attention and the most "
    "likely cause (site redesign, site down, genuinely quiet programme). "
    "Do not repeat the numbers verbatim.\n\n{summary}"
)


class AnthropicSummarizer:
    """Client for the Anthropic Messages API. Never raises; returns None on any failure."""

    API_URL = "https://api.anthropic.com/v1/messages"
    API_VERSION = "2023-06-01"

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout: float = 20.0,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        if not self.api_key:
            logger.warning("Anthropic API key not configured")

    async def summarize(self, summary: str) -> str | None:
        """
        Ask the model for a short commentary on a health summary.

        Args:
            summary: Plain-text output of ``generate_health_summary``

        Returns:
            The model's paragraph, or None if unavailable
        """
        if not self.api_key:
            return None

        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.API_VERSION,
            "content-type": "application/json",
        }
        payload = {
            "model": self.model,
            "max_tokens": 300,
            "messages": [{"role": "user", "content": PROMPT.format(summary=summary)}],
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.API_URL, headers=headers, json=payload)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Health summary request failed: {e}")
            return None

        content = data.get("content") if isinstance(data, dict) else None
        if not isinstance(content, list):
            logger.error(f"Health summary response had no content list: {str(data)[:200]}")
            return None

        parts = [
            str(block.get("text", ""))
            for block in content
            if isinstance(block, dict) and block.get("type") == "text"
        ]
        text = "".join(parts).strip()
        return text or None
