# Copyright (c) Syntropy Systems
"""Slack incoming-webhook reporter."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, cast

import httpx

from krkn_analysis.errors import ReporterError

if TYPE_CHECKING:
    from krkn_analysis.context import RunContext
    from krkn_analysis.models.analysis import AnalysisResult, ReporterConfig
    from krkn_analysis.models.base import JSONValue

logger = logging.getLogger(__name__)

SLACK_REPORTER_TYPE = "slack"

# Slack rejects section text longer than this
SLACK_SECTION_LIMIT = 3000
TRUNCATION_NOTICE = "\n\n_(truncated, see llm-analysis/summary.yaml for the full analysis)_"

_STATUS_EMOJI = {
    "completed": ":white_check_mark:",
}

_METADATA_FIELDS = [
    ("total_scenarios", "Total scenarios"),
    ("successful_scenarios", "Successful"),
    ("failed_scenarios", "Failed"),
    ("generations", "Generations"),
    ("max_fitness_score", "Max fitness"),
    ("artifacts_examined", "Logs examined"),
]


def truncate(text: str, limit: int = SLACK_SECTION_LIMIT) -> str:
    """Shorten text to fit a Slack section block."""
    if len(text) <= limit:
        return text
    return text[: limit - len(TRUNCATION_NOTICE)].rstrip() + TRUNCATION_NOTICE


def _format_value(value: JSONValue | None) -> str:
    if isinstance(value, float):
        return f"{value:.4f}"
    return str(value)


def build_message(
    result: AnalysisResult,
    title: str = "krkn-ai chaos analysis",
    channel: str | None = None,
) -> dict[str, JSONValue]:
    """Build the webhook payload for an analysis result."""
    emoji = _STATUS_EMOJI.get(result.status, ":warning:")
    fields: list[JSONValue] = [
        {"type": "mrkdwn", "text": f"*{label}:*\n{_format_value(result.metadata[key])}"}
        for key, label in _METADATA_FIELDS
        if key in result.metadata
    ]

    blocks: list[JSONValue] = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": f"{title}: {result.status}"},
        },
    ]
    if fields:
        blocks.append({"type": "section", "fields": fields})
    if result.error:
        blocks.append(
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": truncate(f"*Error:* {result.error}")},
            }
        )
    if result.content:
        blocks.append({"type": "divider"})
        blocks.append(
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": truncate(result.content)},
            }
        )

    payload: dict[str, JSONValue] = {
        "text": f"{emoji} {title}: {result.status}",
        "blocks": blocks,
    }
    if channel:
        payload["channel"] = channel
    return payload


class SlackReporter:
    """Posts analysis results to a Slack incoming webhook.

    Settings:
        webhook_url: Incoming webhook URL (required)
        channel: Channel override
        title: Message title
    """

    timeout: float
    _client: httpx.Client | None

    def __init__(self, timeout: float = 30.0, client: httpx.Client | None = None) -> None:
        """Initialize the reporter.

        Args:
            timeout: Request timeout in seconds
            client: HTTP client to use; one is created per send when omitted

        """
        self.timeout = timeout
        self._client = client

    @property
    def type(self) -> str:
        """Channel type this reporter handles."""
        return SLACK_REPORTER_TYPE

    def send(
        self,
        ctx: RunContext,
        result: AnalysisResult,
        config: ReporterConfig,
    ) -> None:
        """Post the result to the configured webhook."""
        webhook_url = config.settings.get("webhook_url")
        if not isinstance(webhook_url, str) or not webhook_url:
            msg = "slack reporter requires settings.webhook_url"
            raise ReporterError(msg)

        channel = config.settings.get("channel")
        title = config.settings.get("title")
        payload = build_message(
            result,
            title=title if isinstance(title, str) and title else "krkn-ai chaos analysis",
            channel=channel if isinstance(channel, str) else None,
        )

        ctx.raise_if_cancelled("notifying")
        timeout = ctx.timeout_for(self.timeout)
        try:
            if self._client is not None:
                response = self._client.post(webhook_url, json=payload, timeout=timeout)
                _ = response.raise_for_status()
            else:
                with httpx.Client(timeout=timeout) as client:
                    response = client.post(webhook_url, json=payload)
                    _ = response.raise_for_status()
        except httpx.HTTPStatusError as e:
            body = cast("str", e.response.text)
            msg = f"slack webhook returned {e.response.status_code}: {body}"
            raise ReporterError(msg) from e
        except httpx.RequestError as e:
            msg = f"slack webhook connection error: {e}"
            raise ReporterError(msg) from e

        logger.info("Sent analysis to Slack")
