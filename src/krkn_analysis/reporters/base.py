# Copyright (c) Syntropy Systems
"""Reporter protocol and registry."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from krkn_analysis.errors import ReporterError

if TYPE_CHECKING:
    from krkn_analysis.context import RunContext
    from krkn_analysis.models.analysis import AnalysisResult, ReporterConfig

logger = logging.getLogger(__name__)


class Reporter(Protocol):
    """A notification sink for one channel type."""

    @property
    def type(self) -> str:
        ...

    def send(
        self,
        ctx: RunContext,
        result: AnalysisResult,
        config: ReporterConfig,
    ) -> None:
        ...


class ReporterRegistry:
    """Reporters keyed by channel type.

    Registering a reporter for a type that already has one replaces it.
    """

    _reporters: dict[str, Reporter]

    def __init__(self) -> None:
        self._reporters = {}

    def register(self, reporter: Reporter) -> None:
        """Register a reporter under its type."""
        if reporter.type in self._reporters:
            logger.debug("Replacing reporter for type %s", reporter.type)
        self._reporters[reporter.type] = reporter

    def get(self, reporter_type: str) -> Reporter | None:
        """Return the reporter for a type, if any."""
        return self._reporters.get(reporter_type)

    def types(self) -> list[str]:
        """Return the registered types."""
        return sorted(self._reporters)

    def send_notification(
        self,
        ctx: RunContext,
        result: AnalysisResult,
        config: ReporterConfig,
    ) -> None:
        """Deliver a result through the reporter configured by ``config``.

        Disabled entries are skipped.

        Raises:
            ReporterError: If no reporter is registered for the type or delivery fails.

        """
        if not config.enabled:
            logger.debug("Reporter %s is disabled, skipping", config.type)
            return

        reporter = self._reporters.get(config.type)
        if reporter is None:
            msg = f"unknown reporter type: {config.type}"
            raise ReporterError(msg)

        reporter.send(ctx, result, config)
