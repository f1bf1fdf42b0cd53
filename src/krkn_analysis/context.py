# Copyright (c) Syntropy Systems
"""Cancellation and deadline handling for an analysis run."""
from __future__ import annotations

import time
from threading import Event

from krkn_analysis.errors import AnalysisCancelledError


class RunContext:
    """Carries a cancellation flag and an optional deadline through a run.

    Stages call :meth:`raise_if_cancelled` at their boundaries. Nothing is
    interrupted mid-call; a collaborator that blocks decides for itself
    whether to honour :meth:`remaining`.
    """

    _cancelled: Event
    _deadline: float | None

    def __init__(
        self,
        timeout: float | None = None,
        cancel_event: Event | None = None,
    ) -> None:
        """Initialize a context.

        Args:
            timeout: Seconds from now after which the context counts as cancelled
            cancel_event: Event shared with the caller; setting it cancels the run

        """
        self._cancelled = cancel_event if cancel_event is not None else Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    @classmethod
    def background(cls) -> RunContext:
        """Return a context that is never cancelled and has no deadline."""
        return cls()

    def cancel(self) -> None:
        """Request cancellation."""
        self._cancelled.set()

    @property
    def expired(self) -> bool:
        """Whether the deadline has passed."""
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cancelled(self) -> bool:
        """Whether the context was cancelled or its deadline passed."""
        return self._cancelled.is_set() or self.expired

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when there is none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def timeout_for(self, default: float) -> float:
        """Bound a request timeout by the time left on the context."""
        remaining = self.remaining()
        if remaining is None:
            return default
        return min(default, remaining)

    def raise_if_cancelled(self, stage: str | None = None) -> None:
        """Raise AnalysisCancelledError if the context is done."""
        if self._cancelled.is_set():
            where = f" during {stage}" if stage else ""
            msg = f"analysis cancelled{where}"
            raise AnalysisCancelledError(msg, stage=stage)
        if self.expired:
            where = f" during {stage}" if stage else ""
            msg = f"analysis deadline exceeded{where}"
            raise AnalysisCancelledError(msg, stage=stage)
