# Copyright (c) Syntropy Systems
"""Exception types raised by krkn-analysis."""
from __future__ import annotations


class KrknAnalysisError(Exception):
    """Base error for krkn-analysis."""


class ConfigValidationError(ValueError):
    """Run configuration failed validation."""


class BaselineError(KrknAnalysisError):
    """Baseline document could not be read, parsed or written."""


class AggregationError(KrknAnalysisError):
    """Results directory could not be collected."""


class PromptError(KrknAnalysisError):
    """Prompt template could not be loaded or rendered."""


class LLMClientError(KrknAnalysisError):
    """Error from the model backend."""


class ReporterError(KrknAnalysisError):
    """Notification could not be delivered."""


class AnalysisCancelledError(KrknAnalysisError):
    """The run context was cancelled or its deadline passed."""

    stage: str | None

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage


class StageError(KrknAnalysisError):
    """A pipeline stage failed and aborted the run."""

    stage: str

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(message)
        self.stage = stage
