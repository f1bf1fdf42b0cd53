# Copyright (c) Syntropy Systems
"""Pydantic models for analysis output and notification settings."""

from __future__ import annotations

from typing import ClassVar, Optional

from pydantic import ConfigDict, Field

from .base import AnalysisBaseModel, JSONValue

STATUS_COMPLETED = "completed"


class ToolCallRecord(AnalysisBaseModel):
    """A tool call made by the model, as stored with the result."""

    name: str
    args: dict[str, JSONValue] = Field(default_factory=dict)


class AnalysisResult(AnalysisBaseModel):
    """Outcome of one analysis run. Never modified once built."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    status: str
    content: str
    prompt: str = ""
    metadata: dict[str, JSONValue] = Field(default_factory=dict)
    error: Optional[str] = None
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)


class LLMOverrides(AnalysisBaseModel):
    """Caller overrides for the template's model parameters."""

    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None


class ReporterConfig(AnalysisBaseModel):
    """Settings for one notification channel."""

    type: str
    enabled: bool = True
    settings: dict[str, JSONValue] = Field(default_factory=dict)


class NotificationConfig(AnalysisBaseModel):
    """Which channels receive the analysis."""

    enabled: bool = False
    reporters: list[ReporterConfig] = Field(default_factory=list)
