# Copyright (c) Syntropy Systems
"""Shared Pydantic model helpers for krkn-analysis."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, JsonValue
from typing_extensions import TypeAlias

JSONValue: TypeAlias = JsonValue


class AnalysisBaseModel(BaseModel):
    """Base model with shared config for krkn-analysis schemas."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
    )


class ExtraAllowModel(BaseModel):
    """Base model that preserves extra fields for flexible schemas."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="allow",
        populate_by_name=True,
    )
