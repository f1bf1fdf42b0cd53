# Copyright (c) Syntropy Systems
"""Configuration management for krkn-analysis."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

import yaml
from pydantic import ValidationError

from krkn_analysis.llm.client import (
    DEFAULT_MAX_TOOL_ROUNDS,
    DEFAULT_MODEL,
    DEFAULT_REQUEST_TIMEOUT,
)
from krkn_analysis.models.analysis import LLMOverrides, NotificationConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "krkn-analysis.yaml"
API_KEY_ENV = "GEMINI_API_KEY"


@dataclass
class AnalysisSettings:
    """Settings for analysis runs."""

    # Gemini model used for the analysis
    model_name: str = DEFAULT_MODEL

    # Number of fittest scenarios shown to the model
    top_scenarios_count: int = 10

    # Timeout for a single model request (seconds)
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    # Upper bound on function-calling round trips
    max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS

    llm: LLMOverrides = field(default_factory=LLMOverrides)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)

    # File the settings were read from, if any
    source: Path | None = None


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find the nearest krkn-analysis.yaml by walking up from start_path.

    Returns None if no file is found.
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while current != current.parent:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        current = current.parent

    # Check root
    candidate = current / CONFIG_FILENAME
    if candidate.is_file():
        return candidate

    return None


def get_global_config_path() -> Path:
    """Get the global settings file (~/.krkn-analysis/config.yaml)."""
    return Path.home() / ".krkn-analysis" / "config.yaml"


def load_settings(path: Path | None = None) -> AnalysisSettings:
    """Load settings from a YAML file or defaults.

    Looks for settings in:
    1. Provided path
    2. Nearest krkn-analysis.yaml walking up from the cwd
    3. ~/.krkn-analysis/config.yaml
    4. Defaults

    Values of the wrong type are ignored and keep their default.
    A file that is not a mapping is ignored entirely.

    Raises:
        OSError: If the settings file cannot be read.
        UnicodeDecodeError: If the settings file is not UTF-8.
        yaml.YAMLError: If the settings file is not valid YAML.
    """
    settings = AnalysisSettings()

    config_path = None

    if path is not None:
        config_path = path
    else:
        config_path = find_config_file()
        if config_path is None:
            global_config = get_global_config_path()
            if global_config.exists():
                config_path = global_config

    if config_path is None or not config_path.exists():
        return settings

    with config_path.open(encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    settings.source = config_path
    if raw is None:
        return settings
    if not isinstance(raw, dict):
        logger.warning(
            "Ignoring %s: expected a mapping, got %s", config_path, type(raw).__name__
        )
        return settings
    data = cast("dict[str, object]", raw)

    model_name = data.get("model_name")
    if isinstance(model_name, str) and model_name:
        settings.model_name = model_name
    top_scenarios_count = data.get("top_scenarios_count")
    if isinstance(top_scenarios_count, int) and top_scenarios_count > 0:
        settings.top_scenarios_count = top_scenarios_count
    request_timeout = data.get("request_timeout")
    if isinstance(request_timeout, (int, float)) and request_timeout > 0:
        settings.request_timeout = float(request_timeout)
    max_tool_rounds = data.get("max_tool_rounds")
    if isinstance(max_tool_rounds, int) and max_tool_rounds > 0:
        settings.max_tool_rounds = max_tool_rounds

    llm = data.get("llm")
    if isinstance(llm, dict):
        try:
            settings.llm = LLMOverrides.model_validate(llm)
        except ValidationError:
            logger.warning("Ignoring invalid llm section in %s", config_path)

    notifications = data.get("notifications")
    if isinstance(notifications, dict):
        try:
            settings.notifications = NotificationConfig.model_validate(notifications)
        except ValidationError:
            logger.warning("Ignoring invalid notifications section in %s", config_path)

    return settings
