# Copyright (c) Syntropy Systems
"""Merge run overrides into a discovered krkn-ai baseline document."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import cast

import yaml
from pydantic import ValidationError

from krkn_analysis.errors import BaselineError, ConfigValidationError
from krkn_analysis.models.baseline import BaselineDocument, HealthCheckApp, ScenarioToggle
from krkn_analysis.models.run_config import (
    FLOAT_FIELDS,
    INTEGER_FIELDS,
    SCENARIO_TOGGLE_FIELDS,
    VALID_MODES,
    RunConfig,
)

logger = logging.getLogger(__name__)

BACKUP_FILENAME = "krkn-ai-updated.yaml"
HOST_PARAMETER = "HOST"

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?([0-9]+\.?[0-9]*([eE][+-]?[0-9]+)?|\.[0-9]+([eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)
_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}


def parse_int(value: str) -> int:
    """Parse a base-10 integer, rejecting whitespace and digit separators."""
    if not _INTEGER_RE.fullmatch(value):
        msg = f"invalid integer: {value!r}"
        raise ValueError(msg)
    return int(value)


def parse_float(value: str) -> float:
    """Parse a decimal float, rejecting whitespace and digit separators."""
    if not _FLOAT_RE.fullmatch(value):
        msg = f"invalid float: {value!r}"
        raise ValueError(msg)
    return float(value)


def parse_bool(value: str) -> bool:
    """Parse the boolean spellings accepted by krkn-ai tooling."""
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    msg = f"invalid boolean: {value!r}"
    raise ValueError(msg)


def validate_run_config(run_config: RunConfig | None) -> None:
    """Validate run overrides without touching any file.

    Raises ConfigValidationError for the first problem found.
    """
    if run_config is None:
        msg = "run configuration is missing"
        raise ConfigValidationError(msg)

    if run_config.mode not in VALID_MODES:
        msg = f"invalid mode: {run_config.mode} (must be 'discover' or 'run')"
        raise ConfigValidationError(msg)

    for field in INTEGER_FIELDS:
        value = run_config.provided(field)
        if value is None:
            continue
        try:
            _ = parse_int(value)
        except ValueError as e:
            msg = f"invalid {field} value: {value}"
            raise ConfigValidationError(msg) from e

    for field in FLOAT_FIELDS:
        value = run_config.provided(field)
        if value is None:
            continue
        try:
            _ = parse_float(value)
        except ValueError as e:
            msg = f"invalid {field} value: {value}"
            raise ConfigValidationError(msg) from e

    for field in SCENARIO_TOGGLE_FIELDS:
        value = run_config.provided(field)
        if value is None:
            continue
        try:
            _ = parse_bool(value)
        except ValueError as e:
            msg = f"invalid boolean value for {field}: {value}"
            raise ConfigValidationError(msg) from e


def load_baseline(path: Path) -> BaselineDocument:
    """Read and parse a baseline document."""
    try:
        text = path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        msg = f"reading baseline {path}: {e}"
        raise BaselineError(msg) from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        msg = f"parsing baseline {path}: {e}"
        raise BaselineError(msg) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = f"parsing baseline {path}: expected a mapping, got {type(data).__name__}"
        raise BaselineError(msg)

    try:
        return BaselineDocument.model_validate(cast("dict[str, object]", data))
    except ValidationError as e:
        msg = f"parsing baseline {path}: {e}"
        raise BaselineError(msg) from e


def dump_baseline(document: BaselineDocument) -> str:
    """Serialize a baseline document to YAML."""
    return yaml.safe_dump(
        document.to_yaml_dict(),
        sort_keys=False,
        default_flow_style=False,
    )


def _apply_int(document: BaselineDocument, field: str, value: str) -> None:
    try:
        parsed = parse_int(value)
    except ValueError:
        logger.error("Invalid %s value %r, keeping %s", field, value, getattr(document, field))
        return
    logger.info("Updating %s from %s to %s", field, getattr(document, field), parsed)
    setattr(document, field, parsed)


def _apply_float(document: BaselineDocument, field: str, value: str) -> None:
    try:
        parsed = parse_float(value)
    except ValueError:
        logger.error("Invalid %s value %r, keeping %s", field, value, getattr(document, field))
        return
    logger.info("Updating %s from %s to %s", field, getattr(document, field), parsed)
    setattr(document, field, parsed)


def _update_scenario_toggle(name: str, value: str, toggle: ScenarioToggle) -> None:
    try:
        enable = parse_bool(value)
    except ValueError:
        logger.error("Invalid boolean value %r for scenario %s", value, name)
        return
    logger.info("Updated scenario toggle %s from %s to %s", name, toggle.enable, enable)
    toggle.enable = enable


def apply_overrides(run_config: RunConfig, document: BaselineDocument) -> None:
    """Overlay run overrides onto a baseline document in place.

    Each field is handled on its own: an override that does not parse is
    logged and skipped, the rest are still applied.
    """
    for field in INTEGER_FIELDS:
        value = run_config.provided(field)
        if value is not None:
            _apply_int(document, field, value)

    for field in FLOAT_FIELDS:
        value = run_config.provided(field)
        if value is not None:
            _apply_float(document, field, value)

    for field, scenario_name in SCENARIO_TOGGLE_FIELDS.items():
        value = run_config.provided(field)
        if value is not None:
            toggle = cast("ScenarioToggle", getattr(document.scenario, scenario_name))
            _update_scenario_toggle(scenario_name, value, toggle)

    query = run_config.provided("fitness_function_query")
    if query is not None:
        logger.info("Updating fitness_function.query to %s", query)
        document.fitness_function.query = query

    url = run_config.provided("health_checks_url")
    if url is not None:
        applications = document.health_checks.applications
        if applications:
            old_url = applications[0].url
            applications[0].url = url
            logger.info("Updated health check URL from %s to %s", old_url, url)
        else:
            document.health_checks.applications = [HealthCheckApp.default(url)]
            logger.info("Created health check application for %s", url)

    host = run_config.provided("host")
    if host is not None:
        logger.info("Updating %s parameter to %s", HOST_PARAMETER, host)
        if document.parameters is None:
            document.parameters = {}
        document.parameters[HOST_PARAMETER] = host


def merge_run_config(run_config: RunConfig | None, baseline_path: Path | None) -> BaselineDocument:
    """Merge run overrides into the baseline at ``baseline_path``.

    The baseline is rewritten in place and a copy is saved next to it as
    krkn-ai-updated.yaml. Only the in-place write is required to succeed.

    Returns:
        The updated document.

    Raises:
        ValueError: If run_config or baseline_path is missing.
        BaselineError: If the baseline cannot be read, parsed or rewritten.

    """
    if run_config is None:
        msg = "run configuration is missing"
        raise ValueError(msg)
    if not baseline_path:
        msg = "baseline path is required"
        raise ValueError(msg)

    baseline_path = Path(baseline_path)
    logger.info("Updating %s with run parameters", baseline_path)

    document = load_baseline(baseline_path)
    apply_overrides(run_config, document)
    updated = dump_baseline(document)

    try:
        _ = baseline_path.write_text(updated)
    except OSError as e:
        msg = f"writing updated baseline {baseline_path}: {e}"
        raise BaselineError(msg) from e

    backup_path = baseline_path.parent / BACKUP_FILENAME
    try:
        _ = backup_path.write_text(updated)
    except OSError:
        logger.exception("Failed to write backup baseline %s", backup_path)
    else:
        logger.info("Created backup of updated config at %s", backup_path)

    logger.info("Successfully updated %s", baseline_path)
    return document
