# Copyright (c) Syntropy Systems
"""Collect krkn-ai results from an output directory."""
from __future__ import annotations

import csv
import logging
from collections import Counter, defaultdict
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from krkn_analysis.baseline import load_baseline
from krkn_analysis.errors import AggregationError, BaselineError
from krkn_analysis.models.results import (
    CollectedData,
    ConfigSummary,
    HealthCheckComponent,
    HealthCheckReport,
    LogArtifact,
    RunSummaryStats,
    ScenarioResult,
)

if TYPE_CHECKING:
    from krkn_analysis.context import RunContext

logger = logging.getLogger(__name__)

DEFAULT_TOP_SCENARIOS = 10

RESULTS_CSV = Path("reports") / "all.csv"
HEALTH_CHECK_CSV = Path("reports") / "health_check_report.csv"
CONFIG_FILENAME = "krkn-ai.yaml"
LOG_DIR = "log"


class Aggregator(Protocol):
    """Anything that can turn a results directory into CollectedData."""

    def collect(self, ctx: RunContext, results_dir: Path) -> CollectedData:
        ...


def _float(row: dict[str, str], key: str, default: float = 0.0) -> float:
    value = (row.get(key) or "").strip()
    if not value:
        return default
    return float(value)


def _optional_float(row: dict[str, str], key: str) -> float | None:
    value = (row.get(key) or "").strip()
    if not value:
        return None
    return float(value)


def _int(row: dict[str, str], key: str) -> int:
    value = (row.get(key) or "").strip()
    if not value:
        return 0
    return int(float(value))


def _read_rows(path: Path) -> list[tuple[int, dict[str, str]]]:
    """Read a CSV report into (line number, row) pairs."""
    try:
        with path.open(newline="", encoding="utf-8") as f:
            return list(enumerate(csv.DictReader(f), start=2))
    except (UnicodeDecodeError, csv.Error) as e:
        msg = f"{path}: unreadable report: {e}"
        raise AggregationError(msg) from e


def read_scenario_results(path: Path) -> list[ScenarioResult]:
    """Read every scenario row from all.csv."""
    results: list[ScenarioResult] = []
    for line_no, row in _read_rows(path):
        try:
            results.append(
                ScenarioResult(
                    generation_id=_int(row, "generation_id"),
                    scenario_id=_int(row, "scenario_id"),
                    scenario=(row.get("scenario") or "unknown").strip(),
                    fitness_score=_float(row, "fitness_score"),
                    krkn_failure_score=_float(row, "krkn_failure_score"),
                    health_check_failure_score=_float(
                        row, "health_check_failure_score"
                    ),
                    health_check_response_time_score=_float(
                        row, "health_check_response_time_score"
                    ),
                    command=(row.get("cmd") or "").strip() or None,
                )
            )
        except ValueError as e:
            msg = f"{path}:{line_no}: malformed scenario row: {e}"
            raise AggregationError(msg) from e
    return results


def summarize_scenarios(scenarios: list[ScenarioResult]) -> RunSummaryStats:
    """Compute run-level statistics over scenario results."""
    if not scenarios:
        return RunSummaryStats()

    failed = sum(1 for s in scenarios if s.failed)
    scores = [s.fitness_score for s in scenarios]
    return RunSummaryStats(
        total_scenario_count=len(scenarios),
        successful_scenario_count=len(scenarios) - failed,
        failed_scenario_count=failed,
        generations=len({s.generation_id for s in scenarios}),
        max_fitness_score=max(scores),
        avg_fitness_score=sum(scores) / len(scores),
        scenario_types=dict(Counter(s.scenario for s in scenarios).most_common()),
    )


def read_health_check_report(path: Path) -> HealthCheckReport:
    """Group health_check_report.csv rows by component."""
    if not path.exists():
        return HealthCheckReport()

    rows: dict[str, list[dict[str, str]]] = defaultdict(list)
    for _, row in _read_rows(path):
        name = (row.get("component_name") or "unknown").strip()
        rows[name].append(row)

    components: list[HealthCheckComponent] = []
    try:
        for name, entries in rows.items():
            mins = [v for v in (_optional_float(r, "min_response_time") for r in entries) if v is not None]
            maxs = [v for v in (_optional_float(r, "max_response_time") for r in entries) if v is not None]
            avgs = [v for v in (_optional_float(r, "average_response_time") for r in entries) if v is not None]
            components.append(
                HealthCheckComponent(
                    component_name=name,
                    checks=len(entries),
                    success_count=sum(_int(r, "success_count") for r in entries),
                    failure_count=sum(_int(r, "failure_count") for r in entries),
                    min_response_time=min(mins) if mins else None,
                    max_response_time=max(maxs) if maxs else None,
                    average_response_time=sum(avgs) / len(avgs) if avgs else None,
                )
            )
    except ValueError as e:
        msg = f"{path}: malformed health check row: {e}"
        raise AggregationError(msg) from e

    components.sort(key=lambda c: c.failure_count, reverse=True)
    return HealthCheckReport(
        components=components,
        total_failures=sum(c.failure_count for c in components),
    )


def read_config_summary(path: Path) -> ConfigSummary:
    """Summarize the krkn-ai.yaml the run was started with."""
    if not path.exists():
        return ConfigSummary()

    try:
        document = load_baseline(path)
    except BaselineError:
        logger.warning("Could not parse %s, omitting config summary", path)
        return ConfigSummary()

    return ConfigSummary(
        generations=document.generations,
        population_size=document.population_size,
        wait_duration=document.wait_duration,
        fitness_query=document.fitness_function.query or None,
        enabled_scenarios=document.scenario.enabled(),
        health_check_urls=[a.url for a in document.health_checks.applications if a.url],
        namespaces=len(document.cluster_components.namespaces),
        nodes=len(document.cluster_components.nodes),
    )


def find_log_artifacts(results_dir: Path) -> list[LogArtifact]:
    """List log files under the results directory."""
    log_dir = results_dir / LOG_DIR
    if not log_dir.is_dir():
        return []

    artifacts: list[LogArtifact] = []
    for path in sorted(log_dir.rglob("*.log")):
        if not path.is_file():
            continue
        artifacts.append(
            LogArtifact(
                name=path.relative_to(results_dir).as_posix(),
                path=str(path.resolve()),
                size=path.stat().st_size,
            )
        )
    return artifacts


class KrknAIAggregator:
    """Reads a krkn-ai output directory into CollectedData."""

    top_scenarios_count: int

    def __init__(self, top_scenarios_count: int = DEFAULT_TOP_SCENARIOS) -> None:
        self.top_scenarios_count = top_scenarios_count

    def with_top_scenarios_count(self, count: int) -> KrknAIAggregator:
        """Set how many of the fittest scenarios to keep."""
        if count > 0:
            self.top_scenarios_count = count
        return self

    def collect(self, ctx: RunContext, results_dir: Path) -> CollectedData:
        """Collect scenario results, health checks, config and logs.

        Raises:
            AggregationError: If the directory or all.csv is missing or malformed.

        """
        results_dir = Path(results_dir)
        if not results_dir.is_dir():
            msg = f"results directory not found: {results_dir}"
            raise AggregationError(msg)

        results_path = results_dir / RESULTS_CSV
        if not results_path.exists():
            msg = f"no scenario results found at {results_path}"
            raise AggregationError(msg)

        ctx.raise_if_cancelled("collecting")
        scenarios = read_scenario_results(results_path)
        logger.debug("Read %d scenarios from %s", len(scenarios), results_path)

        ranked = sorted(scenarios, key=lambda s: s.fitness_score, reverse=True)

        ctx.raise_if_cancelled("collecting")
        return CollectedData(
            summary=summarize_scenarios(scenarios),
            top_scenarios=ranked[: self.top_scenarios_count],
            failed_scenarios=[s for s in scenarios if s.failed],
            health_check_report=read_health_check_report(results_dir / HEALTH_CHECK_CSV),
            config_summary=read_config_summary(results_dir / CONFIG_FILENAME),
            log_artifacts=find_log_artifacts(results_dir),
        )
