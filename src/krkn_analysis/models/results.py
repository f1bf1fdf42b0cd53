# Copyright (c) Syntropy Systems
"""Pydantic models for collected krkn-ai run results."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from .base import AnalysisBaseModel


class ScenarioResult(AnalysisBaseModel):
    """One scenario evaluated by the genetic algorithm."""

    generation_id: int
    scenario_id: int
    scenario: str
    fitness_score: float
    krkn_failure_score: float = 0.0
    health_check_failure_score: float = 0.0
    health_check_response_time_score: float = 0.0
    command: Optional[str] = None

    @property
    def failed(self) -> bool:
        """Whether krkn reported a failure or a health check failed."""
        return self.krkn_failure_score != 0 or self.health_check_failure_score > 0


class RunSummaryStats(AnalysisBaseModel):
    """Aggregate statistics across every scenario in a run."""

    total_scenario_count: int = 0
    successful_scenario_count: int = 0
    failed_scenario_count: int = 0
    generations: int = 0
    max_fitness_score: float = 0.0
    avg_fitness_score: float = 0.0
    scenario_types: dict[str, int] = Field(default_factory=dict)


class HealthCheckComponent(AnalysisBaseModel):
    """Health check results for one monitored component."""

    component_name: str
    checks: int = 0
    success_count: int = 0
    failure_count: int = 0
    min_response_time: Optional[float] = None
    max_response_time: Optional[float] = None
    average_response_time: Optional[float] = None


class HealthCheckReport(AnalysisBaseModel):
    """Health check results grouped by component."""

    components: list[HealthCheckComponent] = Field(default_factory=list)
    total_failures: int = 0


class ConfigSummary(AnalysisBaseModel):
    """The subset of the run configuration worth showing the model."""

    generations: Optional[int] = None
    population_size: Optional[int] = None
    wait_duration: Optional[int] = None
    fitness_query: Optional[str] = None
    enabled_scenarios: list[str] = Field(default_factory=list)
    health_check_urls: list[str] = Field(default_factory=list)
    namespaces: int = 0
    nodes: int = 0


class LogArtifact(AnalysisBaseModel):
    """A log file produced by the run."""

    name: str
    path: str
    size: int


class CollectedData(AnalysisBaseModel):
    """Everything the aggregator extracts from a results directory."""

    summary: RunSummaryStats = Field(default_factory=RunSummaryStats)
    top_scenarios: list[ScenarioResult] = Field(default_factory=list)
    failed_scenarios: list[ScenarioResult] = Field(default_factory=list)
    health_check_report: HealthCheckReport = Field(default_factory=HealthCheckReport)
    config_summary: ConfigSummary = Field(default_factory=ConfigSummary)
    log_artifacts: list[LogArtifact] = Field(default_factory=list)
