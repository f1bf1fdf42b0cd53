# Copyright (c) Syntropy Systems
"""Pydantic models for the discovered krkn-ai baseline document."""

from __future__ import annotations

from typing import Optional

from pydantic import Field, field_validator

from .base import AnalysisBaseModel, ExtraAllowModel, JSONValue

DEFAULT_HEALTH_CHECK_NAME = "cluster-health"
DEFAULT_HEALTH_CHECK_STATUS = 200
DEFAULT_HEALTH_CHECK_TIMEOUT = 4
DEFAULT_HEALTH_CHECK_INTERVAL = 2


def _none_as_empty(value: object, empty: object) -> object:
    # An empty YAML key such as `nodes:` loads as None
    return empty if value is None else value


class FitnessFunction(ExtraAllowModel):
    """Fitness function used to score scenarios."""

    query: str = ""
    type: str = ""
    include_krkn_failure: bool = False
    include_health_check_failure: bool = False
    include_health_check_response_time: bool = False
    items: list[JSONValue] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def _null_items(cls, value: object) -> object:
        return _none_as_empty(value, [])


class HealthCheckApp(ExtraAllowModel):
    """A single application probed during the run."""

    name: str = ""
    url: str = ""
    status_code: Optional[int] = None
    timeout: Optional[int] = None
    interval: Optional[int] = None

    @classmethod
    def default(cls, url: str) -> HealthCheckApp:
        """Build the entry used when a URL is supplied but no app exists."""
        return cls(
            name=DEFAULT_HEALTH_CHECK_NAME,
            url=url,
            status_code=DEFAULT_HEALTH_CHECK_STATUS,
            timeout=DEFAULT_HEALTH_CHECK_TIMEOUT,
            interval=DEFAULT_HEALTH_CHECK_INTERVAL,
        )


class HealthChecks(ExtraAllowModel):
    """Health check section of the baseline."""

    stop_watcher_on_failure: bool = False
    applications: list[HealthCheckApp] = Field(default_factory=list)

    @field_validator("applications", mode="before")
    @classmethod
    def _null_applications(cls, value: object) -> object:
        return _none_as_empty(value, [])


class ScenarioToggle(AnalysisBaseModel):
    """Enable flag for one scenario family."""

    enable: bool = False


class Scenario(ExtraAllowModel):
    """Scenario families and whether each is enabled."""

    application_outages: ScenarioToggle = Field(default_factory=ScenarioToggle)
    pod_scenarios: ScenarioToggle = Field(default_factory=ScenarioToggle)
    container_scenarios: ScenarioToggle = Field(default_factory=ScenarioToggle)
    node_cpu_hog: ScenarioToggle = Field(default_factory=ScenarioToggle)
    node_memory_hog: ScenarioToggle = Field(default_factory=ScenarioToggle)
    node_io_hog: ScenarioToggle = Field(default_factory=ScenarioToggle)
    time_scenarios: ScenarioToggle = Field(default_factory=ScenarioToggle)
    network_scenarios: ScenarioToggle = Field(default_factory=ScenarioToggle)
    dns_outage: ScenarioToggle = Field(default_factory=ScenarioToggle)
    syn_flood: ScenarioToggle = Field(default_factory=ScenarioToggle)

    @field_validator("*", mode="before")
    @classmethod
    def _null_toggle(cls, value: object) -> object:
        return _none_as_empty(value, {})

    def enabled(self) -> list[str]:
        """Return the names of enabled scenario families."""
        return [
            name
            for name in type(self).model_fields
            if getattr(self, name).enable
        ]


class ClusterComponents(ExtraAllowModel):
    """Discovered cluster inventory."""

    namespaces: list[JSONValue] = Field(default_factory=list)
    nodes: list[JSONValue] = Field(default_factory=list)

    @field_validator("namespaces", "nodes", mode="before")
    @classmethod
    def _null_inventory(cls, value: object) -> object:
        return _none_as_empty(value, [])


class BaselineDocument(ExtraAllowModel):
    """The krkn-ai configuration discovered from a cluster.

    Optional rates and health check settings are left out of the serialized
    document when unset so a load/save cycle does not introduce keys the
    discovery step never wrote.
    """

    kubeconfig_file_path: str = ""
    parameters: Optional[dict[str, JSONValue]] = None
    generations: int = 0
    population_size: int = 0
    wait_duration: int = 0
    mutation_rate: Optional[float] = None
    scenario_mutation_rate: Optional[float] = None
    crossover_rate: Optional[float] = None
    composition_rate: Optional[float] = None
    population_injection_rate: Optional[float] = None
    population_injection_size: Optional[int] = None
    fitness_function: FitnessFunction = Field(default_factory=FitnessFunction)
    health_checks: HealthChecks = Field(default_factory=HealthChecks)
    scenario: Scenario = Field(default_factory=Scenario)
    cluster_components: ClusterComponents = Field(default_factory=ClusterComponents)

    @field_validator(
        "fitness_function", "health_checks", "scenario", "cluster_components", mode="before"
    )
    @classmethod
    def _null_section(cls, value: object) -> object:
        return _none_as_empty(value, {})

    def to_yaml_dict(self) -> dict[str, JSONValue]:
        """Return the document as plain data ready for YAML output."""
        return self.model_dump(mode="json", exclude_none=True)
