# Copyright (c) Syntropy Systems
"""Pydantic model for externally supplied run overrides."""

from __future__ import annotations

from typing import ClassVar, Optional

from pydantic import ConfigDict

from .base import AnalysisBaseModel

VALID_MODES = ("discover", "run")

INTEGER_FIELDS = ("generations", "population_size", "wait_duration")
FLOAT_FIELDS = ("composition_rate",)

# Override field -> scenario family in the baseline document
SCENARIO_TOGGLE_FIELDS = {
    "enable_pod_scenarios": "pod_scenarios",
    "enable_container_scenarios": "container_scenarios",
    "enable_node_cpu_hog": "node_cpu_hog",
    "enable_node_memory_hog": "node_memory_hog",
    "enable_node_io_hog": "node_io_hog",
    "enable_network_scenarios": "network_scenarios",
    "enable_dns_outage": "dns_outage",
    "enable_time_scenarios": "time_scenarios",
}


class RunConfig(AnalysisBaseModel):
    """Run parameters overlaid onto a discovered baseline.

    Every override is kept as the raw string it was supplied as. ``None`` and
    the empty string both mean "not supplied".
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    mode: str

    # Genetic algorithm parameters
    generations: Optional[str] = None
    population_size: Optional[str] = None
    wait_duration: Optional[str] = None
    composition_rate: Optional[str] = None

    # Scenario toggles
    enable_pod_scenarios: Optional[str] = None
    enable_container_scenarios: Optional[str] = None
    enable_node_cpu_hog: Optional[str] = None
    enable_node_memory_hog: Optional[str] = None
    enable_node_io_hog: Optional[str] = None
    enable_network_scenarios: Optional[str] = None
    enable_dns_outage: Optional[str] = None
    enable_time_scenarios: Optional[str] = None

    fitness_function_query: Optional[str] = None
    health_checks_url: Optional[str] = None
    host: Optional[str] = None

    def provided(self, field: str) -> str | None:
        """Return the override for ``field`` or None when it was not supplied."""
        value = getattr(self, field)
        if value is None or value == "":
            return None
        return value
