# Copyright (c) Syntropy Systems
"""krkn-analysis merge-config and validate commands."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from krkn_analysis.baseline import BACKUP_FILENAME, merge_run_config, validate_run_config
from krkn_analysis.errors import BaselineError, ConfigValidationError
from krkn_analysis.models.run_config import RunConfig

console = Console()

# Shared by merge-config and validate
MODE_OPTION = typer.Option(
    "run", "--mode", envvar="KRKN_AI_MODE", help="krkn-ai mode (discover or run)"
)
GENERATIONS_OPTION = typer.Option(
    None, "--generations", envvar="KRKN_AI_GENERATIONS", help="Number of generations"
)
POPULATION_SIZE_OPTION = typer.Option(
    None, "--population-size", envvar="KRKN_AI_POPULATION_SIZE", help="Population size"
)
WAIT_DURATION_OPTION = typer.Option(
    None,
    "--wait-duration",
    envvar="KRKN_AI_WAIT_DURATION",
    help="Seconds to wait between scenarios",
)
COMPOSITION_RATE_OPTION = typer.Option(
    None, "--composition-rate", envvar="KRKN_AI_COMPOSITION_RATE", help="Composition rate"
)
POD_SCENARIOS_OPTION = typer.Option(
    None, "--enable-pod-scenarios", envvar="KRKN_AI_ENABLE_POD_SCENARIOS"
)
CONTAINER_SCENARIOS_OPTION = typer.Option(
    None, "--enable-container-scenarios", envvar="KRKN_AI_ENABLE_CONTAINER_SCENARIOS"
)
NODE_CPU_HOG_OPTION = typer.Option(
    None, "--enable-node-cpu-hog", envvar="KRKN_AI_ENABLE_NODE_CPU_HOG"
)
NODE_MEMORY_HOG_OPTION = typer.Option(
    None, "--enable-node-memory-hog", envvar="KRKN_AI_ENABLE_NODE_MEMORY_HOG"
)
NODE_IO_HOG_OPTION = typer.Option(
    None, "--enable-node-io-hog", envvar="KRKN_AI_ENABLE_NODE_IO_HOG"
)
NETWORK_SCENARIOS_OPTION = typer.Option(
    None, "--enable-network-scenarios", envvar="KRKN_AI_ENABLE_NETWORK_SCENARIOS"
)
DNS_OUTAGE_OPTION = typer.Option(
    None, "--enable-dns-outage", envvar="KRKN_AI_ENABLE_DNS_OUTAGE"
)
TIME_SCENARIOS_OPTION = typer.Option(
    None, "--enable-time-scenarios", envvar="KRKN_AI_ENABLE_TIME_SCENARIOS"
)
FITNESS_QUERY_OPTION = typer.Option(
    None,
    "--fitness-query",
    envvar="KRKN_AI_FITNESS_FUNCTION_QUERY",
    help="Prometheus query used as the fitness function",
)
HEALTH_CHECKS_URL_OPTION = typer.Option(
    None,
    "--health-checks-url",
    envvar="KRKN_AI_HEALTH_CHECKS_URL",
    help="URL of the first health check application",
)
HOST_OPTION = typer.Option(
    None, "--host", envvar="KRKN_AI_HOST", help="Value for the HOST parameter"
)


def merge_config(
    baseline: Path = typer.Argument(
        ...,
        help="Discovered krkn-ai.yaml to update in place",
    ),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Abort when an override fails validation",
    ),
    mode: str = MODE_OPTION,
    generations: Optional[str] = GENERATIONS_OPTION,
    population_size: Optional[str] = POPULATION_SIZE_OPTION,
    wait_duration: Optional[str] = WAIT_DURATION_OPTION,
    composition_rate: Optional[str] = COMPOSITION_RATE_OPTION,
    enable_pod_scenarios: Optional[str] = POD_SCENARIOS_OPTION,
    enable_container_scenarios: Optional[str] = CONTAINER_SCENARIOS_OPTION,
    enable_node_cpu_hog: Optional[str] = NODE_CPU_HOG_OPTION,
    enable_node_memory_hog: Optional[str] = NODE_MEMORY_HOG_OPTION,
    enable_node_io_hog: Optional[str] = NODE_IO_HOG_OPTION,
    enable_network_scenarios: Optional[str] = NETWORK_SCENARIOS_OPTION,
    enable_dns_outage: Optional[str] = DNS_OUTAGE_OPTION,
    enable_time_scenarios: Optional[str] = TIME_SCENARIOS_OPTION,
    fitness_function_query: Optional[str] = FITNESS_QUERY_OPTION,
    health_checks_url: Optional[str] = HEALTH_CHECKS_URL_OPTION,
    host: Optional[str] = HOST_OPTION,
) -> None:
    """Overlay run parameters onto a discovered baseline.

    Overrides that do not parse are skipped and the rest are still applied,
    unless --strict is given.

    Examples:
        krkn-analysis merge-config krkn-ai.yaml --generations 5 --host api.example.com
        KRKN_AI_POPULATION_SIZE=8 krkn-analysis merge-config krkn-ai.yaml
    """
    run_config = RunConfig(
        mode=mode,
        generations=generations,
        population_size=population_size,
        wait_duration=wait_duration,
        composition_rate=composition_rate,
        enable_pod_scenarios=enable_pod_scenarios,
        enable_container_scenarios=enable_container_scenarios,
        enable_node_cpu_hog=enable_node_cpu_hog,
        enable_node_memory_hog=enable_node_memory_hog,
        enable_node_io_hog=enable_node_io_hog,
        enable_network_scenarios=enable_network_scenarios,
        enable_dns_outage=enable_dns_outage,
        enable_time_scenarios=enable_time_scenarios,
        fitness_function_query=fitness_function_query,
        health_checks_url=health_checks_url,
        host=host,
    )

    try:
        validate_run_config(run_config)
    except ConfigValidationError as e:
        if strict:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1) from e
        console.print(f"[yellow]Warning:[/yellow] {e}")

    try:
        _ = merge_run_config(run_config, baseline)
    except BaselineError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    console.print(f"[green]Updated[/green] {baseline}")
    console.print(f"[dim]Copy saved to {baseline.parent / BACKUP_FILENAME}[/dim]")


def validate(
    mode: str = MODE_OPTION,
    generations: Optional[str] = GENERATIONS_OPTION,
    population_size: Optional[str] = POPULATION_SIZE_OPTION,
    wait_duration: Optional[str] = WAIT_DURATION_OPTION,
    composition_rate: Optional[str] = COMPOSITION_RATE_OPTION,
    enable_pod_scenarios: Optional[str] = POD_SCENARIOS_OPTION,
    enable_container_scenarios: Optional[str] = CONTAINER_SCENARIOS_OPTION,
    enable_node_cpu_hog: Optional[str] = NODE_CPU_HOG_OPTION,
    enable_node_memory_hog: Optional[str] = NODE_MEMORY_HOG_OPTION,
    enable_node_io_hog: Optional[str] = NODE_IO_HOG_OPTION,
    enable_network_scenarios: Optional[str] = NETWORK_SCENARIOS_OPTION,
    enable_dns_outage: Optional[str] = DNS_OUTAGE_OPTION,
    enable_time_scenarios: Optional[str] = TIME_SCENARIOS_OPTION,
) -> None:
    """Check run parameters without touching any file."""
    run_config = RunConfig(
        mode=mode,
        generations=generations,
        population_size=population_size,
        wait_duration=wait_duration,
        composition_rate=composition_rate,
        enable_pod_scenarios=enable_pod_scenarios,
        enable_container_scenarios=enable_container_scenarios,
        enable_node_cpu_hog=enable_node_cpu_hog,
        enable_node_memory_hog=enable_node_memory_hog,
        enable_node_io_hog=enable_node_io_hog,
        enable_network_scenarios=enable_network_scenarios,
        enable_dns_outage=enable_dns_outage,
        enable_time_scenarios=enable_time_scenarios,
    )

    try:
        validate_run_config(run_config)
    except ConfigValidationError as e:
        console.print(f"[red]Invalid:[/red] {e}")
        raise typer.Exit(1) from e

    console.print("[green]✓[/green] Run configuration is valid")
