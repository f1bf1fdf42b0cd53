# Copyright (c) Syntropy Systems
"""krkn-analysis doctor command."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console

from krkn_analysis.aggregator import CONFIG_FILENAME, HEALTH_CHECK_CSV, LOG_DIR, RESULTS_CSV
from krkn_analysis.config import API_KEY_ENV, find_config_file, get_global_config_path, load_settings
from krkn_analysis.errors import PromptError
from krkn_analysis.prompts import PromptStore

console = Console()


def doctor(
    results_dir: Optional[Path] = typer.Argument(
        None,
        help="krkn-ai output directory to check",
    ),
) -> None:
    """Check krkn-analysis setup and diagnose issues.

    Verifies:
    - GEMINI_API_KEY is set
    - settings file parses
    - prompt templates load
    - results directory layout (when given)
    """
    issues: list[str] = []
    warnings: list[str] = []

    # Check API key
    if os.environ.get(API_KEY_ENV):
        console.print(f"[green]✓[/green] {API_KEY_ENV} is set")
    else:
        console.print(f"[red]✗[/red] {API_KEY_ENV} is not set")
        issues.append(f"{API_KEY_ENV} missing")

    # Check settings
    config_path = find_config_file()
    if config_path is None and get_global_config_path().exists():
        config_path = get_global_config_path()
    if config_path is None:
        console.print("[dim]•[/dim] No settings file, using defaults")
    else:
        try:
            settings = load_settings(config_path)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            console.print(f"[red]✗[/red] Settings file {config_path}: {e}")
            issues.append(f"Settings error: {e}")
        else:
            console.print(f"[green]✓[/green] Settings: {config_path}")
            console.print(f"[dim]•[/dim] Model: {settings.model_name}")
            if settings.notifications.enabled:
                types = ", ".join(r.type for r in settings.notifications.reporters) or "none"
                console.print(f"[dim]•[/dim] Notifications: {types}")

    # Check prompt templates
    try:
        store = PromptStore()
    except PromptError as e:
        console.print(f"[red]✗[/red] Prompt templates: {e}")
        issues.append(f"Prompt error: {e}")
    else:
        ids = ", ".join(store.template_ids())
        console.print(f"[green]✓[/green] Prompt templates: {ids}")

    # Check results layout
    if results_dir is not None:
        if not results_dir.is_dir():
            console.print(f"[red]✗[/red] Results directory not found: {results_dir}")
            issues.append("Results directory missing")
        else:
            if (results_dir / RESULTS_CSV).exists():
                console.print(f"[green]✓[/green] Scenario results: {RESULTS_CSV}")
            else:
                console.print(f"[red]✗[/red] Missing {RESULTS_CSV}")
                issues.append(f"{RESULTS_CSV} missing")

            for optional in (HEALTH_CHECK_CSV, Path(CONFIG_FILENAME)):
                if (results_dir / optional).exists():
                    console.print(f"[green]✓[/green] {optional}")
                else:
                    console.print(f"[yellow]⚠[/yellow] Missing {optional}")
                    warnings.append(f"{optional} missing")

            log_dir = results_dir / LOG_DIR
            log_count = len(list(log_dir.rglob("*.log"))) if log_dir.is_dir() else 0
            if log_count:
                console.print(f"[green]✓[/green] Log artifacts: {log_count}")
            else:
                console.print("[yellow]⚠[/yellow] No log artifacts")
                warnings.append("No log artifacts")

    # Summary
    console.print()
    if issues:
        console.print(f"[red]Found {len(issues)} issue(s)[/red]")
        for issue in issues:
            console.print(f"  - {issue}")
        raise typer.Exit(1)
    if warnings:
        console.print(f"[yellow]Found {len(warnings)} warning(s)[/yellow]")
        for warning in warnings:
            console.print(f"  - {warning}")
    else:
        console.print("[green]All checks passed[/green]")
