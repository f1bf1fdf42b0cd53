# Copyright (c) Syntropy Systems
"""krkn-analysis show command."""
from __future__ import annotations

from pathlib import Path
from typing import cast

import typer
import yaml
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from krkn_analysis.engine import summary_path

console = Console()


def show(
    results_dir: Path = typer.Argument(
        ...,
        help="krkn-ai output directory",
    ),
    prompt: bool = typer.Option(
        False,
        "--prompt", "-p",
        help="Also print the prompt sent to the model",
    ),
) -> None:
    """Show the analysis summary of a results directory."""
    path = summary_path(results_dir)
    if not path.exists():
        console.print(f"[red]Error:[/red] No analysis summary at {path}")
        console.print("  Run [bold]krkn-analysis analyze[/bold] first")
        raise typer.Exit(1)

    try:
        with path.open() as f:
            summary = cast("dict[str, object]", yaml.safe_load(f) or {})
    except yaml.YAMLError as e:
        console.print(f"[red]Error:[/red] Could not parse {path}: {e}")
        raise typer.Exit(1) from e

    console.print(f"[bold]Analysis[/bold] {summary.get('status', '-')}")
    console.print(f"  timestamp: {summary.get('timestamp', '-')}")

    run_summary = summary.get("run_summary")
    if isinstance(run_summary, dict):
        table = Table(show_header=True, header_style="bold")
        table.add_column("Metric")
        table.add_column("Value")
        for key, value in cast("dict[str, object]", run_summary).items():
            if isinstance(value, dict):
                value = ", ".join(f"{k}={v}" for k, v in value.items())
            elif isinstance(value, float):
                value = f"{value:.4f}"
            table.add_row(key, str(value))
        console.print(table)

    error = summary.get("error")
    if error:
        console.print(f"[red]Error:[/red] {error}")

    if prompt and summary.get("prompt"):
        console.print()
        console.print("[bold]Prompt[/bold]")
        console.print(str(summary["prompt"]), markup=False)

    response = summary.get("response")
    if response:
        console.print()
        console.print(Markdown(str(response)))
