# Copyright (c) Syntropy Systems
"""krkn-analysis analyze command."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from krkn_analysis.config import API_KEY_ENV, load_settings
from krkn_analysis.context import RunContext
from krkn_analysis.engine import AnalysisEngine, EngineConfig, summary_path
from krkn_analysis.errors import AnalysisCancelledError, KrknAnalysisError, PromptError

console = Console()


def analyze(
    results_dir: Path = typer.Argument(
        ...,
        help="krkn-ai output directory",
    ),
    api_key: Optional[str] = typer.Option(
        None,
        "--api-key",
        envvar=API_KEY_ENV,
        help="Gemini API key",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Settings file (default: nearest krkn-analysis.yaml)",
    ),
    model: Optional[str] = typer.Option(
        None,
        "--model", "-m",
        help="Gemini model to use",
    ),
    top: Optional[int] = typer.Option(
        None,
        "--top", "-n",
        help="Number of top scenarios to include",
    ),
    temperature: Optional[float] = typer.Option(
        None,
        "--temperature",
        help="Override the template temperature",
    ),
    max_tokens: Optional[int] = typer.Option(
        None,
        "--max-tokens",
        help="Override the template max tokens",
    ),
    top_p: Optional[float] = typer.Option(
        None,
        "--top-p",
        help="Override the template top-p",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Abort the analysis after this many seconds",
    ),
    notify: bool = typer.Option(
        True,
        "--notify/--no-notify",
        help="Send notifications configured in the settings file",
    ),
) -> None:
    """Analyze krkn-ai results with Gemini.

    Writes llm-analysis/summary.yaml into the results directory.

    Examples:
        krkn-analysis analyze ./krkn-ai-output
        krkn-analysis analyze ./out --top 5 --temperature 0.1 --no-notify
    """
    if config is not None and not config.exists():
        console.print(f"[red]Error:[/red] Settings file not found: {config}")
        raise typer.Exit(1)

    try:
        settings = load_settings(config)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        console.print(f"[red]Error:[/red] Could not load settings: {e}")
        raise typer.Exit(1) from e
    if model:
        settings.model_name = model
    if top is not None and top > 0:
        settings.top_scenarios_count = top
    if temperature is not None:
        settings.llm = settings.llm.model_copy(update={"temperature": temperature})
    if max_tokens is not None:
        settings.llm = settings.llm.model_copy(update={"max_tokens": max_tokens})
    if top_p is not None:
        settings.llm = settings.llm.model_copy(update={"top_p": top_p})
    if not notify:
        settings.notifications = settings.notifications.model_copy(update={"enabled": False})

    engine_config = EngineConfig.from_settings(settings, results_dir, api_key)
    try:
        engine = AnalysisEngine(engine_config)
    except (ValueError, PromptError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    console.print(f"Analyzing [bold]{results_dir}[/bold] with {settings.model_name}...")
    ctx = RunContext(timeout=timeout)
    try:
        result = engine.run(ctx)
    except AnalysisCancelledError as e:
        console.print(f"[yellow]Cancelled:[/yellow] {e}")
        raise typer.Exit(130) from e
    except KrknAnalysisError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    table = Table(show_header=False, box=None)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    for key, value in result.metadata.items():
        table.add_row(key, str(value))

    console.print(Panel(table, title=f"Analysis {result.status}", expand=False))
    console.print(Markdown(result.content))
    console.print()
    console.print(f"[dim]Summary written to {summary_path(results_dir)}[/dim]")
