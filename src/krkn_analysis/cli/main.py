# Copyright (c) Syntropy Systems
"""Main CLI entry point for krkn-analysis."""

import logging

import typer
from rich.logging import RichHandler

from krkn_analysis.cli.analyze import analyze
from krkn_analysis.cli.config_cmd import merge_config, validate
from krkn_analysis.cli.doctor import doctor
from krkn_analysis.cli.show import show

app = typer.Typer(
    name="krkn-analysis",
    help=(
        "LLM analysis of krkn-ai chaos runs. Collect results, ask the model "
        "what broke, tell the team."
    ),
    no_args_is_help=True,
    add_completion=False,
)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable debug logging",
    ),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


# Register commands
_ = app.command()(analyze)
_ = app.command(name="merge-config")(merge_config)
_ = app.command()(validate)
_ = app.command()(show)
_ = app.command()(doctor)


if __name__ == "__main__":
    app()
