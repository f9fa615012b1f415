# ==============================================================================
# Learnstream CLI
# ==============================================================================
"""
Command-line interface for the learnstream aggregation engine.

Usage:
    learnstream --help
    learnstream trending
    learnstream journeys --json
    learnstream search-quality
    learnstream overview
    learnstream progress USER
    learnstream achievements USER
    learnstream paths USER
    learnstream export --user USER -o user.csv
    learnstream config show
    learnstream db init
"""

import logging
import os

import typer

from learnstream.utils.config import get_settings

# ==============================================================================
# App Configuration
# ==============================================================================
# Set consistent terminal width for help output formatting
if "COLUMNS" not in os.environ:
    os.environ["COLUMNS"] = "115"

app = typer.Typer(
    name="learnstream",
    help="Behavioral analytics and personalization aggregation CLI",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback()
def configure_logging(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    """Behavioral analytics and personalization aggregation CLI."""
    try:
        level = "DEBUG" if verbose else get_settings().log_level.upper()
    except ValueError:
        # Invalid settings are reported by the command itself
        level = "INFO"
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Report commands are imported from learnstream.cli.analytics
from learnstream.cli.analytics import (
    export_report,
    show_achievements,
    show_journeys,
    show_learning_paths,
    show_overview,
    show_progress,
    show_search_quality,
    show_trending,
)

app.command("trending")(show_trending)
app.command("journeys")(show_journeys)
app.command("search-quality")(show_search_quality)
app.command("overview")(show_overview)
app.command("progress")(show_progress)
app.command("achievements")(show_achievements)
app.command("paths")(show_learning_paths)
app.command("export")(export_report)

config_app = typer.Typer(
    help="Configuration management",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

# Register config commands from cli.config module
from learnstream.cli.config import config_show

config_app.command("show")(config_show)

db_app = typer.Typer(
    help="Database schema management",
    no_args_is_help=True,
)
app.add_typer(db_app, name="db")

from learnstream.cli.db import db_init

db_app.command("init")(db_init)


# ==============================================================================
# Entry Point
# ==============================================================================


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
