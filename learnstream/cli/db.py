# ==============================================================================
# Database Commands
# ==============================================================================
"""
Database commands for the learnstream CLI.
"""

import psycopg2
import typer

from learnstream.cli.shared import C, I


def db_init() -> None:
    """Create the PostgreSQL schema and tables (idempotent)."""
    from learnstream.utils.config import get_settings
    from learnstream.utils.db import ensure_schema

    settings = get_settings()
    try:
        ensure_schema(settings.postgres)
    except (psycopg2.Error, RuntimeError) as e:
        print(f"\n{C.BRIGHT_RED}{I.CROSS} Schema initialization failed: {e}{C.RESET}\n")
        raise typer.Exit(1)

    print(
        f"{C.BRIGHT_GREEN}{I.CHECK} Schema '{settings.postgres.schema_name}' is ready{C.RESET}"
    )
