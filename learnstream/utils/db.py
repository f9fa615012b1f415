# ==============================================================================
# Database Utilities
# ==============================================================================
"""
Schema initialization for the PostgreSQL event store.

The schema template (schema/init.sql) is rendered with jinja2 so the same
script can target any schema name.
"""

import logging
from pathlib import Path

import psycopg2
from jinja2 import Template

from learnstream.utils.config import PostgresSettings, get_settings
from learnstream.utils.paths import get_init_sql_path
from learnstream.utils.retry import POSTGRES_RETRY_EXCEPTIONS, retry_standard

logger = logging.getLogger(__name__)


def get_schema_file() -> Path | None:
    """Get the schema init.sql path, or None if not found."""
    path = get_init_sql_path()
    if path.exists():
        return path
    cwd_path = Path.cwd() / "schema" / "init.sql"
    if cwd_path.exists():
        return cwd_path
    return None


def render_schema_sql(schema_name: str) -> str:
    """Render the schema SQL template with the given schema name."""
    schema_file = get_schema_file()
    if not schema_file:
        raise RuntimeError(
            "Schema file (schema/init.sql) not found. "
            "Make sure you're running from the project root."
        )

    template = Template(schema_file.read_text(encoding="utf-8"))
    return template.render(schema_name=schema_name)


@retry_standard(POSTGRES_RETRY_EXCEPTIONS, logger)
def ensure_schema(settings: PostgresSettings | None = None) -> None:
    """
    Create the schema and tables if they do not exist.

    Idempotent: every statement in the template uses IF NOT EXISTS.
    Retries on connection errors with exponential backoff.

    Args:
        settings: PostgreSQL settings (defaults to application settings)
    """
    settings = settings or get_settings().postgres
    schema_sql = render_schema_sql(settings.schema_name)

    logger.info("Initializing database schema '%s'...", settings.schema_name)
    conn = psycopg2.connect(settings.connection_string, connect_timeout=5)
    try:
        with conn.cursor() as cur:
            cur.execute(schema_sql)
        conn.commit()
    finally:
        conn.close()
    logger.info("Database schema '%s' initialized.", settings.schema_name)
