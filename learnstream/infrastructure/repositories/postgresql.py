# ==============================================================================
# PostgreSQL Repository Implementations
# ==============================================================================
"""
PostgreSQL implementations of the read-only repository interfaces.

Provides:
- PostgreSQLEventStore: Windowed reads of content_views and search_events
- PostgreSQLCatalogRepository: Content catalog with prerequisites

Every query is bounded by created_at and ordered by (created_at, id) so
repeated reads of the same window return the same rows in the same order.
"""

import logging

import psycopg2
from psycopg2.extras import RealDictCursor

from learnstream.base import CatalogRepository, EventFilter, EventStore
from learnstream.core.catalog import ContentCatalog
from learnstream.core.errors import UpstreamUnavailable
from learnstream.core.models import SearchEvent, ViewEvent
from learnstream.core.parsing import EventBatch, parse_search_records, parse_view_records
from learnstream.utils.config import PostgresSettings, get_settings
from learnstream.utils.retry import POSTGRES_RETRY_EXCEPTIONS, retry_standard

logger = logging.getLogger(__name__)

# Connection timeout
CONNECT_TIMEOUT = 10


def _add_connect_timeout(conn_string: str) -> str:
    """Add connect_timeout to connection string if not present."""
    if "connect_timeout" not in conn_string:
        separator = "&" if "?" in conn_string else "?"
        return f"{conn_string}{separator}connect_timeout={CONNECT_TIMEOUT}"
    return conn_string


class _PostgreSQLReader:
    """Connection handling shared by the PostgreSQL adapters."""

    def __init__(self, settings: PostgresSettings | None = None):
        self._settings = settings or get_settings().postgres
        self._conn: psycopg2.extensions.connection | None = None
        self._schema = self._settings.schema_name

    @property
    def schema(self) -> str:
        """Get the database schema name."""
        return self._schema

    def connect(self) -> None:
        """Establish connection to PostgreSQL."""
        conn_string = _add_connect_timeout(self._settings.connection_string)
        self._conn = psycopg2.connect(conn_string)
        self._conn.set_session(readonly=True)
        logger.info("%s connected (schema=%s)", type(self).__name__, self._schema)

    def _reset(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            except psycopg2.Error as e:
                logger.debug("Error closing broken connection: %s", e)
            self._conn = None

    def _query(self, sql: str, params: tuple) -> list[dict]:
        """Run a read query, reconnecting and retrying on connection errors."""

        @retry_standard(POSTGRES_RETRY_EXCEPTIONS, logger)
        def _run() -> list[dict]:
            if self._conn is None or self._conn.closed:
                self.connect()
            try:
                with self._conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(sql, params)
                    rows = [dict(row) for row in cur.fetchall()]
                self._conn.rollback()
                return rows
            except POSTGRES_RETRY_EXCEPTIONS:
                self._reset()
                raise

        try:
            return _run()
        except psycopg2.Error as e:
            raise UpstreamUnavailable(f"PostgreSQL query failed: {e}") from e

    def close(self) -> None:
        """Close connection and release resources."""
        if self._conn:
            try:
                self._conn.close()
                logger.info("%s connection closed", type(self).__name__)
            except psycopg2.Error as e:
                logger.warning("Error closing connection: %s", e)
            finally:
                self._conn = None


class PostgreSQLEventStore(_PostgreSQLReader, EventStore):
    """PostgreSQL implementation of EventStore."""

    def _window_query(self, table: str, columns: str, event_filter: EventFilter):
        sql = (
            f"SELECT {columns} FROM {self._schema}.{table} "
            "WHERE created_at >= %s AND created_at < %s"
        )
        params: tuple = (event_filter.since, event_filter.until)
        if event_filter.user_id is not None:
            sql += " AND user_id = %s"
            params += (event_filter.user_id,)
        return sql + " ORDER BY created_at, id", params

    def fetch_views(self, event_filter: EventFilter) -> EventBatch[ViewEvent]:
        sql, params = self._window_query(
            "content_views",
            "id, user_id, content_slug, content_name, category, view_duration_seconds, "
            "session_id, source_channel, completed_at, created_at",
            event_filter,
        )
        rows = self._query(sql, params)
        logger.debug("Fetched %d view row(s)", len(rows))
        return parse_view_records(rows)

    def fetch_searches(self, event_filter: EventFilter) -> EventBatch[SearchEvent]:
        sql, params = self._window_query(
            "search_events",
            "user_id, query_text, filters, results_count, clicked_slug, "
            "clicked_position, time_to_click_ms, failed, created_at",
            event_filter,
        )
        rows = self._query(sql, params)
        logger.debug("Fetched %d search row(s)", len(rows))
        return parse_search_records(rows)


class PostgreSQLCatalogRepository(_PostgreSQLReader, CatalogRepository):
    """PostgreSQL implementation of CatalogRepository."""

    def load(self) -> ContentCatalog:
        rows = self._query(
            f"SELECT slug, name, category, prerequisites, order_index "
            f"FROM {self._schema}.content_catalog ORDER BY slug",
            (),
        )
        for row in rows:
            row["prerequisites"] = tuple(row.get("prerequisites") or ())
            if row.get("category") is None:
                row.pop("category", None)
        return ContentCatalog.from_records(rows)
