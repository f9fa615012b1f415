# ==============================================================================
# Tests for the PostgreSQL Repositories
# ==============================================================================
"""
Unit tests for learnstream.infrastructure.repositories.postgresql.

Tests cover:
- Windowed, ordered queries with an optional user filter
- Parsing of native rows (datetimes, JSONB dicts, arrays)
- Connection errors retried, then surfaced as UpstreamUnavailable
- Query errors surfaced as UpstreamUnavailable without retrying
- Catalog loading with prerequisite arrays

psycopg2.connect is patched with MagicMock connections, so no database is
needed.
"""

from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from learnstream.base import EventFilter
from learnstream.core.errors import ConfigurationError, UpstreamUnavailable
from learnstream.infrastructure.repositories import (
    PostgreSQLCatalogRepository,
    PostgreSQLEventStore,
)
from learnstream.infrastructure.repositories.postgresql import _add_connect_timeout
from learnstream.utils.config import PostgresSettings

_CONNECT_PATH = "learnstream.infrastructure.repositories.postgresql.psycopg2.connect"

WINDOW = EventFilter(
    since=datetime(2024, 3, 1, tzinfo=UTC),
    until=datetime(2024, 3, 2, tzinfo=UTC),
)


def _connection(rows):
    """A MagicMock connection whose cursor returns ``rows``."""
    conn = MagicMock()
    conn.closed = 0
    cursor = conn.cursor.return_value.__enter__.return_value
    cursor.fetchall.return_value = rows
    return conn, cursor


@pytest.fixture()
def settings():
    return PostgresSettings(host="db", schema_name="analytics")


# ==============================================================================
# Connection Strings
# ==============================================================================


class TestConnectTimeout:
    def test_added(self):
        assert _add_connect_timeout("postgresql://db/x") == "postgresql://db/x?connect_timeout=10"

    def test_appended_to_query(self):
        assert _add_connect_timeout("postgresql://db/x?sslmode=prefer").endswith(
            "&connect_timeout=10"
        )

    def test_kept(self):
        conn_string = "postgresql://db/x?connect_timeout=3"
        assert _add_connect_timeout(conn_string) == conn_string


# ==============================================================================
# Event Store
# ==============================================================================


class TestPostgreSQLEventStore:
    """Tests for windowed event reads."""

    def test_fetch_views(self, settings):
        conn, cursor = _connection(
            [
                {
                    "id": 7,
                    "user_id": "u1",
                    "content_slug": "stoicism",
                    "content_name": "Stoicism",
                    "category": "philosophy",
                    "view_duration_seconds": 61.0,
                    "session_id": None,
                    "source_channel": "search",
                    "completed_at": None,
                    "created_at": datetime(2024, 3, 1, 9, tzinfo=UTC),
                },
                {"id": 8, "content_slug": None, "created_at": datetime(2024, 3, 1, 10, tzinfo=UTC)},
            ]
        )
        store = PostgreSQLEventStore(settings)

        with patch(_CONNECT_PATH, return_value=conn):
            batch = store.fetch_views(WINDOW)

        sql, params = cursor.execute.call_args.args
        assert "FROM analytics.content_views" in sql
        assert "created_at >= %s AND created_at < %s" in sql
        assert sql.endswith("ORDER BY created_at, id")
        assert params == (WINDOW.since, WINDOW.until)
        assert [e.sequence for e in batch.events] == [7]
        assert batch.skipped == 1
        conn.set_session.assert_called_once_with(readonly=True)
        conn.rollback.assert_called_once()

    def test_fetch_searches_for_user(self, settings):
        conn, cursor = _connection(
            [
                {
                    "user_id": "u1",
                    "query_text": "stoic",
                    "filters": {"category": "philosophy"},
                    "results_count": 0,
                    "clicked_slug": None,
                    "clicked_position": None,
                    "time_to_click_ms": None,
                    "failed": None,
                    "created_at": datetime(2024, 3, 1, 9, tzinfo=UTC),
                }
            ]
        )
        store = PostgreSQLEventStore(settings)

        with patch(_CONNECT_PATH, return_value=conn):
            batch = store.fetch_searches(WINDOW.model_copy(update={"user_id": "u1"}))

        sql, params = cursor.execute.call_args.args
        assert "AND user_id = %s" in sql
        assert params[-1] == "u1"
        event = batch.events[0]
        assert event.category == "philosophy"
        assert event.failed is True

    def test_connection_reused(self, settings):
        conn, _ = _connection([])
        store = PostgreSQLEventStore(settings)

        with patch(_CONNECT_PATH, return_value=conn) as connect:
            store.fetch_views(WINDOW)
            store.fetch_searches(WINDOW)

        assert connect.call_count == 1

    def test_connection_errors_retried_then_unavailable(self, settings):
        store = PostgreSQLEventStore(settings)

        with (
            patch(_CONNECT_PATH, side_effect=psycopg2.OperationalError("refused")) as connect,
            patch("time.sleep"),
        ):
            with pytest.raises(UpstreamUnavailable, match="refused"):
                store.fetch_views(WINDOW)

        assert connect.call_count == 5

    def test_recovers_after_transient_error(self, settings):
        conn, _ = _connection([])
        store = PostgreSQLEventStore(settings)

        with (
            patch(_CONNECT_PATH, side_effect=[psycopg2.OperationalError("blip"), conn]),
            patch("time.sleep"),
        ):
            batch = store.fetch_views(WINDOW)

        assert batch.events == []

    def test_query_error_not_retried(self, settings):
        conn, cursor = _connection([])
        cursor.execute.side_effect = psycopg2.ProgrammingError("relation does not exist")
        store = PostgreSQLEventStore(settings)

        with patch(_CONNECT_PATH, return_value=conn) as connect:
            with pytest.raises(UpstreamUnavailable, match="relation does not exist"):
                store.fetch_views(WINDOW)

        assert connect.call_count == 1

    def test_close(self, settings):
        conn, _ = _connection([])
        store = PostgreSQLEventStore(settings)

        with patch(_CONNECT_PATH, return_value=conn):
            store.fetch_views(WINDOW)
        store.close()
        store.close()

        conn.close.assert_called_once()


# ==============================================================================
# Catalog
# ==============================================================================


class TestPostgreSQLCatalogRepository:
    """Tests for catalog loading."""

    def test_load(self, settings):
        conn, cursor = _connection(
            [
                {"slug": "a", "name": "A", "category": None, "prerequisites": None, "order_index": 0},
                {"slug": "b", "name": "B", "category": "x", "prerequisites": ["a"], "order_index": 1},
            ]
        )

        with patch(_CONNECT_PATH, return_value=conn):
            catalog = PostgreSQLCatalogRepository(settings).load()

        assert "FROM analytics.content_catalog" in cursor.execute.call_args.args[0]
        assert catalog.topological_order == ["a", "b"]
        assert catalog.get("a").category == "uncategorized"

    def test_cyclic(self, settings):
        conn, _ = _connection(
            [
                {"slug": "a", "name": "", "category": "x", "prerequisites": ["b"], "order_index": 0},
                {"slug": "b", "name": "", "category": "x", "prerequisites": ["a"], "order_index": 0},
            ]
        )

        with patch(_CONNECT_PATH, return_value=conn):
            with pytest.raises(ConfigurationError, match="Cyclic"):
                PostgreSQLCatalogRepository(settings).load()
