# ==============================================================================
# File-Based Repositories
# ==============================================================================
"""
Repositories over local files: CSV snapshots of the view and search logs
and a JSON content catalog.

Snapshots are read with polars with every column as a string, so parsing
and validation stay in one place (core/parsing.py) for every backend.
Rows are validated before the window filter is applied: a malformed
timestamp cannot be placed in or out of a window.
"""

import logging
from pathlib import Path

import polars as pl

from learnstream.base import CatalogRepository, EventFilter, EventStore
from learnstream.core.catalog import ContentCatalog
from learnstream.core.errors import UpstreamUnavailable
from learnstream.core.models import SearchEvent, ViewEvent
from learnstream.core.parsing import EventBatch, parse_search_records, parse_view_records
from learnstream.utils.config import StoreSettings, get_settings

logger = logging.getLogger(__name__)

USER_COLUMN = "user_id"
SEQUENCE_COLUMN = "id"


class CsvEventStore(EventStore):
    """
    Read-only EventStore over two CSV files.

    Args:
        views_file: Path to the content views CSV
        searches_file: Path to the search events CSV
    """

    def __init__(self, views_file: Path, searches_file: Path):
        self._views_file = Path(views_file)
        self._searches_file = Path(searches_file)

    @classmethod
    def from_settings(cls, settings: StoreSettings | None = None) -> "CsvEventStore":
        settings = settings or get_settings().store
        return cls(settings.views_path, settings.searches_path)

    def _read_rows(self, path: Path, event_filter: EventFilter) -> list[dict]:
        try:
            df = pl.read_csv(path, infer_schema_length=0)
        except (OSError, pl.exceptions.ComputeError, pl.exceptions.NoDataError) as e:
            raise UpstreamUnavailable(f"Cannot read event snapshot {path}: {e}") from e

        # Without an id column the file position is the ingestion order
        if SEQUENCE_COLUMN not in df.columns:
            df = df.with_row_index(SEQUENCE_COLUMN)

        if event_filter.user_id is not None:
            if USER_COLUMN not in df.columns:
                return []
            df = df.filter(pl.col(USER_COLUMN) == event_filter.user_id)

        logger.debug("Read %d row(s) from %s", df.height, path)
        return list(df.iter_rows(named=True))

    def fetch_views(self, event_filter: EventFilter) -> EventBatch[ViewEvent]:
        batch = parse_view_records(self._read_rows(self._views_file, event_filter))
        return EventBatch(
            events=[e for e in batch.events if event_filter.contains(e.timestamp)],
            skipped=batch.skipped,
        )

    def fetch_searches(self, event_filter: EventFilter) -> EventBatch[SearchEvent]:
        batch = parse_search_records(self._read_rows(self._searches_file, event_filter))
        return EventBatch(
            events=[e for e in batch.events if event_filter.contains(e.timestamp)],
            skipped=batch.skipped,
        )


class JsonCatalogRepository(CatalogRepository):
    """CatalogRepository over a JSON file (see ContentCatalog.from_json_file)."""

    def __init__(self, catalog_file: Path):
        self._catalog_file = Path(catalog_file)

    @classmethod
    def from_settings(cls, settings: StoreSettings | None = None) -> "JsonCatalogRepository":
        settings = settings or get_settings().store
        return cls(settings.catalog_path)

    def load(self) -> ContentCatalog:
        if not self._catalog_file.exists():
            raise UpstreamUnavailable(f"Content catalog not found: {self._catalog_file}")
        return ContentCatalog.from_json_file(self._catalog_file)
