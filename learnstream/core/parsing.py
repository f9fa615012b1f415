# ==============================================================================
# Raw Record Parsing
# ==============================================================================
"""
Turn raw store rows (dicts) into validated events.

Rows may come from CSV snapshots (every value is a string) or from
PostgreSQL (native types). Both the engine's own column names and the
product's original column names are accepted.

A row that cannot be parsed raises MalformedRecord from the single-record
functions; the batch functions absorb those errors and count them.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Generic, Iterable, TypeVar

from pydantic import ValidationError

from learnstream.core.errors import MalformedRecord
from learnstream.core.models import SearchEvent, ViewEvent

logger = logging.getLogger(__name__)

T = TypeVar("T")

REQUIRED_VIEW_FIELDS = ("content_slug", "timestamp")
REQUIRED_SEARCH_FIELDS = ("query_text", "timestamp")

# Original column name -> engine field name
VIEW_ALIASES = {
    "model_slug": "content_slug",
    "model_name": "content_name",
    "created_at": "timestamp",
    "view_duration": "view_duration_seconds",
    "view_source": "source_channel",
    "id": "sequence",
}
SEARCH_ALIASES = {
    "search_query": "query_text",
    "created_at": "timestamp",
    "filters_applied": "filters",
    "clicked_result_slug": "clicked_slug",
    "clicked_result_position": "clicked_position",
    "failed_search": "failed",
}


@dataclass
class EventBatch(Generic[T]):
    """Events fetched for one window plus the count of rows that were skipped."""

    events: list[T] = field(default_factory=list)
    skipped: int = 0

    def __len__(self) -> int:
        return len(self.events)


def _normalize(raw: dict, aliases: dict[str, str]) -> dict:
    """Apply column aliases and drop empty values so model defaults apply."""
    record = {}
    for key, value in raw.items():
        if value is None or (isinstance(value, str) and value.strip() == ""):
            continue
        name = aliases.get(key, key)
        # Engine names win over aliases when a row carries both
        if name in record and key != name:
            continue
        record[name] = value
    return record


def _check_required(record: dict, required: tuple[str, ...]) -> None:
    missing = [name for name in required if record.get(name) is None]
    if missing:
        raise MalformedRecord(f"Missing required field(s): {', '.join(missing)}")


def parse_view_record(raw: dict) -> ViewEvent:
    """
    Parse one raw view row.

    Args:
        raw: Row dict from a store

    Returns:
        Validated ViewEvent

    Raises:
        MalformedRecord: If a required field is missing or a value is invalid
    """
    record = _normalize(raw, VIEW_ALIASES)
    _check_required(record, REQUIRED_VIEW_FIELDS)
    try:
        return ViewEvent.model_validate(record)
    except ValidationError as e:
        raise MalformedRecord(f"Invalid view record: {e.errors()[0]['msg']}") from e


def _parse_filters(value) -> dict[str, str]:
    if value is None:
        return {}
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise MalformedRecord(f"Invalid filters JSON: {value!r}") from e
    if not isinstance(value, dict):
        raise MalformedRecord(f"Filters must be an object, got {type(value).__name__}")
    return {str(k): str(v) for k, v in value.items() if v is not None}


def parse_search_record(raw: dict) -> SearchEvent:
    """
    Parse one raw search row.

    When the row has no ``failed`` value it defaults to "returned zero
    results". An explicit value is kept as-is.

    Raises:
        MalformedRecord: If a required field is missing or a value is invalid
    """
    record = _normalize(raw, SEARCH_ALIASES)
    _check_required(record, REQUIRED_SEARCH_FIELDS)
    record["filters"] = _parse_filters(record.get("filters"))
    if record.get("results_count") is None:
        record["results_count"] = 0
    try:
        if record.get("failed") is None:
            record["failed"] = int(record["results_count"]) == 0
        return SearchEvent.model_validate(record)
    except (ValidationError, ValueError) as e:
        raise MalformedRecord(f"Invalid search record: {e}") from e


def parse_view_records(rows: Iterable[dict]) -> EventBatch[ViewEvent]:
    """Parse view rows, skipping and counting malformed ones."""
    batch: EventBatch[ViewEvent] = EventBatch()
    for row in rows:
        try:
            batch.events.append(parse_view_record(row))
        except MalformedRecord as e:
            batch.skipped += 1
            logger.debug("Skipping view record: %s", e)
    if batch.skipped:
        logger.warning("Skipped %d malformed view record(s)", batch.skipped)
    return batch


def parse_search_records(rows: Iterable[dict]) -> EventBatch[SearchEvent]:
    """Parse search rows, skipping and counting malformed ones."""
    batch: EventBatch[SearchEvent] = EventBatch()
    for row in rows:
        try:
            batch.events.append(parse_search_record(row))
        except MalformedRecord as e:
            batch.skipped += 1
            logger.debug("Skipping search record: %s", e)
    if batch.skipped:
        logger.warning("Skipped %d malformed search record(s)", batch.skipped)
    return batch
