# ==============================================================================
# CSV Export
# ==============================================================================
"""
Flatten published aggregates into a long-format CSV.

One row per metric with header ``section,key,metric,value``:

    section,key,metric,value
    trending,stoicism,rank,1
    trending,stoicism,score,166.0
    search_quality,global,quality_score,82.5

Rows follow the aggregate's own (deterministic) ordering, so exporting the
same aggregates twice produces identical bytes.
"""

from pathlib import Path

import polars as pl
from pydantic import BaseModel

from learnstream.core.models import DashboardAggregates, UserAggregates

HEADER = ("section", "key", "metric", "value")

# Field used as the row key for each exported section
DASHBOARD_SECTIONS = {
    "trending": "content_slug",
    "paths": "path_key",
    "transitions": None,
    "sources": "source",
    "category_flow": "category",
    "search_quality": "scope",
    "popular_searches": "query",
    "content_gaps": "query",
    "search_funnel": "stage",
    "model_performance": "content_slug",
}
USER_SECTIONS = {
    "achievements": "achievement_id",
    "recommendations": "content_slug",
}


def _format(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ";".join(_format(v) for v in value)
    if isinstance(value, dict):
        return ";".join(f"{k}={_format(v)}" for k, v in value.items())
    return str(value)


def _record_rows(section: str, key: str, record: dict) -> list[tuple[str, str, str, str]]:
    return [(section, key, metric, _format(value)) for metric, value in record.items()]


def _section_rows(section: str, key_field: str | None, records: list[BaseModel]) -> list[tuple]:
    rows = []
    for record in records:
        data = record.model_dump(mode="json")
        if key_field is None:
            # Transitions are keyed by their edge
            key = f"{data.pop('from_category')}>{data.pop('to_category')}"
        else:
            key = _format(data.pop(key_field))
        rows.extend(_record_rows(section, key, data))
    return rows


def _dashboard_rows(aggregates: DashboardAggregates) -> list[tuple]:
    rows = _record_rows(
        "summary",
        "dashboard",
        aggregates.model_dump(
            mode="json",
            include={
                "generated_at",
                "window_start",
                "window_end",
                "session_count",
                "skipped_records",
            },
        ),
    )
    rows.extend(_record_rows("overview", "dashboard", aggregates.overview.model_dump(mode="json")))
    for section, key_field in DASHBOARD_SECTIONS.items():
        rows.extend(_section_rows(section, key_field, getattr(aggregates, section)))
    return rows


def _user_rows(aggregates: UserAggregates) -> list[tuple]:
    rows = _record_rows(
        "summary",
        aggregates.user_id,
        aggregates.model_dump(mode="json", include={"generated_at", "skipped_records"}),
    )
    rows.extend(_section_rows("progress", "content_slug", list(aggregates.progress.values())))
    rows.extend(
        _record_rows(
            "stats",
            aggregates.user_id,
            aggregates.stats.model_dump(mode="json", exclude={"top_categories"}),
        )
    )
    rows.extend(_section_rows("top_categories", "category", aggregates.stats.top_categories))
    for section, key_field in USER_SECTIONS.items():
        rows.extend(_section_rows(section, key_field, getattr(aggregates, section)))
    return rows


def to_frame(aggregates: DashboardAggregates | UserAggregates) -> pl.DataFrame:
    """Long-format DataFrame with one row per metric, all columns strings."""
    if isinstance(aggregates, DashboardAggregates):
        rows = _dashboard_rows(aggregates)
    else:
        rows = _user_rows(aggregates)
    return pl.DataFrame(
        rows,
        schema={name: pl.String for name in HEADER},
        orient="row",
    )


def export_csv(
    aggregates: DashboardAggregates | UserAggregates,
    path: Path | None = None,
) -> str:
    """
    Render aggregates as CSV.

    Args:
        aggregates: Dashboard or per-user aggregates
        path: When given, also write the CSV (UTF-8) to this file

    Returns:
        The CSV text, header included
    """
    text = to_frame(aggregates).write_csv()
    if path is not None:
        Path(path).write_text(text, encoding="utf-8")
    return text
