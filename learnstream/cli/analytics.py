# ==============================================================================
# Analytics Commands
# ==============================================================================
"""
Report commands for the learnstream CLI.

Each command runs one aggregation pass and renders it as a rich table, or
as JSON with --json. Aggregation errors exit with status 1.
"""

import json
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from learnstream.cli.shared import (
    BOX_WIDTH,
    C,
    I,
    _box_bottom,
    _box_header,
    _box_line,
    _empty_line,
    _progress_bar,
    build_publisher,
    fail,
    parse_as_of,
)
from learnstream.core.errors import AggregationError
from learnstream.core.models import DashboardAggregates, TrendDirection, UserAggregates

AsOfOption = Annotated[
    Optional[str],
    typer.Option("--as-of", help="End of the report window (ISO 8601, default: now)"),
]
JsonOption = Annotated[
    bool, typer.Option("--json", "-j", help="Output as JSON for scripting")
]

_DIRECTION_MARKUP = {
    TrendDirection.UP: f"[green]{I.UP} up[/green]",
    TrendDirection.STABLE: f"[dim]{I.STABLE} stable[/dim]",
    TrendDirection.DOWN: f"[red]{I.DOWN} down[/red]",
}


# ==============================================================================
# Helper Functions
# ==============================================================================


def _dashboard(as_of: Optional[str], json_output: bool) -> DashboardAggregates:
    when = parse_as_of(as_of)
    publisher = None
    try:
        publisher = build_publisher()
        return publisher.publish_dashboard(when)
    except AggregationError as e:
        fail(e, json_output)
    finally:
        if publisher is not None:
            publisher.close()


def _user(user_id: str, as_of: Optional[str], json_output: bool) -> UserAggregates:
    when = parse_as_of(as_of)
    publisher = None
    try:
        publisher = build_publisher()
        return publisher.publish_user(user_id, when)
    except AggregationError as e:
        fail(e, json_output)
    finally:
        if publisher is not None:
            publisher.close()


def _dump(payload) -> None:
    print(json.dumps(payload, indent=2))


def _skipped_note(skipped: int) -> None:
    if skipped:
        print(f"  {C.BRIGHT_YELLOW}{I.WARN} {skipped} malformed record(s) skipped{C.RESET}")


# ==============================================================================
# Commands
# ==============================================================================


def show_trending(
    as_of: AsOfOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show trending content.

    Ranks content by recent views, unique viewers and growth against the
    preceding window.

    Examples:
        learnstream trending
        learnstream trending --as-of 2024-03-02T00:00:00 --json
    """
    aggregates = _dashboard(as_of, json_output)

    if json_output:
        _dump(
            {
                "generated_at": aggregates.generated_at.isoformat(),
                "trending": [r.model_dump(mode="json") for r in aggregates.trending],
                "skipped_records": aggregates.skipped_records,
            }
        )
        return

    if not aggregates.trending:
        print(f"\n  {C.BRIGHT_YELLOW}{I.WARN} No views in the trending window{C.RESET}\n")
        return

    console = Console()
    table = Table(title="Trending Content", show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Content")
    table.add_column("Category")
    table.add_column("Score", justify="right")
    table.add_column("Views", justify="right")
    table.add_column("Unique", justify="right")
    table.add_column("Trend")

    for record in aggregates.trending:
        table.add_row(
            str(record.rank),
            record.content_name,
            record.category,
            f"{record.score:,.1f}",
            f"{record.views_last_24h:,}",
            f"{record.unique_viewers:,}",
            _DIRECTION_MARKUP[record.direction],
        )

    print()
    console.print(table)
    _skipped_note(aggregates.skipped_records)
    print()


def show_journeys(
    as_of: AsOfOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show common navigation paths and category transitions.

    Examples:
        learnstream journeys
        learnstream journeys --json
    """
    aggregates = _dashboard(as_of, json_output)

    if json_output:
        _dump(
            {
                "generated_at": aggregates.generated_at.isoformat(),
                "session_count": aggregates.session_count,
                "paths": [p.model_dump(mode="json") for p in aggregates.paths],
                "transitions": [t.model_dump(mode="json") for t in aggregates.transitions],
                "sources": [s.model_dump(mode="json") for s in aggregates.sources],
                "category_flow": [f.model_dump(mode="json") for f in aggregates.category_flow],
                "skipped_records": aggregates.skipped_records,
            }
        )
        return

    console = Console()
    print()
    print(f"  {C.BOLD}Sessions:{C.RESET} {aggregates.session_count:,}")

    paths = Table(title="Common Paths", show_header=True, header_style="bold")
    paths.add_column("Path")
    paths.add_column("Count", justify="right")
    paths.add_column("Avg Duration", justify="right")
    paths.add_column("Completion", justify="right")
    for path in aggregates.paths:
        paths.add_row(
            path.path_key,
            f"{path.occurrence_count:,}",
            f"{path.average_total_duration_seconds:,.0f}s",
            f"{path.completion_rate * 100:.0f}%",
        )
    console.print(paths)

    transitions = Table(title="Category Transitions", show_header=True, header_style="bold")
    transitions.add_column("From")
    transitions.add_column("To")
    transitions.add_column("Count", justify="right")
    for edge in aggregates.transitions:
        transitions.add_row(edge.from_category, edge.to_category, f"{edge.count:,}")
    console.print(transitions)

    sources = Table(title="Session Sources", show_header=True, header_style="bold")
    sources.add_column("Source")
    sources.add_column("Sessions", justify="right")
    sources.add_column("Share", justify="right")
    for share in aggregates.sources:
        sources.add_row(share.source.value, f"{share.count:,}", f"{share.percentage}%")
    console.print(sources)

    _skipped_note(aggregates.skipped_records)
    print()


def show_search_quality(
    as_of: AsOfOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show search quality, popular searches and content gaps.

    Examples:
        learnstream search-quality
        learnstream search-quality --json
    """
    aggregates = _dashboard(as_of, json_output)

    if json_output:
        _dump(
            {
                "generated_at": aggregates.generated_at.isoformat(),
                "search_quality": [r.model_dump(mode="json") for r in aggregates.search_quality],
                "popular_searches": [
                    p.model_dump(mode="json") for p in aggregates.popular_searches
                ],
                "content_gaps": [g.model_dump(mode="json") for g in aggregates.content_gaps],
                "funnel": [s.model_dump(mode="json") for s in aggregates.search_funnel],
                "skipped_records": aggregates.skipped_records,
            }
        )
        return

    if not aggregates.search_quality:
        print(f"\n  {C.BRIGHT_YELLOW}{I.WARN} No searches in the report window{C.RESET}\n")
        return

    console = Console()
    table = Table(title="Search Quality", show_header=True, header_style="bold")
    table.add_column("Scope")
    table.add_column("Searches", justify="right")
    table.add_column("CTR", justify="right")
    table.add_column("Failure", justify="right")
    table.add_column("Avg Click", justify="right")
    table.add_column("Quality", justify="right")
    for record in aggregates.search_quality:
        click = (
            f"{record.avg_time_to_click_ms:,.0f}ms"
            if record.avg_time_to_click_ms is not None
            else "-"
        )
        table.add_row(
            record.scope,
            f"{record.total_searches:,}",
            f"{record.click_through_rate:.1f}%",
            f"{record.failure_rate:.1f}%",
            click,
            f"{record.quality_score:.1f}",
        )
    print()
    console.print(table)

    W = BOX_WIDTH
    print(_box_header("SEARCH FUNNEL", W))
    print(_empty_line(W))
    for stage in aggregates.search_funnel:
        row = f"  {stage.stage:<16}{stage.count:>10,}  {stage.percentage:>6.1f}%"
        print(_box_line(row, W))
    print(_empty_line(W))
    print(_box_bottom(W))

    if aggregates.content_gaps:
        gaps = Table(title="Content Gaps", show_header=True, header_style="bold")
        gaps.add_column("Query")
        gaps.add_column("Failures", justify="right")
        gaps.add_column("Users", justify="right")
        for gap in aggregates.content_gaps:
            gaps.add_row(gap.query, f"{gap.failure_count:,}", f"{gap.unique_users:,}")
        console.print(gaps)

    _skipped_note(aggregates.skipped_records)
    print()


def _change_text(change: float | None, unit: str = "%") -> str:
    if change is None:
        return f"{C.DIM}new{C.RESET}"
    color = C.BRIGHT_GREEN if change >= 0 else C.BRIGHT_RED
    return f"{color}{change:+.1f}{unit}{C.RESET}"


def show_overview(
    as_of: AsOfOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show headline metrics and per-content performance.

    Compares the latest overview window with the one before it.

    Examples:
        learnstream overview
        learnstream overview --as-of 2024-03-02T00:00:00 --json
    """
    aggregates = _dashboard(as_of, json_output)

    if json_output:
        _dump(
            {
                "generated_at": aggregates.generated_at.isoformat(),
                "overview": aggregates.overview.model_dump(mode="json"),
                "model_performance": [
                    r.model_dump(mode="json") for r in aggregates.model_performance
                ],
                "skipped_records": aggregates.skipped_records,
            }
        )
        return

    o = aggregates.overview
    W = BOX_WIDTH
    print()
    print(_box_header("OVERVIEW", W))
    print(_empty_line(W))
    print(_box_line(f"  {'Views':<20}{o.total_views:>10,}   {_change_text(o.views_change)}", W))
    print(
        _box_line(
            f"  {'Searches':<20}{o.total_searches:>10,}   {_change_text(o.searches_change)}", W
        )
    )
    print(_box_line(f"  {'Unique users':<20}{o.unique_users:>10,}", W))
    print(_box_line(f"  {'Unique content':<20}{o.unique_content:>10,}", W))
    print(
        _box_line(
            f"  {'Click rate':<20}{o.click_rate:>9.1f}%   "
            f"{_change_text(o.click_rate_change, 'pp')}",
            W,
        )
    )
    print(
        _box_line(
            f"  {'Failure rate':<20}{o.failure_rate:>9.1f}%   "
            f"{_change_text(o.failure_rate_change, 'pp')}",
            W,
        )
    )
    print(_box_line(f"  {'Engagement rate':<20}{o.engagement_rate:>9.1f}%", W))
    print(_box_line(f"  {'Bounce rate':<20}{o.bounce_rate:>9.1f}%", W))
    print(_box_line(f"  {'Return rate':<20}{o.return_rate:>9.1f}%", W))
    print(_box_line(f"  {'Conversion rate':<20}{o.conversion_rate:>9.1f}%", W))
    print(_box_line(f"  {'Satisfaction':<20}{o.satisfaction_score:>7.1f}/10", W))
    print(_empty_line(W))
    print(_box_bottom(W))

    if aggregates.model_performance:
        console = Console()
        table = Table(title="Content Performance", show_header=True, header_style="bold")
        table.add_column("Content")
        table.add_column("Category")
        table.add_column("Views", justify="right")
        table.add_column("Unique", justify="right")
        table.add_column("Avg Time", justify="right")
        table.add_column("Completion", justify="right")
        table.add_column("Clicks", justify="right")
        table.add_column("Change", justify="right")
        for record in aggregates.model_performance:
            change = f"{record.change_pct:+.1f}%" if record.change_pct is not None else "-"
            table.add_row(
                record.content_name,
                record.category,
                f"{record.total_views:,}",
                f"{record.unique_viewers:,}",
                f"{record.avg_duration_seconds:,.0f}s",
                f"{record.completion_rate:.0f}%",
                f"{record.search_clicks:,}",
                change,
            )
        console.print(table)

    _skipped_note(aggregates.skipped_records)
    print()


def show_progress(
    user_id: Annotated[str, typer.Argument(help="User to report on")],
    as_of: AsOfOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show a user's learning progress, stats and recommendations.

    Examples:
        learnstream progress user-42
        learnstream progress user-42 --json
    """
    aggregates = _user(user_id, as_of, json_output)

    if json_output:
        _dump(aggregates.model_dump(mode="json", exclude={"achievements"}))
        return

    stats = aggregates.stats
    W = BOX_WIDTH
    print()
    print(_box_header(f"PROGRESS: {user_id}", W))
    print(_empty_line(W))
    print(_box_line(f"  {'Content viewed':<24}{stats.total_content_viewed:>10,}", W))
    print(_box_line(f"  {'Active days':<24}{stats.active_days:>10,}", W))
    print(_box_line(f"  {'Longest streak':<24}{stats.longest_streak_days:>9,}d", W))
    print(_box_line(f"  {'Time spent':<24}{stats.total_time_seconds / 60:>8,.1f}m", W))
    print(_box_line(f"  {'Favorite category':<24}{stats.favorite_category or '-':>10}", W))
    print(_empty_line(W))
    for state in aggregates.progress.values():
        marker = f"{C.DIM}{I.LOCK}{C.RESET}" if state.locked else " "
        bar = _progress_bar(state.percentage)
        row = f" {marker} {state.content_slug[:28]:<28} {bar} {state.percentage:>3}%"
        print(_box_line(row, W))
    print(_empty_line(W))
    print(_box_bottom(W))

    if aggregates.recommendations:
        console = Console()
        table = Table(title="Recommended Next", show_header=True, header_style="bold")
        table.add_column("Content")
        table.add_column("Category")
        table.add_column("Why")
        for rec in aggregates.recommendations:
            table.add_row(rec.content_name, rec.category, rec.reason)
        console.print(table)

    _skipped_note(aggregates.skipped_records)
    print()


def show_achievements(
    user_id: Annotated[str, typer.Argument(help="User to report on")],
    as_of: AsOfOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show a user's achievements.

    Examples:
        learnstream achievements user-42
    """
    aggregates = _user(user_id, as_of, json_output)

    if json_output:
        _dump(
            {
                "user_id": user_id,
                "achievements": [a.model_dump(mode="json") for a in aggregates.achievements],
            }
        )
        return

    print()
    for achievement in aggregates.achievements:
        if achievement.unlocked:
            icon = f"{C.BRIGHT_GREEN}{I.CHECK}{C.RESET}"
        else:
            icon = f"{C.DIM}{I.LOCK}{C.RESET}"
        shown = min(achievement.progress, achievement.target)
        print(
            f"  {icon} {C.BOLD}{achievement.title:<24}{C.RESET}"
            f"{shown:>4}/{achievement.target:<4} {C.DIM}{achievement.description}{C.RESET}"
        )
    print()


def show_learning_paths(
    user_id: Annotated[str, typer.Argument(help="User to report on")],
    as_of: AsOfOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show per-category learning paths with locks and milestones.

    Examples:
        learnstream paths user-42
    """
    when = parse_as_of(as_of)
    publisher = None
    try:
        publisher = build_publisher()
        paths = publisher.learning_paths(user_id, when)
    except AggregationError as e:
        fail(e, json_output)
    finally:
        if publisher is not None:
            publisher.close()

    if json_output:
        _dump({"user_id": user_id, "paths": [p.model_dump(mode="json") for p in paths]})
        return

    if not paths:
        print(f"\n  {C.BRIGHT_YELLOW}{I.WARN} No content catalog available{C.RESET}\n")
        return

    W = BOX_WIDTH
    for path in paths:
        print()
        print(_box_header(path.name.upper(), W))
        for node in path.nodes:
            if node.completed:
                icon = f"{C.BRIGHT_GREEN}{I.CHECK}{C.RESET}"
            elif node.locked:
                icon = f"{C.DIM}{I.LOCK}{C.RESET}"
            else:
                icon = " "
            row = f" {icon} {node.name[:30]:<30} {node.level.value:<13}{node.progress:>4}%"
            print(_box_line(row, W))
        achieved = [m.name for m in path.milestones if m.achieved]
        print(_box_line(f"  Overall: {path.overall_progress}%  Milestones: {len(achieved)}", W))
        print(_box_bottom(W))
    print()


def export_report(
    user_id: Annotated[
        Optional[str],
        typer.Option("--user", "-u", help="Export one user's aggregates instead of the dashboard"),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write the CSV to this file instead of stdout"),
    ] = None,
    as_of: AsOfOption = None,
) -> None:
    """Export aggregates as CSV (section,key,metric,value).

    Examples:
        learnstream export > dashboard.csv
        learnstream export --user user-42 -o user-42.csv
    """
    from learnstream.export import export_csv

    if user_id is None:
        aggregates = _dashboard(as_of, json_output=False)
    else:
        aggregates = _user(user_id, as_of, json_output=False)

    text = export_csv(aggregates, output)
    if output is None:
        print(text, end="")
    else:
        print(f"{C.BRIGHT_GREEN}{I.CHECK} Exported to {output}{C.RESET}")
