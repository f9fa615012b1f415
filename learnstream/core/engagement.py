# ==============================================================================
# Engagement Metrics - Pure Domain Logic
# ==============================================================================
"""
Per-content performance and the dashboard's headline metrics.

Per content item, over a reporting window:
- views, unique viewers, average and total reported duration
- completion rate: share of views longer than the completion threshold
- search clicks that landed on the item
- change: views in the latest change window against the window before it

Overview, for the latest overview window against the one before it:
- engagement rate:  views longer than the engaged threshold
- bounce rate:      sessions with a single view
- return rate:      users active on more than one UTC day (return window)
- conversion rate:  views longer than the conversion threshold
- satisfaction:     (0.3 * click + 0.3 * engagement + 0.2 * (100 - bounce)
                     + 0.2 * return) / 10, on a 0-10 scale

Like the other engines, nothing here reads the clock: ``as_of`` is passed in.
"""

import math
from collections import defaultdict
from datetime import datetime, timedelta

from learnstream.core.errors import ConfigurationError
from learnstream.core.models import (
    DashboardOverview,
    ModelPerformance,
    SearchEvent,
    ViewEvent,
    ensure_utc,
)
from learnstream.core.session_processor import SessionReconstructor

SATISFACTION_WEIGHTS = {"click": 0.3, "engagement": 0.3, "retention": 0.2, "return": 0.2}


def _pct(part: int, whole: int) -> float:
    return part / whole * 100 if whole else 0.0


def _change(current: int, previous: int) -> float | None:
    if previous == 0:
        return None
    return round((current - previous) / previous * 100, 2)


def _avg_duration(events: list[ViewEvent]) -> tuple[float, float]:
    """Average and total of the reported durations (views without one are skipped)."""
    durations = [e.view_duration_seconds for e in events if e.view_duration_seconds is not None]
    total = math.fsum(durations)
    return (total / len(durations) if durations else 0.0), total


class EngagementAnalyzer:
    """Computes per-content performance and overview metrics."""

    def __init__(
        self,
        reconstructor: SessionReconstructor | None = None,
        completion_threshold_seconds: float = 30,
        engaged_threshold_seconds: float = 10,
        conversion_threshold_seconds: float = 60,
        change_window: timedelta = timedelta(days=7),
        overview_window: timedelta = timedelta(hours=24),
        return_window: timedelta = timedelta(days=7),
    ):
        for name, seconds in (
            ("completion", completion_threshold_seconds),
            ("engaged", engaged_threshold_seconds),
            ("conversion", conversion_threshold_seconds),
        ):
            if seconds <= 0:
                raise ConfigurationError(f"The {name} threshold must be positive, got {seconds}")
        for name, window in (
            ("change", change_window),
            ("overview", overview_window),
            ("return", return_window),
        ):
            if window <= timedelta(0):
                raise ConfigurationError(f"The {name} window must be positive")
        self.reconstructor = reconstructor or SessionReconstructor()
        self.completion_threshold_seconds = completion_threshold_seconds
        self.engaged_threshold_seconds = engaged_threshold_seconds
        self.conversion_threshold_seconds = conversion_threshold_seconds
        self.change_window = change_window
        self.overview_window = overview_window
        self.return_window = return_window

    def window_start(self, as_of: datetime) -> datetime:
        """Earliest event the overview reads."""
        as_of = ensure_utc(as_of)
        return min(
            as_of - 2 * self.overview_window,
            as_of - self.return_window,
            as_of - 2 * self.change_window,
        )

    # ==========================================================================
    # Per-content performance
    # ==========================================================================

    def model_performance(
        self,
        views: list[ViewEvent],
        searches: list[SearchEvent],
        since: datetime,
        as_of: datetime,
        limit: int | None = None,
    ) -> list[ModelPerformance]:
        """
        Performance records for every content item viewed in [since, as_of).

        Args:
            views: View events; anything outside the window is ignored
            searches: Search events; clicks inside the window are counted
            since: Start of the reporting window (inclusive)
            as_of: End of the reporting window (exclusive)
            limit: Keep only the top N records

        Returns:
            Records sorted by views descending, then content slug
        """
        since, as_of = ensure_utc(since), ensure_utc(as_of)
        change_start = as_of - self.change_window
        prior_start = change_start - self.change_window

        by_slug: dict[str, list[ViewEvent]] = defaultdict(list)
        recent: dict[str, int] = defaultdict(int)
        prior: dict[str, int] = defaultdict(int)
        for event in sorted(views, key=lambda e: e.order_key):
            slug = event.content_slug
            if change_start <= event.timestamp < as_of:
                recent[slug] += 1
            elif prior_start <= event.timestamp < change_start:
                prior[slug] += 1
            if since <= event.timestamp < as_of:
                by_slug[slug].append(event)

        clicks: dict[str, int] = defaultdict(int)
        for search in searches:
            if search.clicked_slug and since <= search.timestamp < as_of:
                clicks[search.clicked_slug] += 1

        ranked = sorted(by_slug, key=lambda slug: (-len(by_slug[slug]), slug))
        if limit is not None:
            ranked = ranked[:limit]

        records = []
        for slug in ranked:
            events = by_slug[slug]
            latest = events[-1]
            avg_duration, total_duration = _avg_duration(events)
            completed = sum(1 for e in events if e.duration > self.completion_threshold_seconds)
            records.append(
                ModelPerformance(
                    content_slug=slug,
                    content_name=latest.display_name,
                    category=latest.category,
                    total_views=len(events),
                    unique_viewers=len({e.user_id for e in events if e.user_id is not None}),
                    avg_duration_seconds=round(avg_duration, 2),
                    total_duration_seconds=round(total_duration, 2),
                    completion_rate=round(_pct(completed, len(events)), 2),
                    search_clicks=clicks[slug],
                    last_viewed_at=latest.timestamp,
                    change_pct=_change(recent[slug], prior[slug]),
                )
            )
        return records

    # ==========================================================================
    # Overview
    # ==========================================================================

    @staticmethod
    def _search_rates(searches: list[SearchEvent]) -> tuple[float, float]:
        total = len(searches)
        clicked = sum(1 for s in searches if s.clicked)
        failed = sum(1 for s in searches if s.failed)
        return _pct(clicked, total), _pct(failed, total)

    def return_rate(self, views: list[ViewEvent], as_of: datetime) -> float:
        """Share of users in the return window who were active on 2+ UTC days."""
        as_of = ensure_utc(as_of)
        start = as_of - self.return_window
        days: dict[str, set] = defaultdict(set)
        for event in views:
            if event.user_id is not None and start <= event.timestamp < as_of:
                days[event.user_id].add(event.timestamp.date())
        returning = sum(1 for active in days.values() if len(active) > 1)
        return _pct(returning, len(days))

    def overview(
        self,
        views: list[ViewEvent],
        searches: list[SearchEvent],
        as_of: datetime,
    ) -> DashboardOverview:
        """
        Headline metrics for [as_of - overview_window, as_of).

        Empty windows give zero rates and None changes, never an error.
        """
        as_of = ensure_utc(as_of)
        start = as_of - self.overview_window
        previous_start = start - self.overview_window

        current_views = [v for v in views if start <= v.timestamp < as_of]
        previous_views = [v for v in views if previous_start <= v.timestamp < start]
        current_searches = [s for s in searches if start <= s.timestamp < as_of]
        previous_searches = [s for s in searches if previous_start <= s.timestamp < start]

        total_views = len(current_views)
        click_rate, failure_rate = self._search_rates(current_searches)
        previous_click_rate, previous_failure_rate = self._search_rates(previous_searches)

        click_times = [
            s.time_to_click_ms for s in current_searches if s.time_to_click_ms is not None
        ]
        avg_click_seconds = (
            round(math.fsum(click_times) / len(click_times) / 1000, 2) if click_times else None
        )

        engaged = sum(1 for v in current_views if v.duration > self.engaged_threshold_seconds)
        converted = sum(
            1 for v in current_views if v.duration > self.conversion_threshold_seconds
        )
        sessions = self.reconstructor.reconstruct_all(current_views)
        bounced = sum(1 for s in sessions if s.length == 1)

        engagement_rate = _pct(engaged, total_views)
        bounce_rate = _pct(bounced, len(sessions))
        return_rate = self.return_rate(views, as_of)
        w = SATISFACTION_WEIGHTS
        satisfaction = (
            w["click"] * click_rate
            + w["engagement"] * engagement_rate
            + w["retention"] * (100 - bounce_rate)
            + w["return"] * return_rate
        ) / 10

        users = {v.user_id for v in current_views} | {s.user_id for s in current_searches}
        users.discard(None)

        return DashboardOverview(
            window_start=start,
            window_end=as_of,
            total_views=total_views,
            total_searches=len(current_searches),
            unique_content=len({v.content_slug for v in current_views}),
            unique_users=len(users),
            avg_duration_seconds=round(_avg_duration(current_views)[0], 2),
            click_rate=round(click_rate, 2),
            failure_rate=round(failure_rate, 2),
            avg_time_to_click_seconds=avg_click_seconds,
            engagement_rate=round(engagement_rate, 2),
            bounce_rate=round(bounce_rate, 2),
            return_rate=round(return_rate, 2),
            conversion_rate=round(_pct(converted, total_views), 2),
            satisfaction_score=round(satisfaction, 1),
            views_change=_change(total_views, len(previous_views)),
            searches_change=_change(len(current_searches), len(previous_searches)),
            click_rate_change=round(click_rate - previous_click_rate, 2),
            failure_rate_change=round(failure_rate - previous_failure_rate, 2),
        )
