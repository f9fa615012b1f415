# ==============================================================================
# Search Quality Scorer - Pure Domain Logic
# ==============================================================================
"""
Search effectiveness metrics derived from the search log.

Composite quality (every component normalized to 0-100):

    quality = 0.4 * ctr + 0.2 * speed + 0.3 * success + 0.1 * relevance

    ctr       = clicks / searches * 100
    speed     = max(0, 100 - avg_time_to_click_ms / 100)
    success   = 100 - failure_rate
    relevance = min(avg_results_count / 10 * 100, 100)

Groups with no searches are omitted rather than reported as zero.
Also provides popular queries, content gaps (failing queries) and the
search funnel.
"""

import math
from collections import defaultdict
from dataclasses import dataclass, field

from learnstream.core.errors import ConfigurationError
from learnstream.core.models import (
    GLOBAL_SCOPE,
    ContentGap,
    FunnelStage,
    PopularSearch,
    SearchEvent,
    SearchQualityRecord,
)

DEFAULT_WEIGHTS = {"ctr": 0.4, "speed": 0.2, "success": 0.3, "relevance": 0.1}

# 10+ results count as fully relevant
RELEVANT_RESULTS = 10


@dataclass
class _GroupTotals:
    searches: int = 0
    clicks: int = 0
    failures: int = 0
    results: int = 0
    click_times_ms: list = field(default_factory=list)
    users: set = field(default_factory=set)


def _accumulate(totals: _GroupTotals, event: SearchEvent) -> None:
    totals.searches += 1
    totals.results += event.results_count
    if event.clicked:
        totals.clicks += 1
    if event.failed:
        totals.failures += 1
    if event.time_to_click_ms is not None:
        totals.click_times_ms.append(event.time_to_click_ms)
    if event.user_id is not None:
        totals.users.add(event.user_id)


class SearchQualityScorer:
    """Scores search quality globally and per category filter."""

    def __init__(self, weights: dict[str, float] | None = None):
        weights = dict(weights or DEFAULT_WEIGHTS)
        if set(weights) != set(DEFAULT_WEIGHTS):
            raise ConfigurationError(
                f"Search quality weights must be exactly {sorted(DEFAULT_WEIGHTS)}"
            )
        if any(w < 0 for w in weights.values()) or abs(sum(weights.values()) - 1.0) > 1e-9:
            raise ConfigurationError("Search quality weights must be non-negative and sum to 1")
        self.weights = weights

    def quality_score(
        self,
        click_through_rate: float,
        avg_time_to_click_ms: float | None,
        failure_rate: float,
        avg_results_count: float,
    ) -> float:
        """
        Weighted 0-100 composite.

        A group without any timed click scores speed as if clicks were
        instant (``avg_time_to_click_ms`` treated as 0).
        """
        ctr = min(click_through_rate, 100.0)
        speed = max(0.0, 100.0 - (avg_time_to_click_ms or 0.0) / 100)
        success = 100.0 - failure_rate
        relevance = min(avg_results_count / RELEVANT_RESULTS * 100, 100.0)
        score = (
            ctr * self.weights["ctr"]
            + speed * self.weights["speed"]
            + success * self.weights["success"]
            + relevance * self.weights["relevance"]
        )
        return round(min(max(score, 0.0), 100.0), 2)

    def _record(self, scope: str, totals: _GroupTotals) -> SearchQualityRecord:
        ctr = totals.clicks / totals.searches * 100
        failure_rate = totals.failures / totals.searches * 100
        avg_results = totals.results / totals.searches
        avg_click = (
            math.fsum(totals.click_times_ms) / len(totals.click_times_ms)
            if totals.click_times_ms
            else None
        )
        return SearchQualityRecord(
            scope=scope,
            total_searches=totals.searches,
            click_through_rate=round(ctr, 2),
            failure_rate=round(failure_rate, 2),
            avg_time_to_click_ms=round(avg_click, 2) if avg_click is not None else None,
            avg_results_count=round(avg_results, 2),
            quality_score=self.quality_score(ctr, avg_click, failure_rate, avg_results),
        )

    def score(self, events: list[SearchEvent]) -> list[SearchQualityRecord]:
        """
        Compute quality records.

        Args:
            events: Search events within the window

        Returns:
            The "global" record first, then one record per category (the
            "all" bucket holds searches without a category filter), sorted
            by category. Empty when there are no searches.
        """
        if not events:
            return []

        overall = _GroupTotals()
        groups: dict[str, _GroupTotals] = defaultdict(_GroupTotals)
        for event in events:
            _accumulate(overall, event)
            _accumulate(groups[event.category], event)

        records = [self._record(GLOBAL_SCOPE, overall)]
        records.extend(self._record(category, groups[category]) for category in sorted(groups))
        return records

    @staticmethod
    def popular_searches(events: list[SearchEvent], limit: int = 10) -> list[PopularSearch]:
        """Most frequent normalized queries with their click-through rate."""
        groups: dict[str, _GroupTotals] = defaultdict(_GroupTotals)
        for event in events:
            if event.normalized_query:
                _accumulate(groups[event.normalized_query], event)

        ranked = sorted(groups, key=lambda q: (-groups[q].searches, q))[:limit]
        return [
            PopularSearch(
                query=query,
                search_count=groups[query].searches,
                unique_users=len(groups[query].users),
                click_through_rate=round(groups[query].clicks / groups[query].searches * 100, 2),
                avg_results=round(groups[query].results / groups[query].searches, 2),
            )
            for query in ranked
        ]

    @staticmethod
    def content_gaps(events: list[SearchEvent], limit: int = 20) -> list[ContentGap]:
        """Queries that keep failing, most frequent first."""
        failures: dict[str, list[SearchEvent]] = defaultdict(list)
        for event in events:
            if event.failed and event.normalized_query:
                failures[event.normalized_query].append(event)

        ranked = sorted(failures, key=lambda q: (-len(failures[q]), q))[:limit]
        gaps = []
        for query in ranked:
            failed = sorted(failures[query], key=lambda e: (e.timestamp, sorted(e.filters.items())))
            gaps.append(
                ContentGap(
                    query=query,
                    failure_count=len(failed),
                    unique_users=len({e.user_id for e in failed if e.user_id is not None}),
                    last_searched=failed[-1].timestamp,
                    sample_filters=failed[-1].filters,
                )
            )
        return gaps

    @staticmethod
    def funnel(events: list[SearchEvent]) -> list[FunnelStage]:
        """Searches -> searches with results -> searches with a click."""
        if not events:
            return []
        total = len(events)
        with_results = sum(1 for e in events if e.results_count > 0 and not e.failed)
        clicked = sum(1 for e in events if e.clicked)
        return [
            FunnelStage(stage=stage, count=count, percentage=round(count / total * 100, 2))
            for stage, count in (
                ("searched", total),
                ("had_results", with_results),
                ("clicked", clicked),
            )
        ]
