# ==============================================================================
# Tests for the Trending Score Engine
# ==============================================================================
"""
Unit tests for learnstream.core.trending.

Tests cover:
- Unique viewers outranking raw volume, with upward direction
- Window boundaries (recent window is half-open at as_of)
- Velocity clamping, direction thresholds and the zero floor on scores
- Rank totality: ranks are 1..n with ties broken by slug
- Omission of content without recent views, and the limit
"""

from datetime import timedelta

import pytest

from learnstream.core.errors import ConfigurationError
from learnstream.core.models import TrendDirection, ViewEvent
from learnstream.core.trending import TrendingEngine

DAY = 24 * 3600


@pytest.fixture()
def engine():
    return TrendingEngine()


@pytest.fixture()
def as_of(base_time):
    return base_time + timedelta(days=2)


def _views(make_view, slug, count, end_seconds, users=None):
    """``count`` views of ``slug`` one minute apart, ending before ``end_seconds``."""
    return [
        make_view(
            slug=slug,
            user=users[i % len(users)] if users else f"{slug}-viewer-{i}",
            seconds=end_seconds - (i + 1) * 60,
        )
        for i in range(count)
    ]


# ==============================================================================
# Scoring
# ==============================================================================


class TestTrendingScore:
    """Unique viewers and growth weigh more than raw volume."""

    def test_unique_viewers_outrank_volume(self, engine, as_of, make_view):
        now = 2 * DAY
        broad_users = [f"viewer-{i}" for i in range(90)]
        narrow_users = [f"fan-{i}" for i in range(5)]
        events = (
            _views(make_view, "modelC", 100, now, users=broad_users)
            + _views(make_view, "modelC", 10, now - DAY)
            + _views(make_view, "modelD", 100, now, users=narrow_users)
        )

        records = {r.content_slug: r for r in engine.compute(events, as_of)}

        model_c, model_d = records["modelC"], records["modelD"]
        assert model_c.views_last_24h == 100
        assert model_c.unique_viewers == 90
        assert model_c.prior_views == 10
        assert model_c.direction == TrendDirection.UP
        assert model_d.unique_viewers == 5
        assert model_c.rank < model_d.rank

    def test_score_formula(self, engine, as_of, make_view):
        now = 2 * DAY
        events = _views(make_view, "a", 4, now, users=["u1", "u2"]) + _views(
            make_view, "a", 2, now - DAY
        )

        record = engine.compute(events, as_of)[0]

        # velocity = (4 - 2) / 2 = 1.0 -> 4 + 1.5 * 2 + 20 * 1.0
        assert record.velocity == 1.0
        assert record.score == 27.0

    def test_velocity_clamped(self, engine):
        assert engine.velocity(100, 0) == 3.0
        assert engine.velocity(0, 100) == -1.0
        assert engine.velocity(10, 10) == 0.0

    def test_direction_thresholds(self, engine):
        assert engine.direction(0.11) == TrendDirection.UP
        assert engine.direction(0.1) == TrendDirection.STABLE
        assert engine.direction(-0.1) == TrendDirection.STABLE
        assert engine.direction(-0.11) == TrendDirection.DOWN

    def test_declining_item_scores_zero_not_negative(self, engine, as_of, make_view):
        now = 2 * DAY
        events = _views(make_view, "fading", 1, now) + _views(make_view, "fading", 10, now - DAY)

        record = engine.compute(events, as_of)[0]

        assert record.direction == TrendDirection.DOWN
        assert record.score == 0.0
        assert record.rank == 1

    def test_anonymous_views_count_but_are_not_unique(self, engine, as_of, make_view):
        events = [make_view(slug="a", user=None, seconds=2 * DAY - 60 * i) for i in range(1, 4)]

        record = engine.compute(events, as_of)[0]

        assert record.views_last_24h == 3
        assert record.unique_viewers == 0

    def test_invalid_velocity_range(self):
        with pytest.raises(ConfigurationError, match="velocity_min"):
            TrendingEngine(velocity_min=3, velocity_max=3)


# ==============================================================================
# Windows
# ==============================================================================


class TestWindows:
    """Recent window [as_of - L, as_of), prior window [as_of - 2L, as_of - L)."""

    def test_window_start(self, engine, as_of):
        assert engine.window_start(as_of) == as_of - timedelta(hours=48)

    def test_boundaries(self, engine, as_of, make_view):
        events = [
            make_view(slug="a", seconds=2 * DAY),  # at as_of: excluded
            make_view(slug="a", seconds=DAY),  # start of recent window
            make_view(slug="a", seconds=0),  # start of prior window
            make_view(slug="a", seconds=-1),  # before both windows
        ]

        record = engine.compute(events, as_of)[0]

        assert record.views_last_24h == 1
        assert record.prior_views == 1

    def test_prior_only_content_omitted(self, engine, as_of, make_view):
        events = [make_view(slug="old", seconds=DAY - 60), make_view(slug="new", seconds=DAY)]

        assert [r.content_slug for r in engine.compute(events, as_of)] == ["new"]

    def test_empty_input(self, engine, as_of):
        assert engine.compute([], as_of) == []


# ==============================================================================
# Ranking
# ==============================================================================


class TestRanking:
    """Ranks are unique, contiguous and deterministic."""

    def test_ranks_are_total(self, engine, as_of, make_view):
        now = 2 * DAY
        events = []
        for index, slug in enumerate(["d", "b", "a", "c", "e"]):
            events += _views(make_view, slug, index % 3 + 1, now)

        records = engine.compute(events, as_of)

        assert [r.rank for r in records] == [1, 2, 3, 4, 5]
        scores = [r.score for r in records]
        assert scores == sorted(scores, reverse=True)

    def test_ties_broken_by_slug(self, engine, as_of, make_view):
        now = 2 * DAY
        events = _views(make_view, "zeta", 2, now) + _views(make_view, "alpha", 2, now)

        records = engine.compute(events, as_of)

        assert [(r.content_slug, r.rank) for r in records] == [("alpha", 1), ("zeta", 2)]
        assert records[0].score == records[1].score

    def test_limit(self, engine, as_of, make_view):
        now = 2 * DAY
        events = _views(make_view, "a", 3, now) + _views(make_view, "b", 2, now)

        records = engine.compute(events, as_of, limit=1)

        assert [(r.content_slug, r.rank) for r in records] == [("a", 1)]

    def test_latest_label_wins(self, engine, as_of, make_view):
        events = [
            make_view(slug="a", content_name="Old Name", seconds=DAY + 60),
            make_view(slug="a", content_name="New Name", seconds=DAY + 120),
        ]

        assert engine.compute(events, as_of)[0].content_name == "New Name"

    def test_naive_as_of_treated_as_utc(self, engine, as_of, make_view):
        events = _views(make_view, "a", 2, 2 * DAY)

        naive = engine.compute(events, as_of.replace(tzinfo=None))

        assert naive == engine.compute(events, as_of)


def test_view_event_rejects_negative_duration(base_time):
    with pytest.raises(ValueError):
        ViewEvent(content_slug="a", timestamp=base_time, view_duration_seconds=-1)
