# ==============================================================================
# Tests for Progress & Achievements
# ==============================================================================
"""
Unit tests for learnstream.core.progress.

Tests cover:
- Duration tiers and explicit completion markers
- Running maximum (a short re-view never lowers progress)
- Monotonicity of progress under added events
- Transitive prerequisite locks
- Achievement metrics, streaks and user stats
- Learning paths with levels and milestones
"""

import random
from datetime import date, timedelta

import pytest

from learnstream.core.errors import ConfigurationError
from learnstream.core.models import PathLevel
from learnstream.core.progress import AchievementRule, ProgressTracker, longest_streak

DAY = 24 * 3600


@pytest.fixture()
def tracker():
    return ProgressTracker()


# ==============================================================================
# Progress
# ==============================================================================


class TestProgress:
    """Per-content completion percentages."""

    @pytest.mark.parametrize(
        "duration,expected",
        [
            (120, 100),
            (60, 100),
            (59, 75),
            (30, 75),
            (15, 50),
            (14.9, 25),
            (1, 25),
            (0, 0),
            (None, 0),
        ],
    )
    def test_tiers(self, tracker, make_view, duration, expected):
        assert tracker.tier(make_view(duration=duration)) == expected

    def test_completion_marker_is_full_progress(self, tracker, make_view, base_time):
        assert tracker.tier(make_view(duration=1, completed_at=base_time)) == 100

    def test_running_maximum(self, tracker, make_view):
        events = [make_view(duration=70, seconds=0), make_view(duration=5, seconds=60)]

        state = tracker.progress(events)["first-principles"]

        assert state.percentage == 100
        assert state.completed
        assert state.last_viewed_at == events[1].timestamp

    def test_completed_at_completion_percentage(self, tracker, make_view):
        progress = tracker.progress([make_view(slug="a", duration=30), make_view(slug="b", duration=29)])

        assert progress["a"].completed
        assert not progress["b"].completed

    def test_monotone_under_added_events(self, tracker, make_view, catalog):
        rng = random.Random(7)
        slugs = [node.slug for node in catalog]
        events = [
            make_view(slug=rng.choice(slugs), duration=rng.choice([0, 5, 20, 45, 90]), seconds=i * 60)
            for i in range(40)
        ]
        full = tracker.progress(events, catalog)

        for _ in range(20):
            subset = rng.sample(events, rng.randint(0, len(events)))
            partial = tracker.progress(subset, catalog)
            for slug, state in partial.items():
                assert state.percentage <= full[slug].percentage
                assert state.locked >= full[slug].locked

    def test_catalog_items_included_at_zero(self, tracker, catalog):
        progress = tracker.progress([], catalog)

        assert list(progress) == sorted(node.slug for node in catalog)
        assert all(state.percentage == 0 for state in progress.values())

    @pytest.mark.parametrize(
        "tiers,any_view",
        [
            (((30, 75), (60, 100)), 25),
            (((60, 100), (30, 100)), 25),
            (((60, 100), (30, 75)), 80),
        ],
    )
    def test_invalid_tiers(self, tiers, any_view):
        with pytest.raises(ConfigurationError):
            ProgressTracker(tiers=tiers, any_view_percentage=any_view)


# ==============================================================================
# Locks
# ==============================================================================


class TestLocks:
    """Content is locked until every prerequisite is completed."""

    def test_locks_are_transitive(self, tracker, catalog):
        locked = tracker.lock_state({}, catalog)

        assert locked == {
            "intro": False,
            "stoicism": True,
            "ethics": True,
            "first-principles": False,
            "inversion": True,
        }

    def test_completing_prerequisite_unlocks_next(self, tracker, catalog, make_view):
        events = [make_view(slug="intro", duration=60, category="philosophy")]

        progress = tracker.progress(events, catalog)

        assert not progress["stoicism"].locked
        assert progress["ethics"].locked

    def test_partial_prerequisite_keeps_lock(self, tracker, catalog, make_view):
        events = [make_view(slug="intro", duration=20, category="philosophy")]

        assert tracker.progress(events, catalog)["stoicism"].locked

    def test_locked_prerequisite_keeps_dependant_locked(self, tracker, catalog, make_view):
        """Completing stoicism out of order does not unlock ethics while it is locked."""
        events = [make_view(slug="stoicism", duration=90, category="philosophy")]

        progress = tracker.progress(events, catalog)

        assert progress["stoicism"].completed
        assert progress["stoicism"].locked
        assert progress["ethics"].locked


# ==============================================================================
# Achievements and Stats
# ==============================================================================


class TestAchievements:
    """Fixed milestones over a user's history."""

    def test_longest_streak(self):
        start = date(2024, 3, 1)
        days = {start + timedelta(days=n) for n in (0, 1, 2, 5, 6)}

        assert longest_streak(days) == 3
        assert longest_streak(set()) == 0

    def test_all_locked_for_empty_history(self, tracker):
        achievements = tracker.achievements([], {})

        assert [a.achievement_id for a in achievements] == [
            "explorer",
            "dedicated",
            "focused",
            "diverse",
            "thorough",
        ]
        assert not any(a.unlocked for a in achievements)

    def test_unlocks(self, tracker, make_view):
        events = [
            make_view(slug=f"model-{i}", category=f"cat-{i % 5}", duration=200, seconds=i * DAY)
            for i in range(10)
        ]
        progress = tracker.progress(events)

        achievements = {a.achievement_id: a for a in tracker.achievements(events, progress)}

        assert achievements["explorer"].unlocked
        assert achievements["dedicated"].progress == 10
        assert achievements["focused"].progress == 33
        assert achievements["diverse"].unlocked
        assert achievements["thorough"].progress == 10

    def test_progress_toward_target(self, tracker, make_view):
        events = [make_view(duration=59 * 60)]

        focused = tracker.achievements(events, tracker.progress(events))[2]

        assert (focused.progress, focused.target, focused.unlocked) == (59, 30, True)

    def test_unknown_metric_rejected(self):
        with pytest.raises(ConfigurationError, match="unknown metric"):
            ProgressTracker(achievements=(AchievementRule("x", "X", "x", "bogus", 1),))


class TestUserStats:
    """Summary of a user's history."""

    def test_empty(self, tracker):
        stats = tracker.user_stats([])

        assert stats.total_content_viewed == 0
        assert stats.favorite_category is None
        assert stats.last_activity is None

    def test_stats(self, tracker, make_view):
        events = [
            make_view(slug="a", category="thinking", duration=90, seconds=0),
            make_view(slug="b", category="thinking", duration=10, seconds=60),
            make_view(slug="a", category="thinking", duration=10, seconds=DAY),
            make_view(slug="c", category="philosophy", duration=20, seconds=3 * DAY),
        ]

        stats = tracker.user_stats(events)

        assert stats.total_content_viewed == 3
        assert stats.favorite_category == "thinking"
        assert [(c.category, c.count, c.percentage) for c in stats.top_categories] == [
            ("thinking", 3, 75),
            ("philosophy", 1, 25),
        ]
        assert stats.active_days == 3
        assert stats.longest_streak_days == 2
        assert stats.total_time_seconds == 130.0
        assert stats.completion_rate == 25
        assert stats.last_activity == events[3].timestamp
        assert stats.recent_content == ["c", "a", "b"]


# ==============================================================================
# Learning Paths
# ==============================================================================


class TestLearningPaths:
    """Learning path nodes, levels and milestones."""

    def test_category_path(self, tracker, catalog, make_view):
        events = [make_view(slug="intro", duration=60, category="philosophy")]
        progress = tracker.progress(events, catalog)

        path = tracker.category_path("philosophy", catalog, progress)

        assert path.name == "Philosophy Learning Path"
        assert [n.slug for n in path.nodes] == ["intro", "stoicism", "ethics"]
        assert [n.level for n in path.nodes] == [
            PathLevel.BEGINNER,
            PathLevel.INTERMEDIATE,
            PathLevel.ADVANCED,
        ]
        assert [n.locked for n in path.nodes] == [False, False, True]
        assert path.completed_count == 1
        assert path.overall_progress == 33
        achieved = {m.milestone_id: m.achieved for m in path.milestones}
        assert achieved == {
            "first-step": True,
            "halfway": True,
            "nearly-done": False,
            "completed": False,
        }

    def test_sequential_path(self, tracker, catalog, make_view):
        events = [make_view(slug="inversion", duration=60)]
        progress = tracker.progress(events, catalog)

        path = tracker.learning_path(
            "custom", "Custom", ["inversion", "intro", "missing"], catalog, progress, sequential=True
        )

        assert [n.slug for n in path.nodes] == ["inversion", "intro"]
        assert path.nodes[1].prerequisites == ["inversion"]
        assert not path.nodes[1].locked

    def test_empty_path(self, tracker, catalog):
        path = tracker.learning_path("none", "None", [], catalog, {})

        assert path.overall_progress == 0
        assert not any(m.achieved for m in path.milestones)
