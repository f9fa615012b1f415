# ==============================================================================
# Progress & Achievement Tracker - Pure Domain Logic
# ==============================================================================
"""
Per-user learning progress derived from view durations.

- Progress: per content, the running maximum of a duration tier
- Locks: content stays locked until every prerequisite is completed
- Achievements: fixed numeric milestones over the user's history
- Stats and learning paths for the personalized dashboard

Every value here is monotone in the event set: adding views can raise a
percentage or unlock an achievement, never the reverse.
"""

import math
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date, timedelta

from learnstream.core.catalog import ContentCatalog
from learnstream.core.errors import ConfigurationError
from learnstream.core.models import (
    Achievement,
    CategoryShare,
    LearningPath,
    LearningPathNode,
    Milestone,
    PathLevel,
    ProgressState,
    UserStats,
    ViewEvent,
)

# (minimum seconds, percentage), checked top-down with >=
DEFAULT_TIERS: tuple[tuple[float, int], ...] = ((60, 100), (30, 75), (15, 50))


@dataclass(frozen=True)
class AchievementRule:
    """A fixed milestone measured by one monotone metric."""

    achievement_id: str
    title: str
    description: str
    metric: str
    target: int


DEFAULT_ACHIEVEMENTS: tuple[AchievementRule, ...] = (
    AchievementRule(
        "explorer", "Mental Model Explorer", "View 10 different models", "distinct_content", 10
    ),
    AchievementRule(
        "dedicated", "Dedicated Learner", "Learn for 7 days straight", "longest_streak_days", 7
    ),
    AchievementRule("focused", "Deep Focus", "Spend 30+ minutes learning", "total_minutes", 30),
    AchievementRule(
        "diverse", "Knowledge Diversity", "Explore 5 different categories", "distinct_categories", 5
    ),
    AchievementRule("thorough", "Thorough Reader", "Complete 5 models", "completed_content", 5),
)

METRICS = frozenset(
    {
        "distinct_content",
        "longest_streak_days",
        "total_minutes",
        "distinct_categories",
        "completed_content",
    }
)


def longest_streak(days: set[date]) -> int:
    """Length of the longest run of consecutive calendar days."""
    best = 0
    for day in days:
        # Only count runs from their first day
        if day - timedelta(days=1) in days:
            continue
        length = 1
        while day + timedelta(days=length) in days:
            length += 1
        best = max(best, length)
    return best


class ProgressTracker:
    """
    Computes progress, locks and achievements for one user's views.

    Args:
        tiers: (minimum seconds, percentage) pairs, strictly descending
        any_view_percentage: Percentage for any view with a positive duration
        completion_percentage: Percentage at which content counts as completed
        achievements: Achievement rules to evaluate
    """

    def __init__(
        self,
        tiers: tuple[tuple[float, int], ...] = DEFAULT_TIERS,
        any_view_percentage: int = 25,
        completion_percentage: int = 75,
        achievements: tuple[AchievementRule, ...] = DEFAULT_ACHIEVEMENTS,
    ):
        self._validate_tiers(tiers, any_view_percentage)
        if not 0 < completion_percentage <= 100:
            raise ConfigurationError(
                f"completion_percentage must be in (0, 100], got {completion_percentage}"
            )
        for rule in achievements:
            if rule.metric not in METRICS:
                raise ConfigurationError(
                    f"Achievement '{rule.achievement_id}' uses unknown metric '{rule.metric}'"
                )
            if rule.target <= 0:
                raise ConfigurationError(
                    f"Achievement '{rule.achievement_id}' needs a positive target"
                )
        self.tiers = tuple(tiers)
        self.any_view_percentage = any_view_percentage
        self.completion_percentage = completion_percentage
        self.achievement_rules = tuple(achievements)

    @staticmethod
    def _validate_tiers(tiers, any_view_percentage: int) -> None:
        previous_seconds, previous_pct = math.inf, 101
        for seconds, pct in tiers:
            if not (0 < seconds < previous_seconds) or not (0 < pct < previous_pct):
                raise ConfigurationError(
                    "Progress tiers must have strictly descending positive thresholds "
                    f"and percentages, got {list(tiers)}"
                )
            previous_seconds, previous_pct = seconds, pct
        if not 0 <= any_view_percentage < previous_pct:
            raise ConfigurationError(
                f"any_view_percentage ({any_view_percentage}) must be below every tier"
            )

    # ==========================================================================
    # Progress
    # ==========================================================================

    def tier(self, event: ViewEvent) -> int:
        """Progress percentage earned by a single view."""
        if event.completed_at is not None:
            return 100
        duration = event.duration
        for seconds, pct in self.tiers:
            if duration >= seconds:
                return pct
        return self.any_view_percentage if duration > 0 else 0

    def progress(
        self,
        events: list[ViewEvent],
        catalog: ContentCatalog | None = None,
    ) -> dict[str, ProgressState]:
        """
        Compute progress per content slug for one user.

        Args:
            events: The user's view events, in any order
            catalog: When given, every catalog item gets a state (unviewed
                items at 0%) and lock state is derived from prerequisites

        Returns:
            ProgressState per slug, keyed and ordered by slug
        """
        best: dict[str, int] = defaultdict(int)
        last_viewed: dict = {}
        for event in events:
            slug = event.content_slug
            best[slug] = max(best[slug], self.tier(event))
            if slug not in last_viewed or event.timestamp > last_viewed[slug]:
                last_viewed[slug] = event.timestamp

        locked = self.lock_state(best, catalog) if catalog is not None else {}
        slugs = set(best) | set(locked)

        return {
            slug: ProgressState(
                content_slug=slug,
                percentage=best.get(slug, 0),
                completed=best.get(slug, 0) >= self.completion_percentage,
                last_viewed_at=last_viewed.get(slug),
                locked=locked.get(slug, False),
            )
            for slug in sorted(slugs)
        }

    def lock_state(self, percentages: dict[str, int], catalog: ContentCatalog) -> dict[str, bool]:
        """
        Lock state for every catalog item in a single topological pass.

        An item is locked when any prerequisite is below the completion
        percentage or is itself locked.
        """
        locked: dict[str, bool] = {}
        for slug in catalog.topological_order:
            node = catalog.get(slug)
            locked[slug] = any(
                percentages.get(p, 0) < self.completion_percentage or locked[p]
                for p in node.prerequisites
            )
        return locked

    # ==========================================================================
    # Achievements
    # ==========================================================================

    def metrics(self, events: list[ViewEvent], progress: dict[str, ProgressState]) -> dict[str, int]:
        """Values of every achievement metric for one user."""
        total_seconds = math.fsum(e.duration for e in events)
        return {
            "distinct_content": len({e.content_slug for e in events}),
            "longest_streak_days": longest_streak({e.timestamp.date() for e in events}),
            "total_minutes": int(total_seconds // 60),
            "distinct_categories": len({e.category for e in events}),
            "completed_content": sum(1 for state in progress.values() if state.completed),
        }

    def achievements(
        self,
        events: list[ViewEvent],
        progress: dict[str, ProgressState],
    ) -> list[Achievement]:
        """
        Evaluate achievement rules.

        Args:
            events: The user's view events
            progress: Output of progress() for the same events

        Returns:
            One Achievement per rule, in rule order
        """
        values = self.metrics(events, progress)
        return [
            Achievement(
                achievement_id=rule.achievement_id,
                title=rule.title,
                description=rule.description,
                progress=values[rule.metric],
                target=rule.target,
                unlocked=values[rule.metric] >= rule.target,
            )
            for rule in self.achievement_rules
        ]

    # ==========================================================================
    # Stats and Learning Paths
    # ==========================================================================

    def user_stats(self, events: list[ViewEvent], top_n: int = 5, recent_n: int = 5) -> UserStats:
        """Summary of a user's viewing history."""
        if not events:
            return UserStats(
                total_content_viewed=0,
                active_days=0,
                longest_streak_days=0,
                total_time_seconds=0.0,
                completion_rate=0,
            )

        counts = Counter(e.category for e in events)
        top = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:top_n]
        top_categories = [
            CategoryShare(
                category=category,
                count=count,
                percentage=round(count / len(events) * 100),
            )
            for category, count in top
        ]

        ordered = sorted(events, key=lambda e: e.order_key, reverse=True)
        recent: list[str] = []
        for event in ordered:
            if event.content_slug not in recent:
                recent.append(event.content_slug)
            if len(recent) == recent_n:
                break

        days = {e.timestamp.date() for e in events}
        completed_views = sum(1 for e in events if self.tier(e) >= self.completion_percentage)
        return UserStats(
            total_content_viewed=len({e.content_slug for e in events}),
            favorite_category=top_categories[0].category,
            top_categories=top_categories,
            active_days=len(days),
            longest_streak_days=longest_streak(days),
            total_time_seconds=round(math.fsum(e.duration for e in events), 2),
            completion_rate=round(completed_views / len(events) * 100),
            last_activity=ordered[0].timestamp,
            recent_content=recent,
        )

    def learning_path(
        self,
        path_id: str,
        name: str,
        slugs: list[str],
        catalog: ContentCatalog,
        progress: dict[str, ProgressState],
        sequential: bool = False,
    ) -> LearningPath:
        """
        Build a learning path view for one user.

        Args:
            path_id: Identifier of the path (e.g. a category)
            name: Display name of the path
            slugs: Ordered content slugs; slugs missing from the catalog are skipped
            catalog: Content catalog
            progress: The user's progress (from progress() with the catalog)
            sequential: When True each node requires the previous node
                instead of its catalog prerequisites

        Returns:
            LearningPath with nodes, milestones and overall progress
        """
        present = [slug for slug in slugs if slug in catalog]
        total = len(present)
        nodes: list[LearningPathNode] = []

        for index, slug in enumerate(present):
            node = catalog.get(slug)
            state = progress.get(slug)
            pct = state.percentage if state else 0

            if index >= total * 0.66:
                level = PathLevel.ADVANCED
            elif index >= total * 0.33:
                level = PathLevel.INTERMEDIATE
            else:
                level = PathLevel.BEGINNER

            if sequential:
                prerequisites = [present[index - 1]] if index > 0 else []
                locked = bool(nodes) and (not nodes[-1].completed or nodes[-1].locked)
            else:
                prerequisites = list(node.prerequisites)
                locked = state.locked if state else False

            nodes.append(
                LearningPathNode(
                    slug=slug,
                    name=node.display_name,
                    category=node.category,
                    level=level,
                    prerequisites=prerequisites,
                    progress=pct,
                    completed=pct >= self.completion_percentage,
                    locked=locked,
                )
            )

        completed_count = sum(1 for n in nodes if n.completed)
        milestones = [
            Milestone(
                milestone_id=milestone_id,
                name=label,
                description=description,
                required=required,
                achieved=total > 0 and completed_count >= required,
            )
            for milestone_id, label, description, required in (
                ("first-step", "First Step", "Complete your first model", min(1, total)),
                ("halfway", "Halfway There", "Complete 50% of the path", total // 2),
                ("nearly-done", "Almost There", "Complete 75% of the path", int(total * 0.75)),
                ("completed", "Path Master", "Complete the entire path", total),
            )
        ]

        return LearningPath(
            path_id=path_id,
            name=name,
            nodes=nodes,
            milestones=milestones,
            completed_count=completed_count,
            overall_progress=round(completed_count / total * 100) if total else 0,
        )

    def category_path(
        self,
        category: str,
        catalog: ContentCatalog,
        progress: dict[str, ProgressState],
    ) -> LearningPath:
        """Learning path over one catalog category, in catalog order."""
        slugs = [node.slug for node in catalog.in_category(category)]
        name = f"{category.replace('_', ' ').title()} Learning Path"
        return self.learning_path(category, name, slugs, catalog, progress)
