# ==============================================================================
# Trending Score Engine - Pure Domain Logic
# ==============================================================================
"""
Velocity-weighted popularity scores for content.

For a reference time ``as_of`` and a lookback L:
- recent window: [as_of - L, as_of)
- prior window:  [as_of - 2L, as_of - L)

    velocity = (recent - prior) / max(1, prior), clamped
    score    = w_views * recent + w_unique * unique_viewers + w_velocity * velocity

Unique viewers and growth weigh more than raw volume, so one user
repeatedly viewing an item cannot push it up the list on their own.
The engine never reads the wall clock; ``as_of`` is always passed in, which
makes repeated refreshes against a growing log safe and reproducible.
"""

from collections import defaultdict
from datetime import datetime, timedelta

from learnstream.core.errors import ConfigurationError
from learnstream.core.models import TrendDirection, TrendingRecord, ViewEvent, ensure_utc


class TrendingEngine:
    """Computes ranked trending records from view events."""

    def __init__(
        self,
        lookback: timedelta = timedelta(hours=24),
        weight_views: float = 1.0,
        weight_unique: float = 1.5,
        weight_velocity: float = 20.0,
        velocity_min: float = -1.0,
        velocity_max: float = 3.0,
        direction_threshold: float = 0.1,
    ):
        if lookback <= timedelta(0):
            raise ConfigurationError("Trending lookback must be positive")
        if velocity_min >= velocity_max:
            raise ConfigurationError(
                f"velocity_min ({velocity_min}) must be below velocity_max ({velocity_max})"
            )
        if direction_threshold < 0:
            raise ConfigurationError("direction_threshold must not be negative")
        self.lookback = lookback
        self.weight_views = weight_views
        self.weight_unique = weight_unique
        self.weight_velocity = weight_velocity
        self.velocity_min = velocity_min
        self.velocity_max = velocity_max
        self.direction_threshold = direction_threshold

    def window_start(self, as_of: datetime) -> datetime:
        """Start of the prior window, i.e. the earliest event the engine reads."""
        return ensure_utc(as_of) - 2 * self.lookback

    def velocity(self, recent: int, prior: int) -> float:
        """Relative growth of views, clamped to the configured range."""
        raw = (recent - prior) / max(1, prior)
        return max(self.velocity_min, min(self.velocity_max, raw))

    def direction(self, velocity: float) -> TrendDirection:
        """Map a velocity to up, down or stable."""
        if velocity > self.direction_threshold:
            return TrendDirection.UP
        if velocity < -self.direction_threshold:
            return TrendDirection.DOWN
        return TrendDirection.STABLE

    def score(self, recent: int, unique_viewers: int, velocity: float) -> float:
        """Weighted trending score, never below zero."""
        value = (
            self.weight_views * recent
            + self.weight_unique * unique_viewers
            + self.weight_velocity * velocity
        )
        return max(0.0, round(value, 4))

    def compute(
        self,
        events: list[ViewEvent],
        as_of: datetime,
        limit: int | None = None,
    ) -> list[TrendingRecord]:
        """
        Rank content by trending score.

        Args:
            events: View events; anything outside the two windows is ignored
            as_of: Reference time (end of the recent window, exclusive)
            limit: Keep only the top N records

        Returns:
            Records sorted by score descending, then content slug, with
            dense 1-based ranks. Content without recent views is omitted.
        """
        as_of = ensure_utc(as_of)
        recent_start = as_of - self.lookback
        prior_start = recent_start - self.lookback

        recent: dict[str, int] = defaultdict(int)
        prior: dict[str, int] = defaultdict(int)
        viewers: dict[str, set[str]] = defaultdict(set)
        labels: dict[str, tuple[str, str]] = {}

        for event in sorted(events, key=lambda e: e.order_key):
            slug = event.content_slug
            if recent_start <= event.timestamp < as_of:
                recent[slug] += 1
                if event.user_id is not None:
                    viewers[slug].add(event.user_id)
                # Latest label wins
                labels[slug] = (event.display_name, event.category)
            elif prior_start <= event.timestamp < recent_start:
                prior[slug] += 1

        scored = []
        for slug, views in recent.items():
            velocity = self.velocity(views, prior[slug])
            unique = len(viewers[slug])
            scored.append((self.score(views, unique, velocity), slug, views, unique, velocity))

        scored.sort(key=lambda item: (-item[0], item[1]))
        if limit is not None:
            scored = scored[:limit]

        return [
            TrendingRecord(
                content_slug=slug,
                content_name=labels[slug][0],
                category=labels[slug][1],
                score=score,
                rank=rank,
                direction=self.direction(velocity),
                views_last_24h=views,
                unique_viewers=unique,
                prior_views=prior[slug],
                velocity=round(velocity, 4),
            )
            for rank, (score, slug, views, unique, velocity) in enumerate(scored, start=1)
        ]
