# ==============================================================================
# Learnstream Domain Models
# ==============================================================================
"""
Pydantic models for view/search events and the aggregates derived from them.

These models are used for:
- Validating raw records read from CSV snapshots or PostgreSQL
- Serializing aggregates for the presentation layer and the cache
- Type safety throughout the engine

Every model is frozen: events are immutable facts and aggregates are pure
functions of an event snapshot. This module is part of the core domain layer
and has no external dependencies beyond Pydantic.
"""

import re
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

UNCATEGORIZED = "uncategorized"
ALL_CATEGORIES = "all"
GLOBAL_SCOPE = "global"
PATH_SEPARATOR = " → "

_WHITESPACE = re.compile(r"\s+")


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# ==============================================================================
# Enums
# ==============================================================================


class SourceChannel(str, Enum):
    """How the user arrived at a piece of content."""

    SEARCH = "search"
    TRENDING = "trending"
    DIRECT = "direct"
    RECOMMENDATION = "recommendation"
    UNKNOWN = "unknown"


class TrendDirection(str, Enum):
    """Direction of a trending item relative to the prior window."""

    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class PathLevel(str, Enum):
    """Difficulty band of a learning path node, by position in the path."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class RecommendationType(str, Enum):
    """Why a piece of content is being recommended."""

    CONTINUE = "continue"
    SIMILAR = "similar"
    TRENDING = "trending"
    COMPLEMENTARY = "complementary"
    NEW = "new"


# ==============================================================================
# Events
# ==============================================================================


class ViewEvent(BaseModel):
    """
    A single content-view fact from the view log.

    Attributes:
        user_id: Viewer identifier, None for anonymous views
        content_slug: Slug of the viewed content
        content_name: Display name (defaults to the slug)
        category: Content category (defaults to "uncategorized")
        timestamp: When the view started (UTC)
        view_duration_seconds: Time spent on the content, if reported
        session_id: Explicit client session id, if reported
        source_channel: How the viewer reached the content
        completed_at: Explicit completion marker, if reported
        sequence: Ingestion order within the store (row id), if known
    """

    model_config = {"frozen": True}

    user_id: str | None = None
    content_slug: str = Field(..., min_length=1)
    content_name: str = ""
    category: str = UNCATEGORIZED
    timestamp: datetime
    view_duration_seconds: float | None = Field(default=None, ge=0)
    session_id: str | None = None
    source_channel: SourceChannel = SourceChannel.UNKNOWN
    completed_at: datetime | None = None
    sequence: int | None = None

    @field_validator("timestamp", "completed_at")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    @field_validator("source_channel", mode="before")
    @classmethod
    def _known_channel(cls, value):
        if isinstance(value, SourceChannel):
            return value
        try:
            return SourceChannel(str(value).strip().lower())
        except ValueError:
            return SourceChannel.UNKNOWN

    @field_validator("user_id", "session_id", mode="before")
    @classmethod
    def _blank_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return UNCATEGORIZED
        return value

    @property
    def display_name(self) -> str:
        """Content name, falling back to the slug."""
        return self.content_name or self.content_slug

    @property
    def duration(self) -> float:
        """View duration with missing values counted as zero."""
        return self.view_duration_seconds or 0.0

    @property
    def order_key(self) -> tuple:
        """
        Total sort key: timestamp, then ingestion sequence where known, then
        every other field, so events that share a timestamp and carry no
        sequence still sort the same way whatever order they arrive in.
        """
        return (
            self.timestamp,
            self.sequence is None,
            self.sequence or 0,
            self.content_slug,
            self.category,
            self.content_name,
            self.session_id or "",
            self.user_id or "",
            self.view_duration_seconds is None,
            self.duration,
            self.source_channel.value,
            self.completed_at is None,
            self.completed_at or self.timestamp,
        )


class SearchEvent(BaseModel):
    """
    A single search fact from the search log.

    ``failed`` is authoritative: a search can fail through explicit
    abandonment even when it returned results.
    """

    model_config = {"frozen": True}

    user_id: str | None = None
    query_text: str
    timestamp: datetime
    filters: dict[str, str] = Field(default_factory=dict)
    results_count: int = Field(default=0, ge=0)
    clicked_slug: str | None = None
    clicked_position: int | None = None
    time_to_click_ms: float | None = Field(default=None, ge=0)
    failed: bool = False

    @field_validator("timestamp")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @field_validator("user_id", "clicked_slug", mode="before")
    @classmethod
    def _blank_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def normalized_query(self) -> str:
        """Lower-cased query with collapsed whitespace."""
        return _WHITESPACE.sub(" ", self.query_text.strip().lower())

    @property
    def category(self) -> str:
        """Category filter applied to the search, or "all"."""
        return self.filters.get("category") or ALL_CATEGORIES

    @property
    def clicked(self) -> bool:
        """True when the user clicked a result."""
        return self.clicked_slug is not None


# ==============================================================================
# Sessions and Navigation
# ==============================================================================


class Session(BaseModel):
    """
    A reconstructed run of one user's content views.

    Sessions are derived, never ground truth. Events are ordered by
    timestamp ascending and all belong to the same user.
    """

    model_config = {"frozen": True}

    session_key: str
    user_id: str | None = None
    events: list[ViewEvent] = Field(default_factory=list)

    @property
    def start(self) -> datetime:
        """Timestamp of the first event."""
        return self.events[0].timestamp

    @property
    def end(self) -> datetime:
        """Timestamp of the last event."""
        return self.events[-1].timestamp

    @property
    def length(self) -> int:
        """Number of views in the session."""
        return len(self.events)

    @property
    def is_degenerate(self) -> bool:
        """True when only one event could be attributed to the session."""
        return len(self.events) == 1

    @property
    def total_duration_seconds(self) -> float:
        """Sum of view durations, missing durations counted as zero."""
        return sum(e.duration for e in self.events)

    @property
    def slugs(self) -> list[str]:
        """Content slugs in visit order."""
        return [e.content_slug for e in self.events]

    @property
    def categories(self) -> list[str]:
        """Content categories in visit order."""
        return [e.category for e in self.events]


class NavigationPath(BaseModel):
    """A common ordered prefix of content visited within sessions."""

    model_config = {"frozen": True}

    path_key: str
    steps: list[str]
    occurrence_count: int
    average_total_duration_seconds: float
    completion_rate: float = Field(..., ge=0, le=1)


class TransitionEdge(BaseModel):
    """A directional move between two different categories in a session."""

    model_config = {"frozen": True}

    from_category: str
    to_category: str
    count: int


class SourceShare(BaseModel):
    """How many sessions started from a given source channel."""

    model_config = {"frozen": True}

    source: SourceChannel
    count: int
    percentage: int


class CategoryFlow(BaseModel):
    """View counts for a category and each content item within it."""

    model_config = {"frozen": True}

    category: str
    total: int
    children: dict[str, int]


# ==============================================================================
# Trending
# ==============================================================================


class TrendingRecord(BaseModel):
    """A ranked trending content item for one refresh."""

    model_config = {"frozen": True}

    content_slug: str
    content_name: str
    category: str
    score: float = Field(..., ge=0)
    rank: int = Field(..., ge=1)
    direction: TrendDirection
    views_last_24h: int
    unique_viewers: int
    prior_views: int
    velocity: float


# ==============================================================================
# Search
# ==============================================================================


class SearchQualityRecord(BaseModel):
    """Click-through, failure and composite quality for one search scope."""

    model_config = {"frozen": True}

    scope: str
    total_searches: int
    click_through_rate: float = Field(..., ge=0, le=100)
    failure_rate: float = Field(..., ge=0, le=100)
    avg_time_to_click_ms: float | None = None
    avg_results_count: float
    quality_score: float = Field(..., ge=0, le=100)


class PopularSearch(BaseModel):
    """A frequently issued (normalized) query."""

    model_config = {"frozen": True}

    query: str
    search_count: int
    unique_users: int
    click_through_rate: float
    avg_results: float


class ContentGap(BaseModel):
    """A query that keeps failing, i.e. content users want but cannot find."""

    model_config = {"frozen": True}

    query: str
    failure_count: int
    unique_users: int
    last_searched: datetime
    sample_filters: dict[str, str]


class FunnelStage(BaseModel):
    """One stage of the search funnel."""

    model_config = {"frozen": True}

    stage: str
    count: int
    percentage: float


# ==============================================================================
# Progress and Personalization
# ==============================================================================


class ProgressState(BaseModel):
    """A user's completion state for one content item."""

    model_config = {"frozen": True}

    content_slug: str
    percentage: int = Field(..., ge=0, le=100)
    completed: bool
    last_viewed_at: datetime | None = None
    locked: bool = False


class Achievement(BaseModel):
    """A milestone and how far a user is towards it."""

    model_config = {"frozen": True}

    achievement_id: str
    title: str
    description: str
    progress: int
    target: int
    unlocked: bool


class CategoryShare(BaseModel):
    """Share of a user's views that fell in one category."""

    model_config = {"frozen": True}

    category: str
    count: int
    percentage: int


class UserStats(BaseModel):
    """Summary of one user's viewing history."""

    model_config = {"frozen": True}

    total_content_viewed: int
    favorite_category: str | None = None
    top_categories: list[CategoryShare] = Field(default_factory=list)
    active_days: int
    longest_streak_days: int
    total_time_seconds: float
    completion_rate: int
    last_activity: datetime | None = None
    recent_content: list[str] = Field(default_factory=list)


class LearningPathNode(BaseModel):
    """One step of a learning path as seen by a specific user."""

    model_config = {"frozen": True}

    slug: str
    name: str
    category: str
    level: PathLevel
    prerequisites: list[str]
    progress: int
    completed: bool
    locked: bool


class Milestone(BaseModel):
    """A completion milestone along a learning path."""

    model_config = {"frozen": True}

    milestone_id: str
    name: str
    description: str
    required: int
    achieved: bool


class LearningPath(BaseModel):
    """An ordered set of content with per-user progress and milestones."""

    model_config = {"frozen": True}

    path_id: str
    name: str
    nodes: list[LearningPathNode]
    milestones: list[Milestone]
    completed_count: int
    overall_progress: int


class Recommendation(BaseModel):
    """A piece of content suggested to a user, with the reason for it."""

    model_config = {"frozen": True}

    content_slug: str
    content_name: str
    category: str
    type: RecommendationType
    reason: str
    score: float


# ==============================================================================
# Engagement
# ==============================================================================


class ModelPerformance(BaseModel):
    """
    View and search-click totals for one content item.

    Rates are percentages. ``change_pct`` compares the most recent change
    window with the one before it and is None when the earlier window had
    no views.
    """

    model_config = {"frozen": True}

    content_slug: str
    content_name: str
    category: str
    total_views: int
    unique_viewers: int
    avg_duration_seconds: float
    total_duration_seconds: float
    completion_rate: float = Field(..., ge=0, le=100)
    search_clicks: int
    last_viewed_at: datetime
    change_pct: float | None = None


class DashboardOverview(BaseModel):
    """
    Headline metrics for the most recent overview window.

    Rates are percentages; ``*_change`` fields compare with the preceding
    window of equal length (percentage-point differences for rates).
    ``satisfaction_score`` is a 0-10 composite.
    """

    model_config = {"frozen": True}

    window_start: datetime
    window_end: datetime
    total_views: int
    total_searches: int
    unique_content: int
    unique_users: int
    avg_duration_seconds: float
    click_rate: float = Field(..., ge=0, le=100)
    failure_rate: float = Field(..., ge=0, le=100)
    avg_time_to_click_seconds: float | None = None
    engagement_rate: float = Field(..., ge=0, le=100)
    bounce_rate: float = Field(..., ge=0, le=100)
    return_rate: float = Field(..., ge=0, le=100)
    conversion_rate: float = Field(..., ge=0, le=100)
    satisfaction_score: float = Field(..., ge=0, le=10)
    views_change: float | None = None
    searches_change: float | None = None
    click_rate_change: float
    failure_rate_change: float


# ==============================================================================
# Published Aggregates
# ==============================================================================


class DashboardAggregates(BaseModel):
    """Everything the analytics dashboard renders for one pass."""

    model_config = {"frozen": True}

    generated_at: datetime
    window_start: datetime
    window_end: datetime
    trending: list[TrendingRecord]
    paths: list[NavigationPath]
    transitions: list[TransitionEdge]
    sources: list[SourceShare]
    category_flow: list[CategoryFlow]
    search_quality: list[SearchQualityRecord]
    popular_searches: list[PopularSearch]
    content_gaps: list[ContentGap]
    search_funnel: list[FunnelStage]
    model_performance: list[ModelPerformance]
    overview: DashboardOverview
    session_count: int
    skipped_records: int


class UserAggregates(BaseModel):
    """Everything the personalized dashboard renders for one user."""

    model_config = {"frozen": True}

    user_id: str
    generated_at: datetime
    progress: dict[str, ProgressState]
    achievements: list[Achievement]
    stats: UserStats
    recommendations: list[Recommendation]
    skipped_records: int
