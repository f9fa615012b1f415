# ==============================================================================
# Aggregate Publisher
# ==============================================================================
"""
Assembles engine outputs into the read-only views dashboards consume.

Data flows one way:

    EventStore -> SessionReconstructor -> {PathMiner, TrendingEngine,
    EngagementAnalyzer, ProgressTracker} -> AggregatePublisher

and SearchQualityScorer reads search events independently.

A pass is all-or-nothing: if any fetch fails, the UpstreamUnavailable
propagates and no aggregates are returned. Its ``skipped_records`` includes
the rows skipped by fetches that succeeded before it. Malformed rows never
fail a pass; they are counted in ``skipped_records``.
"""

import logging
from datetime import UTC, datetime, timedelta

from pydantic import ValidationError

from learnstream.base import CatalogRepository, EventFilter, EventStore
from learnstream.core.catalog import ContentCatalog
from learnstream.core.engagement import EngagementAnalyzer
from learnstream.core.errors import ConfigurationError, UpstreamUnavailable
from learnstream.core.models import (
    DashboardAggregates,
    LearningPath,
    UserAggregates,
    ensure_utc,
)
from learnstream.core.path_miner import PathMiner
from learnstream.core.progress import ProgressTracker
from learnstream.core.recommendations import recommend
from learnstream.core.search_quality import SearchQualityScorer
from learnstream.core.session_processor import SessionReconstructor
from learnstream.core.trending import TrendingEngine
from learnstream.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)


def load_settings() -> Settings:
    """
    Load application settings, reporting invalid values as ConfigurationError.
    """
    try:
        return get_settings()
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {errors}") from e


class AggregatePublisher:
    """
    Runs aggregation passes against an event store.

    Args:
        store: Event store to read from
        catalog_repository: Source of the content catalog; without one, user
            passes report progress for viewed content only and no
            recommendations
        settings: Application settings (defaults to the environment)

    Raises:
        ConfigurationError: If a threshold in the settings is invalid
    """

    def __init__(
        self,
        store: EventStore,
        catalog_repository: CatalogRepository | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or load_settings()
        self._store = store
        self._catalog_repository = catalog_repository
        self._catalog: ContentCatalog | None = None

        s = self.settings
        self.reconstructor = SessionReconstructor(timeout_minutes=s.session.inactivity_minutes)
        self.path_miner = PathMiner(
            max_steps=s.paths.max_steps,
            min_path_length=s.paths.min_path_length,
            completion_threshold_seconds=s.paths.completion_threshold_seconds,
            top_paths=s.paths.top_paths,
            top_transitions=s.paths.top_transitions,
        )
        self.trending_engine = TrendingEngine(
            lookback=timedelta(hours=s.trending.lookback_hours),
            weight_views=s.trending.weight_views,
            weight_unique=s.trending.weight_unique,
            weight_velocity=s.trending.weight_velocity,
            velocity_min=s.trending.velocity_min,
            velocity_max=s.trending.velocity_max,
            direction_threshold=s.trending.direction_threshold,
        )
        self.search_scorer = SearchQualityScorer()
        self.progress_tracker = ProgressTracker(
            tiers=tuple(tuple(tier) for tier in s.progress.tiers),
            any_view_percentage=s.progress.any_view_percentage,
            completion_percentage=s.progress.completion_percentage,
        )
        e = s.engagement
        self.engagement = EngagementAnalyzer(
            reconstructor=self.reconstructor,
            completion_threshold_seconds=e.completion_seconds,
            engaged_threshold_seconds=e.engaged_seconds,
            conversion_threshold_seconds=e.conversion_seconds,
            change_window=timedelta(days=e.change_days),
            overview_window=timedelta(hours=e.overview_hours),
            return_window=timedelta(days=e.return_days),
        )

    @property
    def catalog(self) -> ContentCatalog | None:
        """The content catalog, loaded and validated on first use."""
        if self._catalog is None and self._catalog_repository is not None:
            self._catalog = self._catalog_repository.load()
            logger.info("Content catalog loaded: %d item(s)", len(self._catalog))
        return self._catalog

    @staticmethod
    def _as_of(as_of: datetime | None) -> datetime:
        return ensure_utc(as_of) if as_of is not None else datetime.now(UTC)

    # ==========================================================================
    # Dashboard
    # ==========================================================================

    def publish_dashboard(self, as_of: datetime | None = None) -> DashboardAggregates:
        """
        Run a global aggregation pass.

        Args:
            as_of: End of every window (exclusive); defaults to now

        Returns:
            DashboardAggregates for trending, journeys, search quality,
            per-content performance and the overview metrics

        Raises:
            UpstreamUnavailable: If the event store cannot be read
        """
        as_of = self._as_of(as_of)
        s = self.settings

        journey_since = as_of - timedelta(days=s.paths.lookback_days)
        trending_since = self.trending_engine.window_start(as_of)
        performance_since = as_of - timedelta(days=s.engagement.performance_lookback_days)
        overview_since = as_of - 2 * timedelta(hours=s.engagement.overview_hours)
        search_lookback = as_of - timedelta(days=s.search.lookback_days)
        search_since = min(search_lookback, performance_since, overview_since)
        views_since = min(
            journey_since,
            trending_since,
            performance_since,
            self.engagement.window_start(as_of),
        )

        views = self._store.fetch_views(EventFilter(since=views_since, until=as_of))
        try:
            searches = self._store.fetch_searches(EventFilter(since=search_since, until=as_of))
        except UpstreamUnavailable as e:
            e.skipped_records += views.skipped
            raise

        journey_events = [e for e in views.events if e.timestamp >= journey_since]
        sessions = self.reconstructor.reconstruct_all(journey_events)
        trending = self.trending_engine.compute(views.events, as_of, limit=s.trending.limit)
        search_events = [e for e in searches.events if e.timestamp >= search_lookback]
        skipped = views.skipped + searches.skipped

        aggregates = DashboardAggregates(
            generated_at=as_of,
            window_start=min(views_since, search_since),
            window_end=as_of,
            trending=trending,
            paths=self.path_miner.mine_paths(sessions),
            transitions=self.path_miner.mine_transitions(sessions),
            sources=self.path_miner.source_distribution(sessions),
            category_flow=self.path_miner.category_flow(sessions),
            search_quality=self.search_scorer.score(search_events),
            popular_searches=self.search_scorer.popular_searches(
                search_events, limit=s.search.popular_limit
            ),
            content_gaps=self.search_scorer.content_gaps(
                search_events, limit=s.search.gap_limit
            ),
            search_funnel=self.search_scorer.funnel(search_events),
            model_performance=self.engagement.model_performance(
                views.events,
                searches.events,
                performance_since,
                as_of,
                limit=s.engagement.performance_limit,
            ),
            overview=self.engagement.overview(views.events, searches.events, as_of),
            session_count=len(sessions),
            skipped_records=skipped,
        )
        logger.info(
            "Dashboard pass as of %s: %d view(s), %d search(es), %d session(s), "
            "%d trending, %d skipped",
            as_of.isoformat(),
            len(views),
            len(searches),
            len(sessions),
            len(trending),
            skipped,
        )
        return aggregates

    # ==========================================================================
    # Per-user
    # ==========================================================================

    def publish_user(self, user_id: str, as_of: datetime | None = None) -> UserAggregates:
        """
        Run a per-user aggregation pass.

        Args:
            user_id: The user to aggregate
            as_of: End of the history window (exclusive); defaults to now

        Returns:
            UserAggregates with progress, achievements, stats and recommendations

        Raises:
            ConfigurationError: If the catalog's prerequisite graph is invalid
            UpstreamUnavailable: If the event store cannot be read
        """
        as_of = self._as_of(as_of)
        s = self.settings
        catalog = self.catalog

        history = self._store.fetch_views(
            EventFilter(
                since=as_of - timedelta(days=s.progress.lookback_days),
                until=as_of,
                user_id=user_id,
            )
        )
        events = history.events
        skipped = history.skipped

        tracker = self.progress_tracker
        progress = tracker.progress(events, catalog)
        stats = tracker.user_stats(events)

        recommendations = []
        if catalog is not None:
            try:
                recent = self._store.fetch_views(
                    EventFilter(since=self.trending_engine.window_start(as_of), until=as_of)
                )
            except UpstreamUnavailable as e:
                e.skipped_records += skipped
                raise
            skipped += recent.skipped
            trending = self.trending_engine.compute(recent.events, as_of)
            recommendations = recommend(
                catalog, progress, stats, trending, limit=s.progress.recommendation_limit
            )

        aggregates = UserAggregates(
            user_id=user_id,
            generated_at=as_of,
            progress=progress,
            achievements=tracker.achievements(events, progress),
            stats=stats,
            recommendations=recommendations,
            skipped_records=skipped,
        )
        logger.info(
            "User pass for %s as of %s: %d view(s), %d item(s) tracked, %d skipped",
            user_id,
            as_of.isoformat(),
            len(events),
            len(progress),
            skipped,
        )
        return aggregates

    def learning_paths(
        self, user_id: str, as_of: datetime | None = None
    ) -> list[LearningPath]:
        """
        Per-category learning paths for one user.

        Returns:
            One LearningPath per catalog category, ordered by category;
            empty without a catalog
        """
        catalog = self.catalog
        if catalog is None:
            return []
        as_of = self._as_of(as_of)
        history = self._store.fetch_views(
            EventFilter(
                since=as_of - timedelta(days=self.settings.progress.lookback_days),
                until=as_of,
                user_id=user_id,
            )
        )
        progress = self.progress_tracker.progress(history.events, catalog)
        return [
            self.progress_tracker.category_path(category, catalog, progress)
            for category in catalog.categories
        ]

    def close(self) -> None:
        """Release store and catalog resources."""
        self._store.close()
        if self._catalog_repository is not None:
            self._catalog_repository.close()
