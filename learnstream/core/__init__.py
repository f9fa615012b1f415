# ==============================================================================
# Core Domain Logic
# ==============================================================================
"""
Pure domain logic with no I/O.

This module contains:
- Domain models (ViewEvent, SearchEvent, Session and derived aggregates)
- Raw record parsing with skipped-record accounting
- Session reconstruction, path mining, trending, search quality
- Per-content performance and overview metrics
- Progress, achievements, learning paths and recommendations

All code here is framework-agnostic and easily unit-testable.
"""

from learnstream.core.catalog import ContentCatalog, ContentNode
from learnstream.core.engagement import EngagementAnalyzer
from learnstream.core.errors import (
    AggregationError,
    ConfigurationError,
    ErrorKind,
    MalformedRecord,
    UpstreamUnavailable,
)
from learnstream.core.models import (
    Achievement,
    DashboardOverview,
    ModelPerformance,
    NavigationPath,
    ProgressState,
    SearchEvent,
    SearchQualityRecord,
    Session,
    SourceChannel,
    TransitionEdge,
    TrendDirection,
    TrendingRecord,
    ViewEvent,
)
from learnstream.core.parsing import EventBatch, parse_search_records, parse_view_records
from learnstream.core.path_miner import PathMiner
from learnstream.core.progress import AchievementRule, ProgressTracker
from learnstream.core.recommendations import recommend
from learnstream.core.search_quality import SearchQualityScorer
from learnstream.core.session_processor import SessionReconstructor
from learnstream.core.trending import TrendingEngine

__all__ = [
    # Catalog
    "ContentCatalog",
    "ContentNode",
    # Errors
    "AggregationError",
    "ConfigurationError",
    "ErrorKind",
    "MalformedRecord",
    "UpstreamUnavailable",
    # Models
    "Achievement",
    "DashboardOverview",
    "ModelPerformance",
    "NavigationPath",
    "ProgressState",
    "SearchEvent",
    "SearchQualityRecord",
    "Session",
    "SourceChannel",
    "TransitionEdge",
    "TrendDirection",
    "TrendingRecord",
    "ViewEvent",
    # Parsing
    "EventBatch",
    "parse_search_records",
    "parse_view_records",
    # Engines
    "AchievementRule",
    "EngagementAnalyzer",
    "PathMiner",
    "ProgressTracker",
    "SearchQualityScorer",
    "SessionReconstructor",
    "TrendingEngine",
    "recommend",
]
