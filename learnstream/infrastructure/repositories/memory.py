# ==============================================================================
# In-Memory Repositories
# ==============================================================================
"""
Repositories over already-parsed events and an in-memory catalog.

Used for tests and for embedding the engine where events are already in
memory (e.g. a notebook or a batch job that fetched them elsewhere).
"""

from learnstream.base import CatalogRepository, EventFilter, EventStore
from learnstream.core.catalog import ContentCatalog
from learnstream.core.models import SearchEvent, ViewEvent
from learnstream.core.parsing import EventBatch


class InMemoryEventStore(EventStore):
    """
    EventStore over lists of events.

    Args:
        views: Content-view events
        searches: Search events
        skipped_views: Malformed view rows to report on every fetch
        skipped_searches: Malformed search rows to report on every fetch
    """

    def __init__(
        self,
        views: list[ViewEvent] | None = None,
        searches: list[SearchEvent] | None = None,
        skipped_views: int = 0,
        skipped_searches: int = 0,
    ):
        self.views = list(views or [])
        self.searches = list(searches or [])
        self.skipped_views = skipped_views
        self.skipped_searches = skipped_searches

    @staticmethod
    def _matches(event, event_filter: EventFilter) -> bool:
        if event_filter.user_id is not None and event.user_id != event_filter.user_id:
            return False
        return event_filter.contains(event.timestamp)

    def fetch_views(self, event_filter: EventFilter) -> EventBatch[ViewEvent]:
        return EventBatch(
            events=[e for e in self.views if self._matches(e, event_filter)],
            skipped=self.skipped_views,
        )

    def fetch_searches(self, event_filter: EventFilter) -> EventBatch[SearchEvent]:
        return EventBatch(
            events=[e for e in self.searches if self._matches(e, event_filter)],
            skipped=self.skipped_searches,
        )


class InMemoryCatalogRepository(CatalogRepository):
    """CatalogRepository returning a prebuilt catalog."""

    def __init__(self, catalog: ContentCatalog):
        self._catalog = catalog

    def load(self) -> ContentCatalog:
        return self._catalog
