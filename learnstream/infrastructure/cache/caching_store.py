# ==============================================================================
# Caching Event Store
# ==============================================================================
"""
EventStore decorator that caches closed event windows in a Cache.

The logs are append-only, so a window that ends in the past never changes
and its parsed events can be reused. Only windows that ended at least one
TTL ago are cached. Passes that default ``as_of`` to now produce a new
window every run, and those keys would never be read again; such windows,
and windows that reach into the future, are read from the wrapped store.

Cache failures never fail a pass: the wrapped store is read instead.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Callable

from redis.exceptions import RedisError

from learnstream.base import Cache, EventFilter, EventStore
from learnstream.core.models import SearchEvent, ViewEvent
from learnstream.core.parsing import EventBatch

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class CachingEventStore(EventStore):
    """
    Wraps an EventStore and caches windows that closed at least a TTL ago.

    Args:
        store: The store to read from on a cache miss
        cache: Cache for serialized batches
        ttl_seconds: Time-to-live for cached windows
        clock: Returns the current time; only used to decide if a window is settled
    """

    def __init__(
        self,
        store: EventStore,
        cache: Cache,
        ttl_seconds: int = 3600,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._store = store
        self._cache = cache
        self._ttl = ttl_seconds
        self._clock = clock

    def _is_settled(self, event_filter: EventFilter) -> bool:
        return event_filter.until <= self._clock() - timedelta(seconds=self._ttl)

    def _lookup(self, key: str) -> dict | None:
        try:
            return self._cache.get(key)
        except RedisError as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return None

    def _store_batch(self, key: str, batch: EventBatch) -> None:
        payload = {
            "events": [event.model_dump(mode="json") for event in batch.events],
            "skipped": batch.skipped,
        }
        try:
            self._cache.set(key, payload, ttl_seconds=self._ttl)
        except RedisError as e:
            logger.warning("Cache write failed for %s: %s", key, e)

    def fetch_views(self, event_filter: EventFilter) -> EventBatch[ViewEvent]:
        return self._fetch("views", event_filter, self._store.fetch_views, ViewEvent)

    def fetch_searches(self, event_filter: EventFilter) -> EventBatch[SearchEvent]:
        return self._fetch("searches", event_filter, self._store.fetch_searches, SearchEvent)

    def _fetch(self, kind: str, event_filter: EventFilter, fetch, model) -> EventBatch:
        if not self._is_settled(event_filter):
            return fetch(event_filter)

        key = event_filter.cache_key(kind)
        cached = self._lookup(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return EventBatch(
                events=[model.model_validate(event) for event in cached["events"]],
                skipped=cached["skipped"],
            )

        batch = fetch(event_filter)
        self._store_batch(key, batch)
        return batch

    def invalidate(self) -> int:
        """Drop every cached window. Returns the number of keys deleted."""
        return self._cache.delete_pattern("learnstream:*")

    def close(self) -> None:
        self._store.close()
