# ==============================================================================
# Cache Infrastructure
# ==============================================================================
"""
Cache implementations for the ports-and-adapters architecture.

Available implementations:
- ValkeyCache: Valkey/Redis-based cache with JSON serialization
- CachingEventStore: EventStore decorator caching settled windows
"""

from learnstream.infrastructure.cache.caching_store import CachingEventStore
from learnstream.infrastructure.cache.valkey import ValkeyCache

__all__ = [
    "CachingEventStore",
    "ValkeyCache",
]
