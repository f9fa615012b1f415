# ==============================================================================
# Base Abstract Classes
# ==============================================================================
"""
Abstract base classes for the ports-and-adapters architecture.

The aggregation engines only see these interfaces; CSV snapshots,
PostgreSQL and the Valkey cache are adapters in infrastructure/.
"""

from learnstream.base.cache import Cache
from learnstream.base.repositories import CatalogRepository, EventFilter, EventStore

__all__ = [
    "Cache",
    "CatalogRepository",
    "EventFilter",
    "EventStore",
]
