# ==============================================================================
# Infrastructure Adapters
# ==============================================================================
"""
Adapters for external services (ports-and-adapters architecture).

This module contains concrete implementations of the base/ interfaces:
- cache/ - Valkey cache and the caching event store decorator
- repositories/ - CSV/JSON files and PostgreSQL
- factory.py - Backend selection from settings
"""

from learnstream.infrastructure.factory import get_catalog_repository, get_event_store

__all__ = [
    "get_catalog_repository",
    "get_event_store",
]
