# ==============================================================================
# Store Factory
# ==============================================================================
"""
Factory functions for the active event store and catalog repository.

The backend is selected by the STORE_BACKEND environment variable, and the
event store is wrapped in a Valkey cache when VALKEY_CACHE_ENABLED is set.
"""

from learnstream.base import CatalogRepository, EventStore
from learnstream.utils.config import Settings, get_settings


def get_event_store(settings: Settings | None = None) -> EventStore:
    """
    Get the event store based on the STORE_BACKEND setting.

    - "csv" (default): CSV snapshots read with polars
    - "postgresql": content_views / search_events tables

    Returns:
        EventStore: The store, wrapped in CachingEventStore when caching is on

    Raises:
        ValueError: If an unknown backend is specified
    """
    settings = settings or get_settings()
    backend = settings.store.backend

    match backend:
        case "csv":
            from learnstream.infrastructure.repositories import CsvEventStore

            store: EventStore = CsvEventStore.from_settings(settings.store)
        case "postgresql":
            from learnstream.infrastructure.repositories import PostgreSQLEventStore

            store = PostgreSQLEventStore(settings.postgres)
        case _:
            raise ValueError(
                f"Unknown store backend: '{backend}'.\nValid options are: csv, postgresql"
            )

    if settings.valkey.cache_enabled:
        from learnstream.infrastructure.cache import CachingEventStore, ValkeyCache

        store = CachingEventStore(
            store,
            ValkeyCache(settings.valkey.url),
            ttl_seconds=settings.valkey.cache_ttl_seconds,
        )
    return store


def get_catalog_repository(settings: Settings | None = None) -> CatalogRepository:
    """
    Get the catalog repository matching the STORE_BACKEND setting.

    The csv backend reads the catalog from STORE_CATALOG_FILE (JSON).
    """
    settings = settings or get_settings()

    match settings.store.backend:
        case "csv":
            from learnstream.infrastructure.repositories import JsonCatalogRepository

            return JsonCatalogRepository.from_settings(settings.store)
        case "postgresql":
            from learnstream.infrastructure.repositories import PostgreSQLCatalogRepository

            return PostgreSQLCatalogRepository(settings.postgres)
        case backend:
            raise ValueError(
                f"Unknown store backend: '{backend}'.\nValid options are: csv, postgresql"
            )
