# ==============================================================================
# Repository Adapters
# ==============================================================================
"""
Adapters implementing the repository interfaces from base/repositories.py.

Currently supported:
- Local files: CSV event snapshots and a JSON catalog (files.py)
- In-memory events and catalog (memory.py)
- PostgreSQL (postgresql.py)
"""

from learnstream.infrastructure.repositories.files import CsvEventStore, JsonCatalogRepository
from learnstream.infrastructure.repositories.memory import (
    InMemoryCatalogRepository,
    InMemoryEventStore,
)
from learnstream.infrastructure.repositories.postgresql import (
    PostgreSQLCatalogRepository,
    PostgreSQLEventStore,
)

__all__ = [
    "CsvEventStore",
    "InMemoryCatalogRepository",
    "InMemoryEventStore",
    "JsonCatalogRepository",
    "PostgreSQLCatalogRepository",
    "PostgreSQLEventStore",
]
