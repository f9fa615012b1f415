# ==============================================================================
# Repository Abstract Base Classes
# ==============================================================================
"""
Read-only repository ABCs for the event logs and the content catalog.

These define the "what" (fetch a bounded window of events) not the "how"
(CSV snapshot, SQL query, cache). Concrete implementations live in
infrastructure/.

Includes:
- EventFilter: the bounded query every fetch takes
- EventStore: content-view and search event logs
- CatalogRepository: content catalog with prerequisites

Note: Cache is in a separate module (cache.py) since it is not a
repository of domain objects.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel, field_validator, model_validator

from learnstream.core.catalog import ContentCatalog
from learnstream.core.models import SearchEvent, ViewEvent, ensure_utc
from learnstream.core.parsing import EventBatch


class EventFilter(BaseModel):
    """
    A bounded event query: [since, until), optionally for one user.

    Both bounds are required so every aggregation pass reads a window of
    known size instead of scanning the whole log.
    """

    model_config = {"frozen": True}

    since: datetime
    until: datetime
    user_id: str | None = None

    @field_validator("since", "until")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _ordered(self) -> "EventFilter":
        if self.since > self.until:
            raise ValueError(f"since ({self.since}) must not be after until ({self.until})")
        return self

    def contains(self, timestamp: datetime) -> bool:
        """True when ``timestamp`` falls inside the window."""
        return self.since <= timestamp < self.until

    def cache_key(self, kind: str) -> str:
        """Stable key identifying this window for one event kind."""
        user = self.user_id or "*"
        return f"learnstream:{kind}:{user}:{self.since.isoformat()}:{self.until.isoformat()}"


class EventStore(ABC):
    """Read-only access to the append-only view and search logs."""

    @abstractmethod
    def fetch_views(self, event_filter: EventFilter) -> EventBatch[ViewEvent]:
        """
        Fetch content-view events inside the window.

        Args:
            event_filter: Window and optional user

        Returns:
            Parsed events plus the count of malformed rows skipped

        Raises:
            UpstreamUnavailable: If the store cannot be read
        """
        ...

    @abstractmethod
    def fetch_searches(self, event_filter: EventFilter) -> EventBatch[SearchEvent]:
        """
        Fetch search events inside the window.

        Args:
            event_filter: Window and optional user

        Returns:
            Parsed events plus the count of malformed rows skipped

        Raises:
            UpstreamUnavailable: If the store cannot be read
        """
        ...

    def close(self) -> None:
        """Release resources. Stores without resources do nothing."""


class CatalogRepository(ABC):
    """Repository for the content catalog."""

    @abstractmethod
    def load(self) -> ContentCatalog:
        """
        Load and validate the catalog.

        Raises:
            ConfigurationError: If the prerequisite graph is invalid
            UpstreamUnavailable: If the catalog cannot be read
        """
        ...

    def close(self) -> None:
        """Release resources. Repositories without resources do nothing."""
