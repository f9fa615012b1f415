# ==============================================================================
# Shared Test Fixtures
# ==============================================================================
"""
Pytest fixtures shared across all test modules.

Provides:
- fakeredis-backed ValkeyCache instances
- Factories for view and search events relative to a fixed base time
- A small content catalog with a prerequisite chain
"""

from datetime import UTC, datetime, timedelta

import fakeredis
import pytest

from learnstream.core.catalog import ContentCatalog, ContentNode
from learnstream.core.models import SearchEvent, SourceChannel, ViewEvent
from learnstream.infrastructure.cache import ValkeyCache

# Fixed reference time so no test depends on the wall clock
BASE_TIME = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


@pytest.fixture()
def fake_redis():
    """A clean fakeredis instance for each test.

    Uses decode_responses=True to match the real ValkeyCache behavior.
    """
    server = fakeredis.FakeServer()
    client = fakeredis.FakeRedis(server=server, decode_responses=True)
    yield client
    client.flushall()
    client.close()


@pytest.fixture()
def fake_cache(fake_redis):
    """A ValkeyCache with its internal client replaced by fakeredis.

    This avoids needing a real Valkey/Redis server for unit tests while
    exercising the full ValkeyCache API surface.
    """
    cache = ValkeyCache.__new__(ValkeyCache)
    cache._client = fake_redis
    cache._url = "redis://fake:6379"
    return cache


@pytest.fixture()
def base_time():
    return BASE_TIME


@pytest.fixture()
def make_view():
    """Factory for ViewEvents, timestamps given as seconds after BASE_TIME."""

    def _make(
        slug: str = "first-principles",
        user: str | None = "u1",
        seconds: float = 0,
        duration: float | None = 45,
        category: str = "thinking",
        **fields,
    ) -> ViewEvent:
        fields.setdefault("source_channel", SourceChannel.DIRECT)
        return ViewEvent(
            user_id=user,
            content_slug=slug,
            category=category,
            timestamp=BASE_TIME + timedelta(seconds=seconds),
            view_duration_seconds=duration,
            **fields,
        )

    return _make


@pytest.fixture()
def make_search():
    """Factory for SearchEvents; ``failed`` defaults to "zero results"."""

    def _make(
        query: str = "stoicism",
        user: str | None = "u1",
        seconds: float = 0,
        results: int = 5,
        clicked: str | None = None,
        time_to_click: float | None = None,
        category: str | None = None,
        failed: bool | None = None,
    ) -> SearchEvent:
        return SearchEvent(
            user_id=user,
            query_text=query,
            timestamp=BASE_TIME + timedelta(seconds=seconds),
            filters={"category": category} if category else {},
            results_count=results,
            clicked_slug=clicked,
            clicked_position=1 if clicked else None,
            time_to_click_ms=time_to_click,
            failed=results == 0 if failed is None else failed,
        )

    return _make


@pytest.fixture()
def catalog():
    """
    Five items in two categories.

    philosophy: intro -> stoicism -> ethics
    thinking:   first-principles -> inversion
    """
    return ContentCatalog(
        [
            ContentNode(slug="intro", name="Introduction", category="philosophy", order_index=0),
            ContentNode(
                slug="stoicism",
                name="Stoicism",
                category="philosophy",
                prerequisites=("intro",),
                order_index=1,
            ),
            ContentNode(
                slug="ethics",
                name="Ethics",
                category="philosophy",
                prerequisites=("stoicism",),
                order_index=2,
            ),
            ContentNode(
                slug="first-principles",
                name="First Principles",
                category="thinking",
                order_index=0,
            ),
            ContentNode(
                slug="inversion",
                name="Inversion",
                category="thinking",
                prerequisites=("first-principles",),
                order_index=1,
            ),
        ]
    )
