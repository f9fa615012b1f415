# ==============================================================================
# Tests for Application Configuration
# ==============================================================================
"""
Unit tests for learnstream.utils.config and load_settings().

Tests cover:
- Defaults matching the engine defaults
- Environment overrides per settings group
- Progress tiers from JSON and their validation
- Velocity clamp and engagement threshold validation
- Invalid environment surfacing as ConfigurationError
- Derived connection strings and data paths
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from learnstream.core.errors import ConfigurationError
from learnstream.publisher import load_settings
from learnstream.utils.config import (
    EngagementSettings,
    PostgresSettings,
    ProgressSettings,
    Settings,
    StoreSettings,
    TrendingSettings,
    ValkeySettings,
    get_settings,
)
from learnstream.utils.paths import get_project_root


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ==============================================================================
# Defaults and Overrides
# ==============================================================================


class TestSettings:
    """Tests for settings defaults and environment overrides."""

    def test_defaults(self):
        settings = Settings()

        assert settings.session.inactivity_minutes == 30
        assert settings.paths.max_steps == 3
        assert settings.paths.min_path_length == 2
        assert settings.trending.lookback_hours == 24
        assert (settings.trending.velocity_min, settings.trending.velocity_max) == (-1, 3)
        assert [tuple(t) for t in settings.progress.tiers] == [(60, 100), (30, 75), (15, 50)]
        assert settings.store.backend == "csv"
        assert settings.valkey.cache_enabled is False

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SESSION_INACTIVITY_MINUTES", "45")
        monkeypatch.setenv("TRENDING_LIMIT", "3")

        settings = Settings()

        assert settings.session.inactivity_minutes == 45
        assert settings.trending.limit == 3

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_tiers_from_json(self, monkeypatch):
        monkeypatch.setenv("PROGRESS_TIERS", "[[120, 100], [45, 60]]")

        settings = ProgressSettings()

        assert [tuple(t) for t in settings.tiers] == [(120, 100), (45, 60)]

    def test_tiers_from_json_string_value(self):
        settings = ProgressSettings(tiers="[[90, 100]]")

        assert [tuple(t) for t in settings.tiers] == [(90, 100)]

    def test_ascending_tiers_rejected(self):
        with pytest.raises(ValidationError, match="strictly descending"):
            ProgressSettings(tiers=[(30, 75), (60, 100)])

    def test_any_view_must_be_below_tiers(self):
        with pytest.raises(ValidationError, match="must be below every tier"):
            ProgressSettings(any_view_percentage=50)

    def test_velocity_clamp_rejected(self):
        with pytest.raises(ValidationError, match="must be below"):
            TrendingSettings(velocity_min=3, velocity_max=1)

    def test_engagement_from_environment(self, monkeypatch):
        monkeypatch.setenv("ENGAGEMENT_OVERVIEW_HOURS", "12")
        monkeypatch.setenv("ENGAGEMENT_PERFORMANCE_LIMIT", "5")

        engagement = Settings().engagement

        assert engagement.overview_hours == 12
        assert engagement.performance_limit == 5
        assert engagement.completion_seconds == 30

    def test_engagement_thresholds_ordered(self):
        with pytest.raises(ValidationError, match="engaged <= completion <= conversion"):
            EngagementSettings(engaged_seconds=40, completion_seconds=30)


# ==============================================================================
# load_settings
# ==============================================================================


class TestLoadSettings:
    """Invalid configuration is reported as a ConfigurationError."""

    def test_valid(self):
        assert isinstance(load_settings(), Settings)

    def test_invalid_environment(self, monkeypatch):
        monkeypatch.setenv("SESSION_INACTIVITY_MINUTES", "0")

        with pytest.raises(ConfigurationError, match="Invalid configuration") as exc_info:
            load_settings()

        assert exc_info.value.to_dict()["kind"] == "configuration"


# ==============================================================================
# Derived Values
# ==============================================================================


class TestDerivedValues:
    """Tests for connection strings and paths."""

    def test_postgres_connection_string(self):
        settings = PostgresSettings(host="db", port=6543, user="app", password="pw", database="x")

        assert settings.connection_string == "postgresql://app:pw@db:6543/x?sslmode=prefer"

    def test_valkey_url(self):
        assert ValkeySettings(host="cache").url == "redis://cache:6379/0"
        assert (
            ValkeySettings(host="cache", password="pw", ssl=True, db=2).url
            == "rediss://:pw@cache:6379/2"
        )

    def test_relative_paths_resolve_to_project_root(self):
        settings = StoreSettings(views_file=Path("data/v.csv"))

        assert settings.views_path == get_project_root() / "data/v.csv"

    def test_absolute_paths_kept(self, tmp_path):
        settings = StoreSettings(catalog_file=tmp_path / "catalog.json")

        assert settings.catalog_path == tmp_path / "catalog.json"
