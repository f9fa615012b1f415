# ==============================================================================
# Application Configuration
# ==============================================================================
"""
Configuration management using pydantic-settings.

All configuration is loaded from environment variables, with support for
.env files via python-dotenv. Every tunable constant of the aggregation
engines (session gap, duration tiers, trending weights, report limits)
lives here rather than in the engines.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file before any settings are instantiated
load_dotenv()


def _resolve(path: Path) -> Path:
    """Resolve a relative data path against the project root."""
    if path.is_absolute():
        return path
    # Import here to avoid circular imports
    from learnstream.utils.paths import get_project_root

    return get_project_root() / path


class StoreSettings(BaseSettings):
    """Event store backend selection and CSV snapshot locations."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    backend: Literal["csv", "postgresql"] = Field(
        default="csv", description="Event store backend (csv, postgresql)"
    )
    views_file: Path = Field(default=Path("data/views.csv"), description="Content views CSV")
    searches_file: Path = Field(
        default=Path("data/searches.csv"), description="Search events CSV"
    )
    catalog_file: Path = Field(
        default=Path("data/catalog.json"), description="Content catalog JSON"
    )

    @property
    def views_path(self) -> Path:
        return _resolve(self.views_file)

    @property
    def searches_path(self) -> Path:
        return _resolve(self.searches_file)

    @property
    def catalog_path(self) -> Path:
        return _resolve(self.catalog_file)


class PostgresSettings(BaseSettings):
    """PostgreSQL connection settings."""

    model_config = SettingsConfigDict(env_prefix="PG_")

    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="postgres", description="PostgreSQL username")
    password: str = Field(default="", description="PostgreSQL password")
    database: str = Field(default="learnstream", description="Database name")
    schema_name: str = Field(default="learnstream", description="Schema name")
    sslmode: str = Field(default="prefer", description="SSL mode")

    @property
    def connection_string(self) -> str:
        """Build PostgreSQL connection string."""
        return (
            f"postgresql://{self.user}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}?sslmode={self.sslmode}"
        )


class ValkeySettings(BaseSettings):
    """Valkey (Redis-compatible) settings for the event window cache."""

    model_config = SettingsConfigDict(env_prefix="VALKEY_")

    host: str = Field(default="localhost", description="Valkey host")
    port: int = Field(default=6379, description="Valkey port")
    password: Optional[str] = Field(default=None, description="Valkey password")
    db: int = Field(default=0, description="Valkey database number")
    ssl: bool = Field(default=False, description="Use SSL/TLS connection")

    cache_enabled: bool = Field(default=False, description="Cache closed event windows")
    cache_ttl_seconds: int = Field(default=3600, gt=0, description="TTL for cached windows")

    @property
    def url(self) -> str:
        """Build Valkey connection URL."""
        scheme = "rediss" if self.ssl else "redis"
        if self.password:
            return f"{scheme}://:{self.password}@{self.host}:{self.port}/{self.db}"
        return f"{scheme}://{self.host}:{self.port}/{self.db}"


class SessionSettings(BaseSettings):
    """Session reconstruction settings."""

    model_config = SettingsConfigDict(env_prefix="SESSION_")

    inactivity_minutes: int = Field(
        default=30, gt=0, description="Gap that closes an inferred session"
    )


class PathSettings(BaseSettings):
    """Navigation path and transition mining settings."""

    model_config = SettingsConfigDict(env_prefix="PATHS_")

    max_steps: int = Field(default=3, ge=1, description="Path prefix length")
    min_path_length: int = Field(default=2, ge=1, description="Minimum session length")
    completion_threshold_seconds: float = Field(
        default=30, gt=0, description="Final-step duration that counts as completion"
    )
    top_paths: int = Field(default=10, gt=0, description="Paths to report")
    top_transitions: int = Field(default=15, gt=0, description="Transitions to report")
    lookback_days: int = Field(default=7, gt=0, description="Journey window in days")


class TrendingSettings(BaseSettings):
    """Trending score weights and window."""

    model_config = SettingsConfigDict(env_prefix="TRENDING_")

    lookback_hours: int = Field(default=24, gt=0, description="Recent window in hours")
    weight_views: float = Field(default=1.0, ge=0, description="Weight of recent views")
    weight_unique: float = Field(default=1.5, ge=0, description="Weight of unique viewers")
    weight_velocity: float = Field(default=20.0, ge=0, description="Weight of velocity")
    velocity_min: float = Field(default=-1, description="Velocity lower clamp")
    velocity_max: float = Field(default=3, description="Velocity upper clamp")
    direction_threshold: float = Field(
        default=0.1, ge=0, description="Velocity beyond which a trend is up or down"
    )
    limit: int = Field(default=10, gt=0, description="Trending records to report")

    @model_validator(mode="after")
    def _check_clamp(self) -> "TrendingSettings":
        if self.velocity_min >= self.velocity_max:
            raise ValueError(
                f"velocity_min ({self.velocity_min}) must be below "
                f"velocity_max ({self.velocity_max})"
            )
        return self


class SearchQualitySettings(BaseSettings):
    """Search quality report settings."""

    model_config = SettingsConfigDict(env_prefix="SEARCH_")

    lookback_days: int = Field(default=30, gt=0, description="Search window in days")
    popular_limit: int = Field(default=10, gt=0, description="Popular searches to report")
    gap_limit: int = Field(default=20, gt=0, description="Content gaps to report")


class EngagementSettings(BaseSettings):
    """Per-content performance and overview metric settings."""

    model_config = SettingsConfigDict(env_prefix="ENGAGEMENT_")

    performance_lookback_days: int = Field(
        default=30, gt=0, description="Per-content performance window in days"
    )
    performance_limit: int = Field(default=20, gt=0, description="Content items to report")
    change_days: int = Field(default=7, gt=0, description="Window for per-content view change")
    overview_hours: int = Field(default=24, gt=0, description="Overview window in hours")
    return_days: int = Field(default=7, gt=0, description="Window for the return rate")
    engaged_seconds: float = Field(default=10, gt=0, description="View length that engages")
    completion_seconds: float = Field(default=30, gt=0, description="View length that completes")
    conversion_seconds: float = Field(default=60, gt=0, description="View length that converts")

    @model_validator(mode="after")
    def _check_thresholds(self) -> "EngagementSettings":
        if not self.engaged_seconds <= self.completion_seconds <= self.conversion_seconds:
            raise ValueError(
                "Engagement thresholds must satisfy engaged <= completion <= conversion"
            )
        return self


class ProgressSettings(BaseSettings):
    """
    Progress tracking settings.

    ``tiers`` accepts JSON from the environment, e.g.
    ``PROGRESS_TIERS='[[60, 100], [30, 75], [15, 50]]'``.
    """

    model_config = SettingsConfigDict(env_prefix="PROGRESS_")

    tiers: list[tuple[float, int]] = Field(
        default=[(60, 100), (30, 75), (15, 50)],
        description="(minimum seconds, percentage) pairs, descending",
    )
    any_view_percentage: int = Field(default=25, ge=0, description="Percentage for any view")
    completion_percentage: int = Field(
        default=75, gt=0, le=100, description="Percentage that counts as completed"
    )
    lookback_days: int = Field(default=365, gt=0, description="History window in days")
    recommendation_limit: int = Field(default=12, gt=0, description="Recommendations to report")

    @field_validator("tiers", mode="before")
    @classmethod
    def _parse_tiers(cls, value):
        if isinstance(value, str):
            return json.loads(value)
        return value

    @model_validator(mode="after")
    def _check_tiers(self) -> "ProgressSettings":
        previous_seconds, previous_pct = float("inf"), 101
        for seconds, pct in self.tiers:
            if not (0 < seconds < previous_seconds and 0 < pct < previous_pct):
                raise ValueError(f"Progress tiers must be strictly descending, got {self.tiers}")
            previous_seconds, previous_pct = seconds, pct
        if self.any_view_percentage >= previous_pct:
            raise ValueError(
                f"any_view_percentage ({self.any_view_percentage}) must be below every tier"
            )
        return self


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    # Nested settings
    store: StoreSettings = Field(default_factory=StoreSettings)
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    valkey: ValkeySettings = Field(default_factory=ValkeySettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    paths: PathSettings = Field(default_factory=PathSettings)
    trending: TrendingSettings = Field(default_factory=TrendingSettings)
    search: SearchQualitySettings = Field(default_factory=SearchQualitySettings)
    engagement: EngagementSettings = Field(default_factory=EngagementSettings)
    progress: ProgressSettings = Field(default_factory=ProgressSettings)

    # General settings
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for subsequent calls.

    Raises:
        pydantic.ValidationError: If an environment value is invalid
    """
    return Settings()
