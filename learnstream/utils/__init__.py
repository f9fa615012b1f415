# ==============================================================================
# Utilities
# ==============================================================================
"""Configuration, retry policies, paths and database helpers."""

from learnstream.utils.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
