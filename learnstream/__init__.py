# ==============================================================================
# learnstream
# ==============================================================================
"""Behavioral analytics and personalization aggregation engine."""

__version__ = "0.1.0"
