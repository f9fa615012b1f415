# ==============================================================================
# CLI Commands Module
# ==============================================================================
"""
CLI commands for learnstream.

Commands are organized into separate modules for maintainability:
- shared.py: Common utilities, constants, and helpers
- analytics.py: Report commands (trending, journeys, search quality, users)
- config.py: Configuration display
- db.py: Database schema management
"""

from learnstream.cli.shared import (
    # Constants
    BOX_WIDTH,
    # Classes
    Box,
    Colors,
    Icons,
    # Aliases
    B,
    C,
    I,
    # Report helpers
    build_publisher,
    fail,
    parse_as_of,
)

__all__ = [
    "BOX_WIDTH",
    "Box",
    "Colors",
    "Icons",
    "B",
    "C",
    "I",
    "build_publisher",
    "fail",
    "parse_as_of",
]
