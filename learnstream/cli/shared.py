# ==============================================================================
# Shared Utilities for CLI Commands
# ==============================================================================
"""
Shared utilities, constants, and helper functions used across CLI command modules.

This module provides:
- ANSI color codes and box-drawing characters
- Box drawing helpers for formatted output
- Publisher construction and error reporting shared by the report commands
"""

import json
import re
from datetime import datetime
from typing import Optional

import typer

from learnstream.core.errors import AggregationError
from learnstream.core.models import ensure_utc

# ==============================================================================
# Constants
# ==============================================================================

# Box drawing width (unified for all commands)
BOX_WIDTH = 68


# ==============================================================================
# ANSI Colors and Box Drawing
# ==============================================================================


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    # Colors
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    # Bright colors
    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_CYAN = "\033[96m"


class Box:
    """Unicode box-drawing characters."""

    H = "─"  # horizontal
    V = "│"  # vertical
    TL = "┌"  # top-left
    TR = "┐"  # top-right
    BL = "└"  # bottom-left
    BR = "┘"  # bottom-right


class Icons:
    """Status icons using Unicode symbols."""

    CHECK = "✓"
    CROSS = "✗"
    WARN = "!"
    LOCK = "■"
    UP = "↑"
    DOWN = "↓"
    STABLE = "→"


# Module-level aliases for convenience
C, B, I = Colors, Box, Icons


# ==============================================================================
# Box Drawing Helpers
# ==============================================================================

# Regex pattern for stripping ANSI escape codes
_ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*m")


def _visible_len(s: str) -> int:
    """Calculate visible length of string, ignoring ANSI escape codes."""
    return len(_ANSI_ESCAPE_PATTERN.sub("", s))


def _box_header(title: str, width: int = BOX_WIDTH) -> str:
    """Create a single-line box header."""
    inner_width = width - 2
    title_padded = f" {title} "
    left_bar = (inner_width - len(title_padded)) // 2
    right_bar = inner_width - left_bar - len(title_padded)
    return (
        f"{C.CYAN}{B.TL}{B.H * left_bar}{C.BOLD}{C.WHITE}{title_padded}"
        f"{C.RESET}{C.CYAN}{B.H * right_bar}{B.TR}{C.RESET}"
    )


def _box_line(content: str, width: int = BOX_WIDTH) -> str:
    """Create a line inside the box with proper padding to right border."""
    inner_width = width - 2
    padding = max(0, inner_width - _visible_len(content))
    return f"{C.CYAN}{B.V}{C.RESET}{content}{' ' * padding}{C.CYAN}{B.V}{C.RESET}"


def _empty_line(width: int = BOX_WIDTH) -> str:
    """Create an empty line inside the box."""
    return f"{C.CYAN}{B.V}{' ' * (width - 2)}{B.V}{C.RESET}"


def _box_bottom(width: int = BOX_WIDTH) -> str:
    """Create a box bottom border."""
    return f"{C.CYAN}{B.BL}{B.H * (width - 2)}{B.BR}{C.RESET}"


def _progress_bar(percentage: int, width: int = 20) -> str:
    """Render a percentage as a colored bar."""
    filled = round(percentage / 100 * width)
    color = C.BRIGHT_GREEN if percentage >= 75 else C.BRIGHT_YELLOW if percentage else C.DIM
    return f"{color}{'█' * filled}{C.DIM}{'░' * (width - filled)}{C.RESET}"


# ==============================================================================
# Report Helpers
# ==============================================================================


def parse_as_of(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an --as-of option (ISO 8601). Naive values are taken as UTC.

    Raises:
        typer.BadParameter: If the value is not a valid timestamp
    """
    if value is None:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(value))
    except ValueError as e:
        raise typer.BadParameter(f"Invalid --as-of timestamp: '{value}'") from e


def build_publisher():
    """
    Build an AggregatePublisher over the configured store and catalog.

    Raises:
        ConfigurationError: If the settings are invalid
    """
    from learnstream.infrastructure import get_catalog_repository, get_event_store
    from learnstream.publisher import AggregatePublisher, load_settings

    settings = load_settings()
    return AggregatePublisher(
        get_event_store(settings),
        get_catalog_repository(settings),
        settings=settings,
    )


def fail(error: AggregationError, json_output: bool) -> None:
    """
    Report an aggregation failure and exit with status 1.

    Raises:
        typer.Exit: Always
    """
    if json_output:
        print(json.dumps(error.to_dict()))
    else:
        print(f"\n{C.BRIGHT_RED}{I.CROSS} {error}{C.RESET}")
        if error.skipped_records:
            print(f"  {C.DIM}{error.skipped_records} malformed record(s) skipped{C.RESET}")
        print()
    raise typer.Exit(1)
