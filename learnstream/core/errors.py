# ==============================================================================
# Aggregation Errors
# ==============================================================================
"""
Error taxonomy for the aggregation engine.

- MalformedRecord: one event could not be parsed. Absorbed and counted.
- ConfigurationError: the catalog or thresholds are invalid. Fatal.
- UpstreamUnavailable: the event store could not be read. Fatal for the pass.

Empty input is not an error and has no exception type.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Machine-readable error kind surfaced to the presentation layer."""

    MALFORMED_RECORD = "malformed_record"
    CONFIGURATION = "configuration"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"


class AggregationError(Exception):
    """Base class for all engine errors.

    Carries the error kind and how many records had been skipped when the
    error was raised, so callers can tell "no data" apart from "failed".
    """

    kind: ErrorKind

    def __init__(self, message: str, skipped_records: int = 0):
        super().__init__(message)
        self.skipped_records = skipped_records

    def to_dict(self) -> dict:
        """Serialize for JSON output."""
        return {
            "error": str(self),
            "kind": self.kind.value,
            "skipped_records": self.skipped_records,
        }


class MalformedRecord(AggregationError):
    """A single raw record is unparsable or missing a required field."""

    kind = ErrorKind.MALFORMED_RECORD


class ConfigurationError(AggregationError):
    """Invalid catalog (e.g. cyclic prerequisites) or threshold configuration."""

    kind = ErrorKind.CONFIGURATION


class UpstreamUnavailable(AggregationError):
    """The event store could not be read; the whole pass must be retried."""

    kind = ErrorKind.UPSTREAM_UNAVAILABLE
