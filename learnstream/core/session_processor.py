# ==============================================================================
# Session Reconstructor - Pure Domain Logic
# ==============================================================================
"""
Pure session reconstruction logic with no external dependencies.

This module groups a user's content views into sessions:
- Explicit session ids are honoured as-is
- Otherwise a new session starts after an inactivity gap or a UTC day change
- Identical timestamps keep ingestion order, so output is deterministic

All methods work on already-fetched ViewEvent lists - no database, cache, or
framework dependencies.
"""

from collections import defaultdict
from datetime import timedelta

from learnstream.core.errors import ConfigurationError
from learnstream.core.models import Session, ViewEvent

ANONYMOUS = "anonymous"


def _session_order(session: Session) -> tuple:
    return (session.start, session.session_key, session.user_id or "")


class SessionReconstructor:
    """
    Groups view events into sessions.

    Events carrying a ``session_id`` are grouped strictly by that id. Events
    without one are split whenever the gap to the previous such event
    exceeds the inactivity timeout, or the calendar day (UTC) changes.
    Inferred session keys look like ``"{user}_{YYYY-MM-DD}_{n}"``.
    """

    def __init__(self, timeout_minutes: int = 30):
        """
        Initialize the reconstructor.

        Args:
            timeout_minutes: Inactivity timeout in minutes. A new session
                            starts if the gap between events exceeds it.
        """
        if timeout_minutes <= 0:
            raise ConfigurationError(
                f"Session inactivity timeout must be positive, got {timeout_minutes}"
            )
        self.timeout = timedelta(minutes=timeout_minutes)

    def is_session_expired(self, last: ViewEvent | None, event: ViewEvent) -> bool:
        """
        Check whether ``event`` starts a new inferred session.

        Args:
            last: Previous event of the current inferred session, or None
            event: The next event in timestamp order

        Returns:
            True if there is no current session, the inactivity gap is
            exceeded, or the UTC date differs
        """
        if last is None:
            return True
        if event.timestamp.date() != last.timestamp.date():
            return True
        return event.timestamp - last.timestamp > self.timeout

    def reconstruct(self, events: list[ViewEvent]) -> list[Session]:
        """
        Reconstruct sessions for a single user's events.

        Args:
            events: One user's view events, in any order

        Returns:
            Sessions ordered by start time, then session key
        """
        if not events:
            return []

        ordered = sorted(events, key=lambda e: e.order_key)
        user_id = ordered[0].user_id
        user_key = user_id if user_id is not None else ANONYMOUS

        explicit: dict[str, list[ViewEvent]] = defaultdict(list)
        inferred: list[list[ViewEvent]] = []
        last: ViewEvent | None = None

        for event in ordered:
            if event.session_id is not None:
                explicit[event.session_id].append(event)
                continue
            if self.is_session_expired(last, event):
                inferred.append([])
            inferred[-1].append(event)
            last = event

        sessions = [
            Session(session_key=session_id, user_id=user_id, events=group)
            for session_id, group in explicit.items()
        ]

        day_counts: dict[str, int] = defaultdict(int)
        for group in inferred:
            day = group[0].timestamp.date().isoformat()
            day_counts[day] += 1
            key = f"{user_key}_{day}_{day_counts[day]}"
            sessions.append(Session(session_key=key, user_id=user_id, events=group))

        sessions.sort(key=_session_order)
        return sessions

    def reconstruct_all(self, events: list[ViewEvent]) -> list[Session]:
        """
        Reconstruct sessions across many users.

        Events are grouped by user first so that a session never mixes
        users. Anonymous events form one stream.

        Args:
            events: View events for any number of users, in any order

        Returns:
            All sessions ordered by start time, then session key
        """
        by_user: dict[str | None, list[ViewEvent]] = defaultdict(list)
        for event in events:
            by_user[event.user_id].append(event)

        sessions: list[Session] = []
        for user_events in by_user.values():
            sessions.extend(self.reconstruct(user_events))

        sessions.sort(key=_session_order)
        return sessions
