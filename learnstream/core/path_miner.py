# ==============================================================================
# Path & Transition Miner - Pure Domain Logic
# ==============================================================================
"""
Navigation statistics derived from reconstructed sessions.

- Top navigation paths (ordered content prefixes of each session)
- Category transitions between adjacent views
- Entry source distribution per session
- Category -> content view counts (treemap data)

Every function is pure relative to its input sessions.
"""

from collections import defaultdict

from learnstream.core.errors import ConfigurationError
from learnstream.core.models import (
    PATH_SEPARATOR,
    CategoryFlow,
    NavigationPath,
    Session,
    SourceShare,
    TransitionEdge,
)


class PathMiner:
    """
    Mines navigation paths and category transitions from sessions.

    Args:
        max_steps: Number of leading content slugs that form a path key
        min_path_length: Sessions shorter than this are ignored for paths
        completion_threshold_seconds: A session is "completed" when its final
            view lasted strictly longer than this
        top_paths: Number of paths to keep
        top_transitions: Number of transitions to keep
    """

    def __init__(
        self,
        max_steps: int = 3,
        min_path_length: int = 2,
        completion_threshold_seconds: float = 30,
        top_paths: int = 10,
        top_transitions: int = 15,
    ):
        if max_steps < 1 or min_path_length < 1:
            raise ConfigurationError("max_steps and min_path_length must be at least 1")
        if top_paths < 0 or top_transitions < 0:
            raise ConfigurationError("top_paths and top_transitions must not be negative")
        self.max_steps = max_steps
        self.min_path_length = min_path_length
        self.completion_threshold_seconds = completion_threshold_seconds
        self.top_paths = top_paths
        self.top_transitions = top_transitions

    def mine_paths(self, sessions: list[Session]) -> list[NavigationPath]:
        """
        Rank the most common session prefixes.

        Args:
            sessions: Reconstructed sessions

        Returns:
            Paths sorted by occurrence count descending, then path key
        """
        counts: dict[str, int] = defaultdict(int)
        durations: dict[str, float] = defaultdict(float)
        completed: dict[str, int] = defaultdict(int)
        steps: dict[str, list[str]] = {}

        for session in sessions:
            if session.length < self.min_path_length:
                continue
            prefix = session.slugs[: self.max_steps]
            key = PATH_SEPARATOR.join(prefix)
            steps[key] = prefix
            counts[key] += 1
            durations[key] += session.total_duration_seconds
            if session.events[-1].duration > self.completion_threshold_seconds:
                completed[key] += 1

        ranked = sorted(counts, key=lambda k: (-counts[k], k))[: self.top_paths]
        return [
            NavigationPath(
                path_key=key,
                steps=steps[key],
                occurrence_count=counts[key],
                average_total_duration_seconds=round(durations[key] / counts[key], 2),
                completion_rate=round(completed[key] / counts[key], 4),
            )
            for key in ranked
        ]

    def mine_transitions(self, sessions: list[Session]) -> list[TransitionEdge]:
        """
        Count moves between different categories on adjacent views.

        Args:
            sessions: Reconstructed sessions

        Returns:
            Transitions sorted by count descending, then (from, to)
        """
        counts: dict[tuple[str, str], int] = defaultdict(int)
        for session in sessions:
            categories = session.categories
            for source, target in zip(categories, categories[1:]):
                if source != target:
                    counts[(source, target)] += 1

        ranked = sorted(counts, key=lambda pair: (-counts[pair], pair))[: self.top_transitions]
        return [
            TransitionEdge(from_category=source, to_category=target, count=counts[(source, target)])
            for source, target in ranked
        ]

    @staticmethod
    def source_distribution(sessions: list[Session]) -> list[SourceShare]:
        """Share of sessions by the source channel of their first view."""
        counts: dict = defaultdict(int)
        for session in sessions:
            counts[session.events[0].source_channel] += 1

        total = sum(counts.values())
        ranked = sorted(counts, key=lambda source: (-counts[source], source.value))
        return [
            SourceShare(
                source=source,
                count=counts[source],
                percentage=round(counts[source] / total * 100),
            )
            for source in ranked
        ]

    @staticmethod
    def category_flow(sessions: list[Session]) -> list[CategoryFlow]:
        """View counts grouped by category, then by content name."""
        tree: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        for session in sessions:
            for event in session.events:
                tree[event.category][event.display_name] += 1

        flows = [
            CategoryFlow(
                category=category,
                total=sum(children.values()),
                children=dict(sorted(children.items())),
            )
            for category, children in tree.items()
        ]
        flows.sort(key=lambda f: (-f.total, f.category))
        return flows
