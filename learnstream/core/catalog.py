# ==============================================================================
# Content Catalog and Prerequisite Graph
# ==============================================================================
"""
Read-only reference data about the content library.

The catalog is owned by an external content-management system. The engine
only needs each item's slug, name, category and prerequisite slugs.

Prerequisites must form a DAG. The catalog is validated once, at load time:
cycles, unknown prerequisites and duplicate slugs raise ConfigurationError,
so nothing downstream ever has to guard against looping.
"""

import heapq
import json
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from learnstream.core.errors import ConfigurationError
from learnstream.core.models import UNCATEGORIZED

logger = logging.getLogger(__name__)


class ContentNode(BaseModel):
    """One content item in the catalog."""

    model_config = {"frozen": True}

    slug: str = Field(..., min_length=1)
    name: str = ""
    category: str = UNCATEGORIZED
    prerequisites: tuple[str, ...] = ()
    order_index: int = 0

    @property
    def display_name(self) -> str:
        return self.name or self.slug


def _find_cycle(graph: dict[str, tuple[str, ...]], remaining: set[str]) -> list[str]:
    """Return one cycle among ``remaining`` nodes as a slug list."""
    start = min(remaining)
    path: list[str] = []
    seen: dict[str, int] = {}
    node = start
    # Every remaining node has at least one remaining prerequisite
    while node not in seen:
        seen[node] = len(path)
        path.append(node)
        node = min(p for p in graph[node] if p in remaining)
    return path[seen[node] :] + [node]


class ContentCatalog:
    """
    Validated content catalog with a topological order over prerequisites.

    Args:
        nodes: Content nodes; slugs must be unique

    Raises:
        ConfigurationError: On duplicate slugs, unknown prerequisites or a
            prerequisite cycle
    """

    def __init__(self, nodes: list[ContentNode]):
        self._nodes: dict[str, ContentNode] = {}
        for node in nodes:
            if node.slug in self._nodes:
                raise ConfigurationError(f"Duplicate content slug in catalog: {node.slug}")
            self._nodes[node.slug] = node

        for node in nodes:
            unknown = [p for p in node.prerequisites if p not in self._nodes]
            if unknown:
                raise ConfigurationError(
                    f"Content '{node.slug}' requires unknown content: {', '.join(sorted(unknown))}"
                )

        self._order = self._topological_order()
        logger.debug("Loaded content catalog with %d item(s)", len(self._nodes))

    def _topological_order(self) -> list[str]:
        """Kahn's algorithm, smallest slug first for a deterministic order."""
        graph = {slug: node.prerequisites for slug, node in self._nodes.items()}
        pending = {slug: len(set(prereqs)) for slug, prereqs in graph.items()}
        dependants: dict[str, list[str]] = {slug: [] for slug in graph}
        for slug, prereqs in graph.items():
            for prereq in set(prereqs):
                dependants[prereq].append(slug)

        ready = [slug for slug, count in pending.items() if count == 0]
        heapq.heapify(ready)
        order: list[str] = []
        while ready:
            slug = heapq.heappop(ready)
            order.append(slug)
            for dependant in dependants[slug]:
                pending[dependant] -= 1
                if pending[dependant] == 0:
                    heapq.heappush(ready, dependant)

        if len(order) != len(graph):
            remaining = set(graph) - set(order)
            cycle = _find_cycle(graph, remaining)
            raise ConfigurationError(
                f"Cyclic prerequisite graph: {' -> '.join(cycle)}"
            )
        return order

    # ==========================================================================
    # Loading
    # ==========================================================================

    @classmethod
    def from_records(cls, records: list[dict]) -> "ContentCatalog":
        """Build a catalog from plain dicts (JSON or database rows)."""
        try:
            nodes = [ContentNode.model_validate(record) for record in records]
        except ValidationError as e:
            raise ConfigurationError(f"Invalid catalog entry: {e.errors()[0]['msg']}") from e
        return cls(nodes)

    @classmethod
    def from_json_file(cls, path: Path) -> "ContentCatalog":
        """
        Load a catalog from a JSON file.

        The file holds either a list of nodes or ``{"content": [...]}``.
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read content catalog {path}: {e}") from e
        if isinstance(data, dict):
            data = data.get("content", [])
        if not isinstance(data, list):
            raise ConfigurationError(f"Content catalog {path} must hold a list of content")
        return cls.from_records(data)

    # ==========================================================================
    # Queries
    # ==========================================================================

    def __contains__(self, slug: str) -> bool:
        return slug in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self):
        return iter(self._nodes[slug] for slug in sorted(self._nodes))

    def get(self, slug: str) -> ContentNode | None:
        return self._nodes.get(slug)

    @property
    def topological_order(self) -> list[str]:
        """Slugs ordered so that every prerequisite precedes its dependants."""
        return list(self._order)

    @property
    def categories(self) -> list[str]:
        return sorted({node.category for node in self._nodes.values()})

    def in_category(self, category: str) -> list[ContentNode]:
        """Content of one category ordered by order_index, then slug."""
        nodes = [n for n in self._nodes.values() if n.category == category]
        return sorted(nodes, key=lambda n: (n.order_index, n.slug))
