# ==============================================================================
# Tests for the Content Catalog
# ==============================================================================
"""
Unit tests for learnstream.core.catalog.

Tests cover:
- Rejection of cyclic, self-referencing and unknown prerequisites
- Rejection of duplicate slugs
- Deterministic topological order
- Loading from records and JSON files (list and wrapped forms)
"""

import json

import pytest

from learnstream.core.catalog import ContentCatalog, ContentNode
from learnstream.core.errors import ConfigurationError

# ==============================================================================
# Validation
# ==============================================================================


class TestValidation:
    """Invalid catalogs fail at load time."""

    def test_two_node_cycle_rejected(self):
        nodes = [
            ContentNode(slug="A", prerequisites=("B",)),
            ContentNode(slug="B", prerequisites=("A",)),
        ]

        with pytest.raises(ConfigurationError, match="Cyclic prerequisite graph: A -> B -> A"):
            ContentCatalog(nodes)

    def test_self_reference_rejected(self):
        with pytest.raises(ConfigurationError, match="Cyclic"):
            ContentCatalog([ContentNode(slug="A", prerequisites=("A",))])

    def test_cycle_behind_valid_nodes_rejected(self):
        nodes = [
            ContentNode(slug="root"),
            ContentNode(slug="x", prerequisites=("root", "z")),
            ContentNode(slug="y", prerequisites=("x",)),
            ContentNode(slug="z", prerequisites=("y",)),
        ]

        with pytest.raises(ConfigurationError, match="x -> z -> y -> x"):
            ContentCatalog(nodes)

    def test_unknown_prerequisite_rejected(self):
        with pytest.raises(ConfigurationError, match="unknown content: missing"):
            ContentCatalog([ContentNode(slug="A", prerequisites=("missing",))])

    def test_duplicate_slug_rejected(self):
        with pytest.raises(ConfigurationError, match="Duplicate"):
            ContentCatalog([ContentNode(slug="A"), ContentNode(slug="A")])

    def test_empty_catalog(self):
        catalog = ContentCatalog([])

        assert len(catalog) == 0
        assert catalog.topological_order == []


# ==============================================================================
# Queries
# ==============================================================================


class TestQueries:
    """Tests for ordering and lookups."""

    def test_topological_order(self, catalog):
        order = catalog.topological_order

        assert order == ["first-principles", "intro", "inversion", "stoicism", "ethics"]
        for slug in order:
            for prereq in catalog.get(slug).prerequisites:
                assert order.index(prereq) < order.index(slug)

    def test_iteration_sorted_by_slug(self, catalog):
        assert [n.slug for n in catalog] == sorted(n.slug for n in catalog)

    def test_categories_and_membership(self, catalog):
        assert catalog.categories == ["philosophy", "thinking"]
        assert [n.slug for n in catalog.in_category("philosophy")] == [
            "intro",
            "stoicism",
            "ethics",
        ]
        assert "ethics" in catalog
        assert "missing" not in catalog
        assert catalog.get("missing") is None

    def test_display_name_falls_back_to_slug(self):
        assert ContentNode(slug="a").display_name == "a"


# ==============================================================================
# Loading
# ==============================================================================


class TestLoading:
    """Tests for building catalogs from plain data."""

    def test_from_records(self):
        catalog = ContentCatalog.from_records(
            [
                {"slug": "a", "name": "Alpha", "category": "x"},
                {"slug": "b", "prerequisites": ["a"]},
            ]
        )

        assert catalog.get("b").prerequisites == ("a",)
        assert catalog.get("b").category == "uncategorized"

    def test_invalid_record(self):
        with pytest.raises(ConfigurationError, match="Invalid catalog entry"):
            ContentCatalog.from_records([{"name": "no slug"}])

    @pytest.mark.parametrize("wrapped", [True, False])
    def test_from_json_file(self, tmp_path, wrapped):
        content = [{"slug": "a"}, {"slug": "b", "prerequisites": ["a"]}]
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"content": content} if wrapped else content))

        catalog = ContentCatalog.from_json_file(path)

        assert catalog.topological_order == ["a", "b"]

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError, match="Cannot read"):
            ContentCatalog.from_json_file(path)

    def test_json_must_hold_list(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"content": "nope"}))

        with pytest.raises(ConfigurationError, match="must hold a list"):
            ContentCatalog.from_json_file(path)
