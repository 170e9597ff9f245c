"""Unit tests for UnitGraph — indexing, pruning, ordering, metadata.

Tests cover:
- Duplicate IDs rejected
- Absent dependencies pruned
- Execution order (Kahn, ties broken by ID)
- Transitive after/before metadata
- Optional-only cycles broken, required cycles fatal
- Metadata reset between runs
- Order-independent fingerprint, unaffected by pruning
"""

import logging

import pytest

from clusterloom.core.clusterer.errors import DependencyCycleError, UnitGraphError
from clusterloom.core.clusterer.graph import UnitGraph, units_fingerprint
from clusterloom.core.clusterer.models import ClusterAssignment, UnitMetadata, WorkUnit


# ── Fixtures ──────────────────────────────────────────────────────────────


def _unit(uid, required=(), optional=(), category=None) -> WorkUnit:
    return WorkUnit(
        id=uid,
        required_dependencies=list(required),
        optional_dependencies=list(optional),
        metadata=UnitMetadata(category=category),
    )


# ── Tests: Indexing ───────────────────────────────────────────────────────


class TestIndexing:

    def test_duplicate_ids_raise(self):
        with pytest.raises(UnitGraphError, match="Duplicate"):
            UnitGraph.from_units([_unit("a"), _unit("a")])

    def test_absent_dependencies_are_pruned(self):
        graph = UnitGraph.from_units([_unit("x", required=["ghost", "y"], optional=["phantom"]), _unit("y")])
        assert graph["x"].required_dependencies == ["y"]
        assert graph["x"].optional_dependencies == []

    def test_optional_duplicate_of_required_is_dropped(self):
        graph = UnitGraph.from_units([_unit("x", required=["y"], optional=["y"]), _unit("y")])
        assert graph["x"].optional_dependencies == []

    def test_lookups(self):
        graph = UnitGraph.from_units([_unit("a"), _unit("b", required=["a"])])
        assert "a" in graph
        assert "ghost" not in graph
        assert graph.get("ghost") is None
        assert len(graph) == 2
        assert graph.direct_dependents("a") == ["b"]
        assert graph.position("ghost") == 2


# ── Tests: Execution order ────────────────────────────────────────────────


class TestExecutionOrder:

    def test_ties_broken_by_id(self):
        graph = UnitGraph.from_units([_unit("c"), _unit("a"), _unit("b")])
        assert [u.id for u in graph] == ["a", "b", "c"]

    def test_dependencies_first(self):
        graph = UnitGraph.from_units([
            _unit("a", required=["z"]),
            _unit("b", optional=["a"]),
            _unit("z"),
        ])
        assert [u.id for u in graph] == ["z", "a", "b"]

    def test_sort_ids(self):
        graph = UnitGraph.from_units([_unit("a", required=["z"]), _unit("z")])
        assert graph.sort_ids(["a", "z", "a"]) == ["z", "a"]

    def test_self_dependency_does_not_block(self):
        graph = UnitGraph.from_units([_unit("a", required=["a"]), _unit("b", required=["a"])])
        assert [u.id for u in graph] == ["a", "b"]

    def test_optional_cycle_is_broken(self, caplog):
        with caplog.at_level(logging.WARNING):
            graph = UnitGraph.from_units([
                _unit("a", optional=["b"]),
                _unit("b", required=["a"]),
            ])
        assert [u.id for u in graph] == ["a", "b"]
        assert "Optional dependency cycle" in caplog.text

    def test_required_cycle_raises(self):
        with pytest.raises(DependencyCycleError) as exc:
            UnitGraph.from_units([
                _unit("a", required=["b"]),
                _unit("b", required=["a"]),
                _unit("c"),
            ])
        assert exc.value.unit_ids == ["a", "b"]


# ── Tests: Metadata ───────────────────────────────────────────────────────


class TestMetadata:

    def test_after_and_before_are_transitive(self):
        graph = UnitGraph.from_units([
            _unit("a"),
            _unit("b", required=["a"]),
            _unit("c", optional=["b"]),
        ])
        assert graph["c"].metadata.after == ["a", "b"]
        assert graph["a"].metadata.before == ["b", "c"]
        assert graph["b"].metadata.after == ["a"]
        assert graph["b"].metadata.before == ["c"]

    def test_stale_metadata_is_reset(self):
        unit = _unit("a", category="no_data")
        unit.metadata.assign_cluster("a", ClusterAssignment("Old"))
        graph = UnitGraph.from_units([unit])
        assert graph["a"].metadata.cluster is None
        assert graph["a"].metadata.category == "no_data"
        assert graph.unclustered() == [unit]


# ── Tests: Fingerprint ────────────────────────────────────────────────────


class TestFingerprint:

    def test_independent_of_input_order(self):
        first = [_unit("a"), _unit("b", required=["a"])]
        second = [_unit("b", required=["a"]), _unit("a")]
        assert units_fingerprint(first) == units_fingerprint(second)

    def test_changes_with_dependencies(self):
        before = units_fingerprint([_unit("a"), _unit("b")])
        after = units_fingerprint([_unit("a"), _unit("b", required=["a"])])
        assert before != after

    def test_unchanged_by_pruning(self):
        units = [_unit("a"), _unit("b", required=["a", "ghost"])]
        before = units_fingerprint(units)
        graph = UnitGraph.from_units(units)
        assert graph["b"].required_dependencies == ["a"]
        assert graph.fingerprint() == before

    def test_graph_fingerprint_matches_units(self):
        units = [_unit("a"), _unit("b", required=["a"])]
        graph = UnitGraph.from_units(units)
        assert graph.fingerprint() == units_fingerprint(units)
