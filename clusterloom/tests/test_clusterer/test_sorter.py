"""Unit tests for GroupOrderSorter — weighting, correction, final order.

Tests cover:
- Natural, case-insensitive label ordering
- Alphabetical sorting below the threshold (dependencies still respected)
- Impact bands: more dependents never sort later
- Very-high-impact refinement and leaf lifting
- Correction of under-weighted very-high-impact blockers
- Lift-exempt groups
- Group-level cycles broken with a warning
"""

import logging

from clusterloom.core.clusterer.models import Group, generate_group_id
from clusterloom.core.clusterer.sorter import GroupOrderSorter, dependency_order, natural_key


# ── Fixtures ──────────────────────────────────────────────────────────────


def _group(label, deps=(), data_members=None) -> Group:
    group = Group.for_label(label)
    group.dependencies = {generate_group_id(d): [f"{d} unit"] for d in deps}
    group.members = list(data_members or [f"{label} unit"])
    group.data_members = list(group.members)
    return group


def _labels(groups):
    return [g.label for g in groups]


def _weights_by_label(sorter, groups):
    weights = sorter.compute_weights(groups)
    return {g.label: weights[g.id] for g in groups}


# ── Tests: Natural ordering ───────────────────────────────────────────────


class TestNaturalKey:

    def test_numbers_compare_numerically(self):
        labels = ["Group 10", "group 2", "Group 1"]
        assert sorted(labels, key=natural_key) == ["Group 1", "group 2", "Group 10"]

    def test_case_insensitive(self):
        assert sorted(["b", "A", "C"], key=natural_key) == ["A", "b", "C"]


# ── Tests: Alphabetical mode ──────────────────────────────────────────────


class TestAlphabetical:

    def test_below_threshold_sorts_by_label(self):
        groups = [_group("c10"), _group("b"), _group("c9"), _group("A")]
        assert _labels(GroupOrderSorter().sort(groups)) == ["A", "b", "c9", "c10"]

    def test_dependencies_still_respected(self):
        groups = [_group("A", deps=["b"]), _group("b"), _group("c")]
        assert _labels(GroupOrderSorter().sort(groups)) == ["b", "A", "c"]

    def test_threshold_is_configurable(self):
        groups = [_group("Hub"), _group("a", deps=["Hub"])]
        sorter = GroupOrderSorter(alphabetical_threshold=0)
        assert _labels(sorter.sort(groups)) == ["Hub", "a"]


# ── Tests: Weighting ──────────────────────────────────────────────────────


class TestWeighting:

    def _hubs(self):
        """Hubs with 50, 5, 1 and 0 dependents, and 50 leaves."""
        groups = [_group("Hub 0"), _group("Hub 1"), _group("Hub 5"), _group("Hub 50")]
        for i in range(50):
            deps = ["Hub 50"]
            if i < 5:
                deps.append("Hub 5")
            if i < 1:
                deps.append("Hub 1")
            groups.append(_group(f"Leaf {i:02d}", deps=deps))
        return groups

    def test_more_dependents_weigh_more(self):
        weights = _weights_by_label(GroupOrderSorter(), self._hubs())
        assert weights["Hub 50"] > weights["Hub 5"] > weights["Hub 1"] > weights["Hub 0"]
        assert weights["Hub 0"] == 0
        assert weights["Hub 50"] == 50 * 10000

    def test_leaves_are_lifted_below_first_dependency(self):
        weights = _weights_by_label(GroupOrderSorter(), self._hubs())
        assert weights["Leaf 07"] == weights["Hub 50"] - 1

    def test_heavier_groups_come_first(self):
        order = _labels(GroupOrderSorter().sort(self._hubs()))
        assert order[0] == "Hub 50"
        assert order.index("Hub 5") < order.index("Hub 1") < order.index("Hub 0")
        assert order[-1] == "Hub 0"

    def test_hub_needed_by_high_impact_group(self):
        # Hub 5 has 5 dependents; one of them, Mid, is depended upon itself.
        groups = [_group("Hub 0"), _group("Hub 1"), _group("Hub 5"), _group("Mid", deps=["Hub 5"])]
        groups += [_group(f"Hub 5 leaf {i}", deps=["Hub 5"]) for i in range(1, 5)]
        groups += [_group(f"Mid leaf {i}", deps=["Mid"]) for i in range(1, 4)]
        groups.append(_group("Hub 1 leaf", deps=["Hub 1"]))
        sorter = GroupOrderSorter()
        weights = _weights_by_label(sorter, groups)
        assert weights["Hub 5"] == (5 + 1) * 100000
        assert weights["Mid"] == 3 * 10000
        assert weights["Hub 1"] == 1 * 10000
        assert weights["Hub 0"] == 0
        assert weights["Hub 5 leaf 1"] == weights["Hub 5"] - 1
        assert weights["Mid leaf 1"] == weights["Mid"] - 1
        order = _labels(sorter.sort(groups))
        assert order[0] == "Hub 5"
        assert order.index("Hub 5") < order.index("Mid") < order.index("Hub 1") < order.index("Hub 0")
        assert order[-1] == "Hub 0"

    def test_very_high_impact_groups(self):
        groups = [
            _group("Core"),
            _group("Mid", deps=["Core"]),
            _group("Mid 2", deps=["Core"]),
        ] + [_group(f"Leaf {i}", deps=["Mid"]) for i in range(1, 9)]
        sorter = GroupOrderSorter()
        weights = _weights_by_label(sorter, groups)
        # Core: 2 dependents, 1 of them high-impact.
        assert weights["Core"] == 3 * 100000
        assert weights["Mid"] == 8 * 10000
        assert weights["Mid 2"] == weights["Core"] - 1
        assert weights["Leaf 1"] == weights["Mid"] - 1
        assert _labels(sorter.sort(groups))[:3] == ["Core", "Mid 2", "Mid"]

    def test_correction_pulls_up_blocker(self, caplog):
        groups = [
            _group("X"),
            _group("Y"),
            _group("P", deps=["X"]),
            _group("Q", deps=["Y"]),
            _group("R1", deps=["P"]),
            _group("R2", deps=["Q"]),
            _group("L", deps=["X", "Y"]),
            _group("F1", deps=["X"]),
            _group("F2", deps=["X"]),
            _group("F3", deps=["X"]),
        ]
        sorter = GroupOrderSorter()
        with caplog.at_level(logging.WARNING):
            weights = _weights_by_label(sorter, groups)
        assert weights["X"] == 600000
        assert weights["L"] == 599999
        assert weights["Y"] == 600000 + 100
        assert "pulling it up" in caplog.text

        order = _labels(sorter.sort(groups))
        assert order[:2] == ["Y", "X"]
        assert order.index("Y") < order.index("L")
        assert order.index("Q") < order.index("R2")

    def test_exempt_groups_are_not_lift_targets(self):
        groups = [
            _group("Language settings"),
            _group("Hub"),
            _group("Other hub"),
        ] + [_group(f"Leaf {i}", deps=["Language settings", "Hub"]) for i in range(8)]
        groups.append(_group("Solo", deps=["Language settings", "Other hub"]))
        weights = _weights_by_label(GroupOrderSorter(), groups)
        assert weights["Leaf 3"] == weights["Hub"] - 1
        assert weights["Solo"] == weights["Other hub"] - 1

    def test_text_format_group_is_exempt(self):
        groups = [
            _group("Text formats", data_members=["d7_filter_format"]),
            _group("Hub"),
        ] + [_group(f"Leaf {i}", deps=["Text formats", "Hub"]) for i in range(8)]
        weights = _weights_by_label(GroupOrderSorter(), groups)
        assert weights["Leaf 0"] == weights["Hub"] - 1


# ── Tests: Dependency order ───────────────────────────────────────────────


class TestDependencyOrder:

    def test_dependency_never_follows_dependent(self):
        # Ranked so that the dependent comes first.
        ranked = [_group("A", deps=["B"]), _group("B"), _group("C")]
        assert _labels(dependency_order(ranked)) == ["B", "A", "C"]

    def test_cycle_is_broken_with_warning(self, caplog):
        ranked = [_group("A", deps=["B"]), _group("B", deps=["A"]), _group("C")]
        with caplog.at_level(logging.WARNING):
            order = _labels(dependency_order(ranked))
        assert order == ["C", "A", "B"]
        assert "cycle" in caplog.text

    def test_unknown_dependencies_ignored(self):
        ranked = [_group("A", deps=["Missing"]), _group("B")]
        assert _labels(dependency_order(ranked)) == ["A", "B"]
