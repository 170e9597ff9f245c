"""Group execution-order sorter.

Turns assembled groups into one linear, deterministic sequence that a
human can follow. The weighting is about readability; the final
topological pass is about correctness.

1. Weight every group by how many other groups depend on it
2. High-impact (depended upon) groups get banded weights: groups that
   other high-impact groups depend on are multiplied by the very-high
   multiplier, the rest by the high multiplier
3. Leaf groups are lifted to just below their first non-exempt
   dependency, so related groups end up next to each other
4. Correction: a lifted group's very-high-impact dependencies must
   outweigh it; under-weighted ones are pulled up
5. Rank by descending weight, then natural label order, and emit with
   Kahn's algorithm so a dependency never follows its dependent

Below the alphabetical threshold steps 1-4 are skipped.
"""

import heapq
import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .constants import LABEL_LANGUAGE_SETTINGS, TEXT_FORMAT_UNIT_ID
from .models import Group

logger = logging.getLogger(__name__)

DEFAULT_VERY_HIGH_IMPACT_MULTIPLIER = 100000
DEFAULT_HIGH_IMPACT_MULTIPLIER = 10000
DEFAULT_ALPHABETICAL_THRESHOLD = 10
DEFAULT_CORRECTION_OFFSET = 100
DEFAULT_LIFT_EXEMPT_LABELS = (LABEL_LANGUAGE_SETTINGS,)

_DIGITS = re.compile(r"(\d+)")


def natural_key(label: str) -> Tuple[Tuple, str]:
    """Case-insensitive natural ordering: "Group 2" before "group 10"."""
    parts = _DIGITS.split(label.casefold())
    # re.split with a capture group alternates text and digit runs.
    key = tuple(int(p) if i % 2 else p for i, p in enumerate(parts))
    return key, label


class GroupOrderSorter:
    """Weighted, dependency-respecting ordering of groups.

    Attributes:
        very_high_impact_multiplier: Band for groups high-impact groups need.
        high_impact_multiplier: Band for the remaining depended-upon groups.
        alphabetical_threshold: Below this many groups, sort by label only.
        correction_offset: How far above a lifted group a blocker is pulled.
        lift_exempt_labels: Groups never used as a lift target.
    """

    def __init__(
        self,
        very_high_impact_multiplier: int = DEFAULT_VERY_HIGH_IMPACT_MULTIPLIER,
        high_impact_multiplier: int = DEFAULT_HIGH_IMPACT_MULTIPLIER,
        alphabetical_threshold: int = DEFAULT_ALPHABETICAL_THRESHOLD,
        correction_offset: int = DEFAULT_CORRECTION_OFFSET,
        lift_exempt_labels: Iterable[str] = DEFAULT_LIFT_EXEMPT_LABELS,
    ):
        self.very_high_impact_multiplier = very_high_impact_multiplier
        self.high_impact_multiplier = high_impact_multiplier
        self.alphabetical_threshold = alphabetical_threshold
        self.correction_offset = correction_offset
        self.lift_exempt_labels = frozenset(lift_exempt_labels)

    @classmethod
    def from_settings(cls, settings) -> "GroupOrderSorter":
        """Build from a ``SorterSettings`` model."""
        return cls(
            very_high_impact_multiplier=settings.very_high_impact_multiplier,
            high_impact_multiplier=settings.high_impact_multiplier,
            alphabetical_threshold=settings.alphabetical_threshold,
            correction_offset=settings.correction_offset,
            lift_exempt_labels=settings.lift_exempt_labels,
        )

    def sort(self, groups: Sequence[Group]) -> List[Group]:
        if len(groups) < self.alphabetical_threshold:
            ranked = sorted(groups, key=lambda g: (natural_key(g.label), g.id))
            logger.debug("%d groups: sorting alphabetically", len(groups))
        else:
            weights = self.compute_weights(groups)
            ranked = sorted(
                groups,
                key=lambda g: (-weights[g.id], natural_key(g.label), g.id),
            )
        ordered = dependency_order(ranked)
        logger.info("Sorted %d groups", len(ordered))
        return ordered

    def compute_weights(self, groups: Sequence[Group]) -> Dict[str, int]:
        """Steps 1-4: the weight of every group, keyed by group ID."""
        by_id = {g.id: g for g in groups}
        deps = {g.id: [d for d in g.dependencies if d in by_id and d != g.id] for g in groups}

        weights = {g.id: 0 for g in groups}
        for group_deps in deps.values():
            for dep in group_deps:
                weights[dep] += 1

        high_impact = [g.id for g in groups if weights[g.id] > 0]
        refined: Dict[str, int] = {}
        for group_id in high_impact:
            for dep in deps[group_id]:
                refined[dep] = refined.get(dep, 0) + 1
        very_high: Set[str] = set(refined)

        for group_id in high_impact:
            if group_id in very_high:
                weights[group_id] = (weights[group_id] + refined[group_id]) * self.very_high_impact_multiplier
            else:
                weights[group_id] *= self.high_impact_multiplier

        exempt = self._lift_exempt(groups)
        high_impact_ids = set(high_impact)
        lifted: List[str] = []
        for group in groups:
            if group.id in high_impact_ids:
                continue
            for dep in deps[group.id]:
                if dep in exempt:
                    continue
                weights[group.id] = weights[dep] - 1
                if dep in very_high:
                    lifted.append(group.id)
                break

        for group_id in lifted:
            self._correct(by_id[group_id], deps[group_id], very_high, weights)

        return weights

    def _lift_exempt(self, groups: Sequence[Group]) -> Set[str]:
        return {
            g.id for g in groups
            if g.label in self.lift_exempt_labels or g.data_members == [TEXT_FORMAT_UNIT_ID]
        }

    def _correct(
        self,
        group: Group,
        group_deps: List[str],
        very_high: Set[str],
        weights: Dict[str, int],
    ) -> None:
        """Pull up very-high-impact blockers that do not outweigh a lifted group."""
        weight = weights[group.id]
        blockers = [d for d in group_deps if d in very_high]
        for dep in blockers:
            if weights[dep] > weight:
                continue
            others = [weights[o] for o in blockers if o != dep]
            lowest: Optional[int] = min(others) if others else None
            if lowest is not None and lowest > weight:
                pulled = lowest + self.correction_offset
            else:
                pulled = weight + self.correction_offset
            logger.warning(
                "Group %s is needed by %s but weighs %d <= %d; pulling it up to %d",
                dep,
                group.label,
                weights[dep],
                weight,
                pulled,
            )
            weights[dep] = pulled


def dependency_order(ranked: Sequence[Group]) -> List[Group]:
    """Emit groups in rank order, but never before their dependencies.

    Kahn's algorithm releasing the best-ranked ready group. A group-level
    cycle is broken by releasing the best-ranked remaining group.
    """
    rank = {g.id: i for i, g in enumerate(ranked)}
    pending: Dict[str, Set[str]] = {
        g.id: {d for d in g.dependencies if d in rank and d != g.id} for g in ranked
    }
    dependents: Dict[str, List[str]] = {g.id: [] for g in ranked}
    for group_id, group_deps in pending.items():
        for dep in group_deps:
            dependents[dep].append(group_id)

    ready = [rank[gid] for gid, group_deps in pending.items() if not group_deps]
    heapq.heapify(ready)
    done: Set[str] = set()
    ordered: List[Group] = []

    while len(ordered) < len(ranked):
        if not ready:
            stuck = min((gid for gid in pending if gid not in done), key=rank.get)
            logger.warning(
                "Group dependency cycle: releasing %s before %s",
                ranked[rank[stuck]].label,
                ", ".join(ranked[rank[d]].label for d in sorted(pending[stuck], key=rank.get)),
            )
            pending[stuck].clear()
            ready.append(rank[stuck])
        group = ranked[heapq.heappop(ready)]
        if group.id in done:
            continue
        done.add(group.id)
        ordered.append(group)
        for dependent in dependents[group.id]:
            waiting = pending[dependent]
            waiting.discard(group.id)
            if not waiting and dependent not in done:
                heapq.heappush(ready, rank[dependent])

    return ordered
