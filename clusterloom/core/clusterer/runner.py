"""Heuristic chain runner — first-claim cluster assignment.

Pipeline per run:
1. Validate the chain once (unique IDs, known dependencies, legal
   kind/strategy combinations, exactly one catch-all and it comes last)
2. Order heuristics topologically by ``depends_on``; registration order
   breaks ties, a cycle is fatal
3. For each heuristic, test the still unclaimed units in execution order
   and assign the computed cluster to each match
4. Concatenate the match lists by heuristic weight, giving the unit order
   the grouping stage starts from
"""

import heapq
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .context import RunContext
from .errors import ClusterLabelError, ClustererError, HeuristicOrderError
from .heuristics.base import ClusterResult, Heuristic, HeuristicView
from .models import ClusterAssignment, ClusterStrategy, HeuristicKind, WorkUnit

logger = logging.getLogger(__name__)


@dataclass
class ClusteringResult:
    """What a chain run produced.

    Attributes:
        matches: Heuristic ID -> unit IDs it claimed, in claim order.
        heuristic_order: Heuristic IDs in the order they ran.
        ordered_unit_ids: All unit IDs, lighter heuristics' claims first.
        catch_all_ids: Units only the catch-all would take.
    """
    matches: Dict[str, List[str]] = field(default_factory=dict)
    heuristic_order: List[str] = field(default_factory=list)
    ordered_unit_ids: List[str] = field(default_factory=list)
    catch_all_ids: List[str] = field(default_factory=list)


class HeuristicChainRunner:
    """Runs an ordered heuristic chain over one run context.

    The chain is validated and ordered on construction, so a broken chain
    fails before any unit is touched.
    """

    def __init__(self, heuristics: Sequence[Heuristic]):
        self.heuristics = order_heuristics(heuristics)
        self._weights = {h.id: h.weight for h in self.heuristics}

    def run(self, context: RunContext) -> ClusteringResult:
        result = ClusteringResult(heuristic_order=[h.id for h in self.heuristics])
        context.goal_heuristics = [h.id for h in self.heuristics if h.goal]

        for heuristic in self.heuristics:
            claimed = self._apply(heuristic, context)
            result.matches[heuristic.id] = list(claimed)
            if claimed:
                logger.info("Heuristic %s claimed %d work units", heuristic.id, len(claimed))
            if heuristic.catch_all and claimed:
                result.catch_all_ids = list(claimed)
                logger.warning(
                    "%d work units only matched the catch-all heuristic %s: %s",
                    len(claimed),
                    heuristic.id,
                    ", ".join(claimed),
                )

        unclustered = context.graph.unclustered()
        if unclustered:
            raise ClustererError(
                "Work units left without a cluster: " + ", ".join(u.id for u in unclustered)
            )

        result.ordered_unit_ids = self._weighted_unit_order(result, context)
        return result

    # ── Matching and assignment ───────────────────────────────────────

    def _apply(self, heuristic: Heuristic, context: RunContext) -> List[str]:
        own: List[str] = []
        context.matches[heuristic.id] = own

        visible: Dict[str, List[str]] = {
            dep: list(context.matches.get(dep, [])) for dep in heuristic.depends_on
        }
        visible[heuristic.id] = own
        match_view = HeuristicView(
            heuristic.id, visible, context,
            grant_universe=heuristic.kind is HeuristicKind.LIFTING,
        )
        cluster_view = HeuristicView(
            heuristic.id, visible, context,
            grant_universe=(
                heuristic.kind is HeuristicKind.LIFTING
                or heuristic.cluster_strategy is ClusterStrategy.DEPENDENT_CONTEXT
            ),
        )

        if heuristic.overrides_existing:
            candidates = list(context.graph.units)
        else:
            candidates = context.graph.unclustered()

        for unit in candidates:
            # An earlier match in this same pass may have claimed it already.
            if unit.metadata.cluster is not None and not heuristic.overrides_existing:
                continue
            if not heuristic.matches(unit, match_view):
                continue
            assignment = self._assignment_for(heuristic, unit, cluster_view)
            if unit.metadata.cluster is not None:
                logger.info(
                    "Heuristic %s moves %s from %s to %s",
                    heuristic.id,
                    unit.id,
                    unit.metadata.cluster.label,
                    assignment.label,
                )
            unit.metadata.assign_cluster(unit.id, assignment, override=heuristic.overrides_existing)
            own.append(unit.id)
            logger.debug("%s -> %s (%s)", unit.id, assignment.label, heuristic.id)

        return own

    def _assignment_for(
        self,
        heuristic: Heuristic,
        unit: WorkUnit,
        view: HeuristicView,
    ) -> ClusterAssignment:
        computed: ClusterResult = heuristic.compute_cluster(unit, view)
        if isinstance(computed, ClusterAssignment):
            label, lifted = computed.label, computed.lifted
        else:
            label, lifted = computed, heuristic.lifts
        if not label or not isinstance(label, str) or not label.strip():
            raise ClusterLabelError(heuristic.id, unit.id, "no label could be computed")
        return ClusterAssignment(label=label, lifted=lifted, assigned_by=heuristic.id)

    # ── Output order ─────────────────────────────────────────────────

    def _weighted_unit_order(self, result: ClusteringResult, context: RunContext) -> List[str]:
        """Claims of lighter heuristics first; registration order within a weight."""
        ordered: List[str] = []
        seen = set()
        by_weight = sorted(
            range(len(self.heuristics)),
            key=lambda i: (self.heuristics[i].weight, i),
        )
        for index in by_weight:
            heuristic_id = self.heuristics[index].id
            for unit_id in result.matches.get(heuristic_id, []):
                owner = context.graph[unit_id].metadata.cluster.assigned_by
                # Overridden claims are listed under their final owner only.
                if unit_id in seen or owner != heuristic_id:
                    continue
                seen.add(unit_id)
                ordered.append(unit_id)
        return ordered

    def weight_of(self, heuristic_id: str) -> Optional[int]:
        return self._weights.get(heuristic_id)


def order_heuristics(heuristics: Sequence[Heuristic]) -> List[Heuristic]:
    """Validate a chain and order it topologically by ``depends_on``.

    Ready heuristics are released in registration order, so a chain that
    is already correctly ordered comes back unchanged. The catch-all is
    held back until everything else has been released.
    """
    by_id: Dict[str, Heuristic] = {}
    index: Dict[str, int] = {}
    for i, heuristic in enumerate(heuristics):
        heuristic.validate()
        if heuristic.id in by_id:
            raise HeuristicOrderError(f"Duplicate heuristic id: {heuristic.id}")
        by_id[heuristic.id] = heuristic
        index[heuristic.id] = i

    catch_alls = [h for h in heuristics if h.catch_all]
    if len(catch_alls) != 1:
        raise HeuristicOrderError(
            f"Exactly one catch-all heuristic is required, found {len(catch_alls)}"
        )
    catch_all = catch_alls[0]
    if heuristics[-1] is not catch_all:
        raise HeuristicOrderError(f"Catch-all heuristic {catch_all.id} must be last in the chain")

    for heuristic in heuristics:
        for dep in heuristic.depends_on:
            if dep not in by_id:
                raise HeuristicOrderError(f"Heuristic {heuristic.id} depends on unknown heuristic {dep}")
            if dep == catch_all.id:
                raise HeuristicOrderError(
                    f"Heuristic {heuristic.id} cannot depend on the catch-all {catch_all.id}"
                )
            if dep == heuristic.id:
                raise HeuristicOrderError(f"Heuristic {heuristic.id} depends on itself")

    pending = {h.id: set(h.depends_on) for h in heuristics if h is not catch_all}
    dependents: Dict[str, List[str]] = {hid: [] for hid in pending}
    for hid, deps in pending.items():
        for dep in deps:
            dependents[dep].append(hid)

    ready = [index[hid] for hid, deps in pending.items() if not deps]
    heapq.heapify(ready)
    ordered: List[Heuristic] = []
    while ready:
        heuristic = heuristics[heapq.heappop(ready)]
        ordered.append(heuristic)
        for dependent in dependents[heuristic.id]:
            waiting = pending[dependent]
            waiting.discard(heuristic.id)
            if not waiting:
                heapq.heappush(ready, index[dependent])

    if len(ordered) != len(pending):
        stuck = sorted(set(pending) - {h.id for h in ordered}, key=index.get)
        raise HeuristicOrderError("Heuristic dependency cycle among: " + ", ".join(stuck))

    ordered.append(catch_all)
    return ordered
