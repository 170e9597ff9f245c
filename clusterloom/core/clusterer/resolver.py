"""Lift/Push resolution — moving units to keep cross-group edges down.

Lifting pulls the (transitively) required prerequisites of a goal unit
into the goal's group. Pushing relocates a leftover unit that nothing
depends on into the group of the clustered dependency that runs last,
so it only runs once everything it needs has already run.

Both are used by heuristics (see heuristics/content.py and
heuristics/site.py); the catch-all heuristic stays the only fallback.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set

from .context import RunContext
from .errors import DependencyCycleError
from .models import ClusterAssignment, WorkUnit

logger = logging.getLogger(__name__)


class LiftResolver:
    """Recursive required-dependency discovery over one run's universe."""

    _CLOSURE_MEMO = "__lift_closures__"

    def __init__(self, context: RunContext):
        self._ctx = context
        self._closures: Dict[str, List[str]] = context.memo_for(self._CLOSURE_MEMO)

    def required_closure(self, unit_id: str) -> List[str]:
        """All required dependencies of a unit, direct and transitive.

        Depth-first in declaration order, de-duplicated. IDs absent from
        the universe contribute nothing (pruned upstream for a reason).
        """
        return self._walk(unit_id)

    def _walk(self, unit_id: str) -> List[str]:
        unit = self._ctx.graph.get(unit_id)
        if unit is None:
            return []
        if unit_id in self._closures:
            return self._closures[unit_id]

        guard = self._ctx.recursion
        visits = guard.enter(unit_id)
        try:
            if visits > 1:
                if guard.is_self_referencing_family(unit_id):
                    # Second visit of an intentionally self-referencing family.
                    return []
                if visits > guard.max_path_visits:
                    path = guard.path()
                    raise DependencyCycleError(
                        f"Recursion limit reached while lifting dependencies of {unit_id}: "
                        + " -> ".join(path),
                        path,
                    )

            collected: Dict[str, None] = {}
            for dep in unit.required_dependencies:
                collected.setdefault(dep, None)
            for dep in unit.required_dependencies:
                for transitive in self._walk(dep):
                    collected.setdefault(transitive, None)
            closure = list(collected)
        finally:
            guard.leave(unit_id)

        if visits == 1:
            self._closures[unit_id] = closure
        return closure

    def lift_table(
        self,
        goal_ids: Sequence[str],
        already_clustered: Iterable[str],
    ) -> Dict[str, str]:
        """Map each liftable unit ID to the goal unit it is lifted towards.

        Goals are processed in order; the first goal to reach a
        prerequisite claims it. Already clustered units are never lifted.
        """
        excluded: Set[str] = set(already_clustered)
        table: Dict[str, str] = {}
        for goal_id in goal_ids:
            goal = self._ctx.graph.get(goal_id)
            if goal is None or not goal.metadata.after:
                continue
            for dep in self.required_closure(goal_id):
                if dep in excluded or dep in table or dep == goal_id:
                    continue
                dep_unit = self._ctx.graph.get(dep)
                if dep_unit is None or dep_unit.metadata.cluster is not None:
                    continue
                table[dep] = goal_id
        logger.debug("Lift table: %d units lifted towards %d goal units", len(table), len(goal_ids))
        return table


class PushResolver:
    """Chooses which clustered dependency a leftover unit is pushed to."""

    def __init__(self, context: RunContext):
        self._ctx = context

    def choose_target(
        self,
        unit: WorkUnit,
        clustered_dependees: Iterable[str],
        goal_ids: Optional[Set[str]] = None,
    ) -> Optional[str]:
        """Pick the dependee whose group the unit should join.

        Prefers the subset of dependees that are not goal units (their
        position depends less on the loader's ordering), then the one
        that executes last.
        """
        graph = self._ctx.graph
        candidates = [d for d in graph.sort_ids(clustered_dependees) if d in graph]
        if not candidates:
            return None

        goals = self._ctx.goal_ids() if goal_ids is None else goal_ids
        stable = [c for c in candidates if c not in goals]
        if stable and len(stable) < len(candidates):
            candidates = stable

        labels = {
            graph[c].metadata.cluster.label
            for c in candidates
            if graph[c].metadata.cluster is not None
        }
        if len(labels) > 1:
            logger.warning(
                "Work unit %s has multiple clustered dependees (%s) in different groups (%s); "
                "pushing towards the one that runs last. Consider adding a heuristic.",
                unit.id,
                ", ".join(candidates),
                ", ".join(sorted(labels)),
            )
        return candidates[-1]

    def target_assignment(
        self,
        unit: WorkUnit,
        clustered_dependees: Iterable[str],
        goal_ids: Optional[Set[str]] = None,
    ) -> Optional[ClusterAssignment]:
        """The cluster of the chosen push target, lifted marker included."""
        target = self.choose_target(unit, clustered_dependees, goal_ids)
        if target is None:
            return None
        return self._ctx.graph[target].metadata.cluster
