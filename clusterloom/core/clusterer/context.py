"""RunContext — per-run state shared by the chain runner and heuristics.

One context is created for every clustering run and dropped afterwards.
Memoised tables (e.g. the lift lookup table) live here rather than in
module or class state, so concurrent runs on different snapshots never
see each other's caches.
"""

import fnmatch
from typing import Any, Dict, List, Optional, Sequence, Set

from .catalog import EntityTypeCatalog
from .graph import UnitGraph

# Unit families that intentionally declare self-referential dependencies
# (nested paragraphs / field collections referencing their own kind).
DEFAULT_SELF_REFERENCE_FAMILIES = (
    "d7_field_collection:field_collection_item*",
    "d7_field_collection:paragraphs_item*",
    "d7_paragraphs:field_collection_item*",
    "d7_paragraphs:paragraphs_item*",
    "d7_pm_field_collection:field_collection_item*",
    "d7_pm_field_collection:paragraphs_item*",
    "d7_pm_paragraphs:field_collection_item*",
    "d7_pm_paragraphs:paragraphs_item*",
)

DEFAULT_MAX_PATH_VISITS = 2


class RecursionGuard:
    """Counts how often each unit ID is on the active recursion path.

    ``enter`` returns the visit count including the current one; callers
    decide whether that count is acceptable and must always ``leave``.
    """

    __slots__ = ("_active", "self_reference_families", "max_path_visits")

    def __init__(
        self,
        self_reference_families: Sequence[str] = DEFAULT_SELF_REFERENCE_FAMILIES,
        max_path_visits: int = DEFAULT_MAX_PATH_VISITS,
    ):
        self._active: Dict[str, int] = {}
        self.self_reference_families = tuple(self_reference_families)
        self.max_path_visits = max(1, max_path_visits)

    def enter(self, unit_id: str) -> int:
        count = self._active.get(unit_id, 0) + 1
        self._active[unit_id] = count
        return count

    def leave(self, unit_id: str) -> None:
        count = self._active.get(unit_id, 0) - 1
        if count > 0:
            self._active[unit_id] = count
        else:
            self._active.pop(unit_id, None)

    def path(self) -> List[str]:
        return list(self._active)

    def is_self_referencing_family(self, unit_id: str) -> bool:
        return any(fnmatch.fnmatchcase(unit_id, p) for p in self.self_reference_families)


class RunContext:
    """Everything one clustering run accumulates.

    Attributes:
        graph: The unit universe for this run.
        catalog: Destination entity type lookup service.
        matches: Heuristic ID -> matched unit IDs, in match order.
        goal_heuristics: IDs of heuristics whose matches are goal units.
        memo: Heuristic ID -> that heuristic's memoised per-run tables.
        recursion: Recursion guard used by lifting.
    """

    __slots__ = ("graph", "catalog", "matches", "goal_heuristics", "memo", "recursion")

    def __init__(
        self,
        graph: UnitGraph,
        catalog: Optional[EntityTypeCatalog] = None,
        self_reference_families: Sequence[str] = DEFAULT_SELF_REFERENCE_FAMILIES,
        max_path_visits: int = DEFAULT_MAX_PATH_VISITS,
    ):
        self.graph = graph
        self.catalog = catalog or EntityTypeCatalog()
        self.matches: Dict[str, List[str]] = {}
        self.goal_heuristics: List[str] = []
        self.memo: Dict[str, Dict[str, Any]] = {}
        self.recursion = RecursionGuard(self_reference_families, max_path_visits)

    def memo_for(self, heuristic_id: str) -> Dict[str, Any]:
        return self.memo.setdefault(heuristic_id, {})

    def goal_ids(self) -> Set[str]:
        """IDs of all units matched by goal heuristics so far."""
        ids: Set[str] = set()
        for heuristic_id in self.goal_heuristics:
            ids.update(self.matches.get(heuristic_id, []))
        return ids

    def clustered_ids(self) -> Set[str]:
        return {u.id for u in self.graph.units if u.metadata.cluster is not None}
