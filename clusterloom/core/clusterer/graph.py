"""UnitGraph — the indexed work-unit universe for one clustering run.

Built once per run from whatever the unit graph loader delivered:
1. Index units by ID (duplicate IDs are rejected)
2. Prune dependency IDs that do not exist in this universe
3. Order units for execution (Kahn's algorithm, ties broken by ID)
4. Resolve each unit's transitive ``after`` / ``before`` metadata

Every later stage (heuristics, grouping, sorting) reads positions and
dependency metadata from here instead of re-walking the raw units.
"""

import hashlib
import heapq
import logging
from typing import Dict, Iterable, Iterator, List, Optional, Set

from .errors import DependencyCycleError, UnitGraphError
from .models import UnitMetadata, WorkUnit

logger = logging.getLogger(__name__)


class UnitGraph:
    """Lookup structures over all work units, built once per run.

    Attributes:
        units: All work units, in execution order.
        unit_by_id: Units indexed by ID.
        positions: Execution position of every unit ID.
    """

    __slots__ = ("units", "unit_by_id", "positions", "_dependents")

    def __init__(
        self,
        units: List[WorkUnit],
        unit_by_id: Dict[str, WorkUnit],
        positions: Dict[str, int],
        dependents: Dict[str, List[str]],
    ):
        self.units = units
        self.unit_by_id = unit_by_id
        self.positions = positions
        self._dependents = dependents

    @classmethod
    def from_units(cls, units: Iterable[WorkUnit]) -> "UnitGraph":
        """Index, prune, order and resolve metadata for a set of units.

        Any metadata left over from an earlier run (cluster assignments,
        resolved after/before lists) is discarded; the category survives.
        """
        unit_by_id: Dict[str, WorkUnit] = {}
        for unit in units:
            if unit.id in unit_by_id:
                raise UnitGraphError(f"Duplicate work unit ID: {unit.id}")
            unit_by_id[unit.id] = unit

        pruned = 0
        for unit in unit_by_id.values():
            pruned += _prune_missing(unit, unit_by_id)
            unit.metadata = UnitMetadata(category=unit.metadata.category)
        if pruned:
            logger.debug("Pruned %d dependencies on absent work units", pruned)

        ordered_ids = _execution_order(unit_by_id)
        positions = {uid: i for i, uid in enumerate(ordered_ids)}

        dependents: Dict[str, List[str]] = {uid: [] for uid in ordered_ids}
        for uid in ordered_ids:
            unit = unit_by_id[uid]
            for dep in _all_dependencies(unit):
                dependents[dep].append(uid)

        graph = cls(
            units=[unit_by_id[uid] for uid in ordered_ids],
            unit_by_id=unit_by_id,
            positions=positions,
            dependents=dependents,
        )
        graph._resolve_after_before()

        logger.info("Unit graph ready: %d work units", len(graph.units))
        return graph

    # ── Lookups ──────────────────────────────────────────────────────

    def __contains__(self, unit_id: object) -> bool:
        return unit_id in self.unit_by_id

    def __iter__(self) -> Iterator[WorkUnit]:
        return iter(self.units)

    def __len__(self) -> int:
        return len(self.units)

    def get(self, unit_id: str) -> Optional[WorkUnit]:
        return self.unit_by_id.get(unit_id)

    def __getitem__(self, unit_id: str) -> WorkUnit:
        return self.unit_by_id[unit_id]

    def position(self, unit_id: str) -> int:
        """Execution position; absent IDs sort last."""
        return self.positions.get(unit_id, len(self.positions))

    def sort_ids(self, unit_ids: Iterable[str]) -> List[str]:
        """Order unit IDs by execution position."""
        return sorted(set(unit_ids), key=self.position)

    def direct_dependents(self, unit_id: str) -> List[str]:
        return list(self._dependents.get(unit_id, []))

    def unclustered(self) -> List[WorkUnit]:
        return [u for u in self.units if u.metadata.cluster is None]

    def fingerprint(self) -> str:
        """Stable digest of the graph shape, used as a cache key."""
        return units_fingerprint(self.units)

    # ── Metadata resolution ─────────────────────────────────────────

    def _resolve_after_before(self) -> None:
        """Fill transitive ``after`` and ``before`` lists in execution order."""
        closures: Dict[str, Set[str]] = {}
        for unit in self.units:
            closure: Set[str] = set()
            for dep in _all_dependencies(unit):
                closure.add(dep)
                closure |= closures.get(dep, set())
            closures[unit.id] = closure

        reverse: Dict[str, Set[str]] = {u.id: set() for u in self.units}
        for uid, closure in closures.items():
            for dep in closure:
                reverse[dep].add(uid)

        for unit in self.units:
            unit.metadata.after = self.sort_ids(closures[unit.id])
            unit.metadata.before = self.sort_ids(reverse[unit.id])


def units_fingerprint(units: Iterable[WorkUnit]) -> str:
    """sha256 over unit IDs, dependency lists and clustering inputs.

    Independent of the order the units are given in. Dependencies on
    absent units are left out, so a snapshot hashes the same before and
    after graph preparation prunes them.
    """
    units = sorted(units, key=lambda u: u.id)
    unit_ids = {u.id for u in units}
    digest = hashlib.sha256()
    for unit in units:
        required = [d for d in unit.required_dependencies if d in unit_ids]
        optional = [d for d in unit.optional_dependencies if d in unit_ids and d not in required]
        for part in (
            unit.id,
            unit.label,
            ",".join(required),
            ",".join(optional),
            ",".join(sorted(unit.tags)),
            unit.destination.plugin_id,
            str(unit.row_count),
            str(unit.metadata.category),
        ):
            digest.update(part.encode("utf-8"))
            digest.update(b"\x00")
        digest.update(b"\x01")
    return digest.hexdigest()


def _all_dependencies(unit: WorkUnit) -> List[str]:
    seen: Dict[str, None] = {}
    for dep in unit.required_dependencies + unit.optional_dependencies:
        if dep != unit.id:
            seen.setdefault(dep, None)
    return list(seen)


def _prune_missing(unit: WorkUnit, unit_by_id: Dict[str, WorkUnit]) -> int:
    """Drop dependency IDs absent from the universe; returns how many."""
    missing = [
        d for d in unit.required_dependencies + unit.optional_dependencies
        if d not in unit_by_id
    ]
    if missing:
        logger.debug("Work unit %s: ignoring absent dependencies %s", unit.id, ", ".join(missing))
    unit.required_dependencies = [d for d in unit.required_dependencies if d in unit_by_id]
    unit.optional_dependencies = [
        d for d in unit.optional_dependencies
        if d in unit_by_id and d not in unit.required_dependencies
    ]
    return len(missing)


def _execution_order(unit_by_id: Dict[str, WorkUnit]) -> List[str]:
    """Kahn's algorithm over required + optional dependencies.

    Ready units are released in ascending ID order. When only cycles are
    left, a unit blocked solely by optional dependencies is released
    first; a cycle through required dependencies is fatal.
    """
    remaining: Dict[str, Set[str]] = {
        uid: set(_all_dependencies(u)) for uid, u in unit_by_id.items()
    }
    dependents: Dict[str, List[str]] = {uid: [] for uid in unit_by_id}
    for uid, deps in remaining.items():
        for dep in deps:
            dependents[dep].append(uid)

    ready = [uid for uid, deps in remaining.items() if not deps]
    heapq.heapify(ready)
    order: List[str] = []
    done: Set[str] = set()

    while len(order) < len(unit_by_id):
        if not ready:
            ready.append(_break_optional_cycle(remaining, unit_by_id, done))
        uid = heapq.heappop(ready)
        if uid in done:
            continue
        done.add(uid)
        order.append(uid)
        for dependent in dependents[uid]:
            pending = remaining[dependent]
            pending.discard(uid)
            if not pending and dependent not in done:
                heapq.heappush(ready, dependent)

    return order


def _break_optional_cycle(
    remaining: Dict[str, Set[str]],
    unit_by_id: Dict[str, WorkUnit],
    done: Set[str],
) -> str:
    stuck = sorted(uid for uid in remaining if uid not in done)
    for uid in stuck:
        required = set(unit_by_id[uid].required_dependencies)
        if not (remaining[uid] & required):
            logger.warning(
                "Optional dependency cycle: releasing %s before %s",
                uid,
                ", ".join(sorted(remaining[uid])),
            )
            remaining[uid].clear()
            return uid
    raise DependencyCycleError(
        "Required dependency cycle among work units: " + ", ".join(stuck),
        stuck,
    )
