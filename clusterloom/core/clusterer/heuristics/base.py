"""Heuristic base class and the view each heuristic gets of a run.

A heuristic is one clustering rule. Two discriminants describe it:

* ``kind`` -- what it needs to decide whether a unit matches:
  ``INDEPENDENT`` (the unit itself), ``DEPENDENT`` (plus the match sets
  of the heuristics it ``depends_on``), ``LIFTING`` (plus the whole unit
  universe, for recursive dependency discovery).
* ``cluster_strategy`` -- how it names the group of a matched unit:
  ``FIXED`` (one label for every match), ``PER_UNIT`` (computed from the
  unit alone), ``DEPENDENT_CONTEXT`` (computed from prior matches and the
  universe).

The runner validates the combination once, when the chain is built.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set, Tuple, Union

from ..catalog import EntityTypeCatalog
from ..context import RunContext
from ..errors import HeuristicOrderError
from ..graph import UnitGraph
from ..models import ClusterAssignment, ClusterStrategy, HeuristicKind, WorkUnit
from ..resolver import LiftResolver, PushResolver

ClusterResult = Union[str, ClusterAssignment, None]


class HeuristicView:
    """What a heuristic may see while matching or naming a unit.

    ``matches`` only contains the heuristics listed in ``depends_on`` plus
    the heuristic's own matches so far, as copies: a heuristic cannot
    alter another heuristic's results. ``graph`` is only granted to
    lifting heuristics (and to dependent-context cluster computation).
    """

    __slots__ = ("heuristic_id", "matches", "catalog", "_graph", "_context")

    def __init__(
        self,
        heuristic_id: str,
        matches: Dict[str, List[str]],
        context: RunContext,
        grant_universe: bool,
    ):
        self.heuristic_id = heuristic_id
        self.matches = matches
        self.catalog: EntityTypeCatalog = context.catalog
        self._graph: Optional[UnitGraph] = context.graph if grant_universe else None
        self._context = context

    @property
    def graph(self) -> UnitGraph:
        if self._graph is None:
            raise HeuristicOrderError(
                f"Heuristic {self.heuristic_id} needs the unit universe but is not a lifting heuristic"
            )
        return self._graph

    @property
    def has_universe(self) -> bool:
        return self._graph is not None

    def matched(self, *heuristic_ids: str) -> List[str]:
        """Concatenated matches of the given heuristics, in order."""
        result: List[str] = []
        for heuristic_id in heuristic_ids:
            result.extend(self.matches.get(heuristic_id, []))
        return result

    def own_matches(self) -> List[str]:
        return self.matches.setdefault(self.heuristic_id, [])

    @property
    def memo(self) -> Dict:
        return self._context.memo_for(self.heuristic_id)

    def goal_ids(self) -> Set[str]:
        return self._context.goal_ids()

    def lift(self) -> LiftResolver:
        if not self.has_universe:
            raise HeuristicOrderError(f"Heuristic {self.heuristic_id} cannot lift without the unit universe")
        return LiftResolver(self._context)

    def push(self) -> PushResolver:
        return PushResolver(self._context)

    def cluster_of(self, unit_id: str) -> Optional[ClusterAssignment]:
        unit = self._context.graph.get(unit_id)
        return unit.metadata.cluster if unit is not None else None


class Heuristic(ABC):
    """Abstract base for clustering heuristics.

    Subclasses set the class attributes and implement :meth:`matches`;
    every strategy other than ``FIXED`` also implements
    :meth:`compute_cluster`.
    """

    id: str = ""
    """Unique identifier, e.g. ``"entity_bundles"``."""

    kind: HeuristicKind = HeuristicKind.INDEPENDENT

    cluster_strategy: ClusterStrategy = ClusterStrategy.FIXED

    depends_on: Tuple[str, ...] = ()
    """Heuristics whose match sets must exist before this one runs."""

    fixed_label: Optional[str] = None
    """The single cluster label for ``FIXED`` heuristics."""

    weight: int = 0
    """Output ordering: units claimed by lighter heuristics come first."""

    lifts: bool = False
    """Whether plain string labels from this heuristic are lifted."""

    goal: bool = False
    """Whether matches are goal units (the payload a group is named after)."""

    catch_all: bool = False
    """The catch-all: matches everything and must run last."""

    overrides_existing: bool = False
    """Corrective heuristics only: may replace an earlier assignment."""

    @abstractmethod
    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        """Assess whether the unit belongs to this heuristic's cluster."""
        ...

    def compute_cluster(self, unit: WorkUnit, view: HeuristicView) -> ClusterResult:
        """Name the cluster of a matched unit.

        Returns a label (lifted per :attr:`lifts`) or a complete
        :class:`ClusterAssignment` when the lifted marker is inherited.
        """
        return self.fixed_label

    def validate(self) -> None:
        """Reject kind/strategy combinations the runner cannot honour."""
        if not self.id:
            raise HeuristicOrderError(f"{type(self).__name__} has no id")
        if self.kind is HeuristicKind.INDEPENDENT:
            if self.depends_on:
                raise HeuristicOrderError(
                    f"Independent heuristic {self.id} cannot depend on other heuristics"
                )
            if self.cluster_strategy is ClusterStrategy.DEPENDENT_CONTEXT:
                raise HeuristicOrderError(
                    f"Independent heuristic {self.id} cannot compute clusters from dependent context"
                )
        if self.cluster_strategy is ClusterStrategy.FIXED and not self.fixed_label:
            raise HeuristicOrderError(f"Fixed-cluster heuristic {self.id} has no label")
        if (
            self.cluster_strategy is not ClusterStrategy.FIXED
            and type(self).compute_cluster is Heuristic.compute_cluster
        ):
            raise HeuristicOrderError(
                f"Heuristic {self.id} computes its cluster but does not implement compute_cluster()"
            )
        if self.catch_all and self.kind is HeuristicKind.INDEPENDENT:
            raise HeuristicOrderError(f"Catch-all heuristic {self.id} must be a dependent heuristic")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r} kind={self.kind.value}>"


class FixedClusterHeuristic(Heuristic):
    """Independent heuristic: fixed label, matching by unit IDs or base IDs."""

    cluster_strategy = ClusterStrategy.FIXED
    unit_ids: frozenset = frozenset()
    base_ids: frozenset = frozenset()

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        return unit.id in self.unit_ids or unit.base_id in self.base_ids
