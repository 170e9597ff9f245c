"""Clustering engine — from work units to ordered migration groups.

Pipeline per run:
1. Build the unit graph (index, prune absent dependencies, execution
   order, transitive ``after``/``before``)
2. Run the heuristic chain in a fresh run context (lift and push happen
   inside the lifting/pushing heuristics, before the catch-all)
3. Assemble groups from the cluster assignments
4. Sort groups into one dependency-respecting sequence

The engine keeps no state between runs; every run gets its own context,
so runs over different unit snapshots never share caches.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .catalog import EntityTypeCatalog
from .context import DEFAULT_MAX_PATH_VISITS, DEFAULT_SELF_REFERENCE_FAMILIES, RunContext
from .graph import UnitGraph
from .grouping import build_groups
from .heuristics import Heuristic, HeuristicRegistry
from .models import Group, WorkUnit
from .runner import ClusteringResult, HeuristicChainRunner
from .sorter import GroupOrderSorter

logger = logging.getLogger(__name__)


@dataclass
class EngineResult:
    """Everything one run produced, for callers that need more than groups."""
    graph: UnitGraph
    clustering: ClusteringResult
    groups: List[Group]


class ClusteringEngine:
    """Runs the whole clustering and ordering pipeline.

    Args:
        heuristics: Heuristic chain; defaults to the registered chain.
        catalog: Destination entity type lookups.
        sorter: Group order sorter; defaults to default weights.
        self_reference_families: Unit ID patterns allowed to revisit once.
        max_path_visits: Visits of one unit on a lift path before it is a cycle.
    """

    def __init__(
        self,
        heuristics: Optional[Sequence[Heuristic]] = None,
        catalog: Optional[EntityTypeCatalog] = None,
        sorter: Optional[GroupOrderSorter] = None,
        self_reference_families: Sequence[str] = DEFAULT_SELF_REFERENCE_FAMILIES,
        max_path_visits: int = DEFAULT_MAX_PATH_VISITS,
    ):
        chain = list(heuristics) if heuristics is not None else HeuristicRegistry.default_chain()
        self.runner = HeuristicChainRunner(chain)
        self.catalog = catalog or EntityTypeCatalog()
        self.sorter = sorter or GroupOrderSorter()
        self.self_reference_families = tuple(self_reference_families)
        self.max_path_visits = max_path_visits

    @classmethod
    def from_settings(cls, settings, catalog: Optional[EntityTypeCatalog] = None) -> "ClusteringEngine":
        """Build from ``ClustererSettings``; ``catalog`` entries win over configured ones."""
        configured = EntityTypeCatalog.from_mapping(settings.entity_type_mapping())
        return cls(
            catalog=configured.merged(catalog) if catalog is not None else configured,
            sorter=GroupOrderSorter.from_settings(settings.sorter),
            self_reference_families=settings.lift.self_reference_families,
            max_path_visits=settings.lift.max_path_visits,
        )

    def run(self, units: Iterable[WorkUnit]) -> List[Group]:
        """Cluster and order the given units; returns groups in execution order."""
        return self.run_detailed(units).groups

    def run_detailed(self, units: Iterable[WorkUnit]) -> EngineResult:
        graph = UnitGraph.from_units(units)
        context = RunContext(
            graph,
            catalog=self.catalog,
            self_reference_families=self.self_reference_families,
            max_path_visits=self.max_path_visits,
        )
        clustering = self.runner.run(context)
        groups = self.sorter.sort(build_groups(graph, clustering.ordered_unit_ids))
        logger.info(
            "Clustered %d work units into %d groups (%d via catch-all)",
            len(graph),
            len(groups),
            len(clustering.catch_all_ids),
        )
        return EngineResult(graph=graph, clustering=clustering, groups=groups)
