"""Clusterloom clusterer — heuristic clustering and ordering of work units.

Public API:
    ClusteringEngine(...).run(units) → List[Group] in execution order
    GroupRepository(engine, unit_source) → cached groups, initial unit IDs
"""

from .catalog import EntityTypeCatalog, EntityTypeInfo
from .context import RunContext
from .engine import ClusteringEngine, EngineResult
from .errors import (
    ClusterAlreadyAssignedError,
    ClusterLabelError,
    ClustererConfigurationError,
    ClustererError,
    DependencyCycleError,
    GroupNotFoundError,
    HeuristicOrderError,
    UnitGraphError,
)
from .graph import UnitGraph
from .heuristics import Heuristic, HeuristicRegistry
from .models import (
    ClusterAssignment,
    ClusterStrategy,
    DestinationDescriptor,
    Group,
    HeuristicKind,
    SourceDescriptor,
    UnitMetadata,
    WorkUnit,
    generate_group_id,
    is_valid_group_id,
    label_for_group_id,
)
from .repository import GroupRepository
from .runner import ClusteringResult, HeuristicChainRunner
from .sorter import GroupOrderSorter

__all__ = [
    "ClusterAlreadyAssignedError",
    "ClusterAssignment",
    "ClusterLabelError",
    "ClusterStrategy",
    "ClustererConfigurationError",
    "ClustererError",
    "ClusteringEngine",
    "ClusteringResult",
    "DependencyCycleError",
    "DestinationDescriptor",
    "EngineResult",
    "EntityTypeCatalog",
    "EntityTypeInfo",
    "Group",
    "GroupNotFoundError",
    "GroupOrderSorter",
    "GroupRepository",
    "Heuristic",
    "HeuristicChainRunner",
    "HeuristicKind",
    "HeuristicOrderError",
    "HeuristicRegistry",
    "RunContext",
    "SourceDescriptor",
    "UnitGraph",
    "UnitGraphError",
    "UnitMetadata",
    "WorkUnit",
    "generate_group_id",
    "is_valid_group_id",
    "label_for_group_id",
]
