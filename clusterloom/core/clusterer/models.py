"""Data contracts for the clusterer.

WorkUnit is what the unit graph loader hands over; Group is what the
engine hands back to the presentation layer. Kept as dataclasses (not
ORM models) for transport between layers.
"""

import hashlib
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from .constants import (
    CATEGORY_NO_DATA,
    DERIVATIVE_SEPARATOR,
    ENTITY_DESTINATION_BASE_IDS,
    GROUP_ID_PATTERN,
    GROUP_LABEL_MAX_LENGTH,
    LABEL_LANGUAGE_SETTINGS,
    SHARED_STRUCTURE_PREFIX,
)
from .errors import ClusterAlreadyAssignedError, ClusterLabelError

_GROUP_ID_RE = re.compile(GROUP_ID_PATTERN)


class HeuristicKind(Enum):
    """How a heuristic decides whether a unit matches."""
    INDEPENDENT = "independent"   # the unit's own attributes only
    DEPENDENT = "dependent"       # plus prior heuristics' match sets
    LIFTING = "lifting"           # plus the whole unit universe


class ClusterStrategy(Enum):
    """How a heuristic names the cluster of a matched unit."""
    FIXED = "fixed"
    PER_UNIT = "per_unit"
    DEPENDENT_CONTEXT = "dependent_context"


@dataclass(frozen=True)
class ClusterAssignment:
    """The cluster a unit was claimed into.

    ``lifted`` marks prerequisites pulled into a dependent's group: the
    presentation layer folds them into that group instead of listing them
    on their own.
    """
    label: str
    lifted: bool = False
    assigned_by: str = ""


@dataclass
class UnitMetadata:
    """Mutable per-run slots written while processing a unit."""
    after: List[str] = field(default_factory=list)
    before: List[str] = field(default_factory=list)
    cluster: Optional[ClusterAssignment] = None
    category: Optional[str] = None

    def assign_cluster(
        self,
        unit_id: str,
        assignment: ClusterAssignment,
        override: bool = False,
    ) -> None:
        """Write-once cluster assignment.

        Raises ClusterAlreadyAssignedError on a second write unless the
        caller explicitly overrides.
        """
        if not assignment.label:
            raise ClusterLabelError(assignment.assigned_by or "unknown", unit_id, "empty label")
        if self.cluster is not None and not override:
            raise ClusterAlreadyAssignedError(unit_id, self.cluster.label, assignment.label)
        self.cluster = assignment

    @property
    def is_clustered(self) -> bool:
        return self.cluster is not None


@dataclass(frozen=True)
class DestinationDescriptor:
    """Target data kind, e.g. ``entity_complete:node`` or ``config``."""
    plugin_id: str
    bundle: Optional[str] = None

    @property
    def base_id(self) -> str:
        return self.plugin_id.split(DERIVATIVE_SEPARATOR, 1)[0]

    @property
    def entity_type_id(self) -> Optional[str]:
        """Destination entity type, if this is an entity destination."""
        parts = self.plugin_id.split(DERIVATIVE_SEPARATOR)
        if parts[0] in ENTITY_DESTINATION_BASE_IDS and len(parts) > 1:
            return parts[1]
        return None


@dataclass(frozen=True)
class SourceDescriptor:
    """Origin data kind plus classification-only parameters."""
    plugin: str = ""
    configuration: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.configuration.get(key, default)

    def constant(self, key: str) -> Any:
        constants = self.configuration.get("constants") or {}
        return constants.get(key)


@dataclass
class WorkUnit:
    """An atomic, executable migration task."""
    id: str
    label: str = ""
    required_dependencies: List[str] = field(default_factory=list)
    optional_dependencies: List[str] = field(default_factory=list)
    tags: FrozenSet[str] = frozenset()
    destination: DestinationDescriptor = field(default_factory=lambda: DestinationDescriptor("null"))
    source: SourceDescriptor = field(default_factory=SourceDescriptor)
    row_count: Optional[int] = None
    metadata: UnitMetadata = field(default_factory=UnitMetadata)

    def __post_init__(self):
        self.tags = frozenset(self.tags)
        if not self.label:
            self.label = self.id

    @property
    def base_id(self) -> str:
        return self.id.split(DERIVATIVE_SEPARATOR, 1)[0]

    @property
    def derivative_parts(self) -> List[str]:
        return self.id.split(DERIVATIVE_SEPARATOR)[1:]

    @property
    def cluster(self) -> Optional[ClusterAssignment]:
        return self.metadata.cluster

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def __hash__(self):
        return hash(self.id)


# ── Groups ────────────────────────────────────────────────────────────


def generate_group_id(label: str) -> str:
    """Opaque, stable group ID with a legible suffix.

    md5 of the label, a dash, then the label itself (slashes replaced)
    capped at 192 characters.
    """
    digest = hashlib.md5(label.encode("utf-8")).hexdigest()
    return f"{digest}-{label.replace('/', '-')[:GROUP_LABEL_MAX_LENGTH]}"


def is_valid_group_id(candidate: str) -> bool:
    return bool(_GROUP_ID_RE.match(candidate))


def label_for_group_id(group_id: str) -> str:
    """Recover the (possibly truncated) label from a group ID."""
    return group_id.split("-", 1)[1]


@dataclass
class Group:
    """A migration group: units presented and executed together.

    ``members`` is in execution order, with ``data_members`` (the actual
    payload) always last. ``dependencies`` maps the IDs of the groups this
    one needs to the member unit IDs that cause each dependency.
    """
    id: str
    label: str
    members: List[str] = field(default_factory=list)
    data_members: List[str] = field(default_factory=list)
    dependencies: Dict[str, List[str]] = field(default_factory=dict)
    skipped_by_default: bool = False

    label_for_id = staticmethod(label_for_group_id)

    @classmethod
    def for_label(cls, label: str) -> "Group":
        return cls(id=generate_group_id(label), label=label)

    @property
    def structural_members(self) -> List[str]:
        data = set(self.data_members)
        return [m for m in self.members if m not in data]

    @property
    def dependency_ids(self) -> List[str]:
        return list(self.dependencies)

    @property
    def is_supporting_config_only(self) -> bool:
        return (
            self.label == LABEL_LANGUAGE_SETTINGS
            or self.label.startswith(SHARED_STRUCTURE_PREFIX)
        )

    @property
    def is_preselectable(self) -> bool:
        """Whether an operator can sensibly pick this group up front."""
        if not self.data_members:
            return False
        data_bases = {m.split(DERIVATIVE_SEPARATOR, 1)[0] for m in self.data_members}
        return bool(self.structural_members) or len(data_bases) == 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "members": list(self.members),
            "data_members": list(self.data_members),
            "dependencies": {k: list(v) for k, v in self.dependencies.items()},
            "skipped_by_default": self.skipped_by_default,
            "supporting_config_only": self.is_supporting_config_only,
            "preselectable": self.is_preselectable,
        }


def has_no_data(unit: WorkUnit) -> bool:
    return unit.metadata.category == CATEGORY_NO_DATA
