"""Exception hierarchy for the clustering engine.

Configuration errors mean the heuristic chain itself is broken (or the
unit graph handed over by the loader is). They abort the whole run and
must be surfaced as an installation problem, not as a per-request error.
"""

from typing import Iterable, Optional


class ClustererError(Exception):
    """Base class for everything raised by the clusterer."""


class ClustererConfigurationError(ClustererError):
    """Fatal: the heuristic chain or its input cannot produce a valid result."""


class HeuristicOrderError(ClustererConfigurationError):
    """The heuristic ``depends_on`` graph is cyclic, dangling or misdeclared."""


class ClusterLabelError(ClustererConfigurationError):
    """A computed-cluster heuristic could not produce a label."""

    def __init__(self, heuristic_id: str, unit_id: str, reason: str = ""):
        self.heuristic_id = heuristic_id
        self.unit_id = unit_id
        message = f"Heuristic {heuristic_id} could not compute a cluster label for {unit_id}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ClusterAlreadyAssignedError(ClustererConfigurationError):
    """A unit already has a cluster and the write did not ask to override it."""

    def __init__(self, unit_id: str, existing: str, attempted: str):
        self.unit_id = unit_id
        self.existing = existing
        self.attempted = attempted
        super().__init__(
            f"Work unit {unit_id} already has cluster '{existing}' assigned; "
            f"refusing to overwrite it with '{attempted}'"
        )


class DependencyCycleError(ClustererConfigurationError):
    """A dependency cycle the upstream loader failed to break."""

    def __init__(self, message: str, unit_ids: Optional[Iterable[str]] = None):
        self.unit_ids = list(unit_ids or [])
        super().__init__(message)


class UnitGraphError(ClustererError):
    """The unit graph handed to the engine is malformed."""


class GroupNotFoundError(ClustererError):
    """No group exists with the requested ID."""

    def __init__(self, group_id: str):
        self.group_id = group_id
        super().__init__(f"Migration group not found: {group_id}")
