"""GroupRepository — cached access to the ordered migration groups.

Clustering is expensive on large unit graphs, so the repository keeps
the last result and only recomputes when the units handed over by the
unit source change (detected by fingerprint) or after ``invalidate()``.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Set

from .constants import SHARED_DATA_PREFIX
from .engine import ClusteringEngine, EngineResult
from .errors import GroupNotFoundError
from .graph import units_fingerprint
from .models import Group, WorkUnit

logger = logging.getLogger(__name__)

UnitSource = Callable[[], Iterable[WorkUnit]]


class GroupRepository:
    """Serves ordered groups for one unit source.

    Args:
        engine: The clustering engine to run.
        unit_source: Returns the current work units; called on every
            lookup so upstream changes are noticed.
    """

    def __init__(self, engine: ClusteringEngine, unit_source: UnitSource):
        self._engine = engine
        self._unit_source = unit_source
        self._fingerprint: Optional[str] = None
        self._result: Optional[EngineResult] = None
        self._by_id: Dict[str, Group] = {}
        self._initial_ids: Optional[List[str]] = None

    def invalidate(self) -> None:
        """Drop the cached result; the next lookup recomputes."""
        if self._result is not None:
            logger.info("Group cache invalidated")
        self._fingerprint = None
        self._result = None
        self._by_id = {}
        self._initial_ids = None

    def get_groups(self, reset: bool = False) -> List[Group]:
        """All groups in recommended execution order."""
        return list(self._current(reset).groups)

    def get_group(self, group_id: str) -> Group:
        self._current()
        group = self._by_id.get(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        return group

    def _current(self, reset: bool = False) -> EngineResult:
        units = list(self._unit_source())
        fingerprint = units_fingerprint(units)
        if reset or self._result is None or fingerprint != self._fingerprint:
            if self._result is not None and not reset:
                logger.info("Unit graph changed, recomputing groups")
            self.invalidate()
            self._result = self._engine.run_detailed(units)
            self._fingerprint = fingerprint
            self._by_id = {g.id: g for g in self._result.groups}
        return self._result

    def initial_unit_ids(self) -> List[str]:
        """Supporting configuration an operator can import up front.

        Non-data members of every group, their required dependencies and
        all members of supporting-config-only groups, minus the payload of
        content groups. A unit only stays if everything it requires is
        initial too.
        """
        result = self._current()
        if self._initial_ids is not None:
            return list(self._initial_ids)

        graph = result.graph
        content_data: Set[str] = set()
        for group in result.groups:
            is_shared_data = group.label.startswith(SHARED_DATA_PREFIX)
            is_data_only = len(group.data_members) == len(group.members)
            if is_shared_data or not is_data_only:
                content_data.update(group.data_members)

        initial: Dict[str, None] = {}
        for group in result.groups:
            non_data = group.structural_members
            non_data_set = set(non_data)
            for unit_id in non_data:
                for dep in graph[unit_id].required_dependencies:
                    if dep not in non_data_set and dep not in content_data:
                        initial.setdefault(dep, None)
            for unit_id in non_data:
                initial.setdefault(unit_id, None)
            if group.is_supporting_config_only:
                for unit_id in group.members:
                    initial.setdefault(unit_id, None)

        self._initial_ids = [
            unit_id for unit_id in initial
            if unit_id in graph
            and all(dep in initial for dep in graph[unit_id].required_dependencies)
        ]
        logger.debug("%d initial work units", len(self._initial_ids))
        return list(self._initial_ids)
