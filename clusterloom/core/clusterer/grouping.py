"""Group assembly — from clustered units to migration groups.

1. Create one group per cluster label, in order of the first non-lifted
   unit claiming it (lifted units never open a group of their own)
2. Fold every unit into its group; lifted units are supporting members,
   except lifted Content units which stay part of the payload
3. Order members: heuristic output chunks, re-stabilised so an
   intra-group required dependency always comes first, data members last
4. Record cross-group required dependencies, keyed by the group depended
   upon, with the depended-upon unit IDs as the reason
"""

import heapq
import logging
from typing import Dict, List, Sequence

from .constants import TAG_CONTENT
from .graph import UnitGraph
from .models import Group, WorkUnit, has_no_data

logger = logging.getLogger(__name__)


def is_data_member(unit: WorkUnit) -> bool:
    """Whether a unit is part of its group's payload."""
    cluster = unit.metadata.cluster
    return cluster is not None and (not cluster.lifted or unit.has_tag(TAG_CONTENT))


def build_groups(graph: UnitGraph, ordered_unit_ids: Sequence[str]) -> List[Group]:
    """Assemble groups from a completed chain run.

    Returns groups in creation order; sorting them is the sorter's job.
    """
    groups: Dict[str, Group] = {}
    for unit_id in ordered_unit_ids:
        cluster = graph[unit_id].metadata.cluster
        if not cluster.lifted and cluster.label not in groups:
            groups[cluster.label] = Group.for_label(cluster.label)

    structural: Dict[str, List[str]] = {label: [] for label in groups}
    data: Dict[str, List[str]] = {label: [] for label in groups}
    group_of: Dict[str, Group] = {}
    for unit_id in ordered_unit_ids:
        unit = graph[unit_id]
        label = unit.metadata.cluster.label
        if label not in groups:
            # Only lifted units claim this label; it still needs a home.
            logger.warning("Cluster %s only has lifted members, e.g. %s", label, unit_id)
            groups[label] = Group.for_label(label)
            structural[label], data[label] = [], []
        group_of[unit_id] = groups[label]
        (data if is_data_member(unit) else structural)[label].append(unit_id)

    for label, group in groups.items():
        group.data_members = stabilise(graph, data[label])
        group.members = stabilise(graph, structural[label]) + group.data_members
        group.skipped_by_default = bool(group.data_members) and all(
            has_no_data(graph[m]) for m in group.data_members
        )

    for unit_id in ordered_unit_ids:
        group = group_of[unit_id]
        for dep in graph[unit_id].required_dependencies:
            dep_group = group_of.get(dep)
            if dep_group is None or dep_group is group:
                continue
            reasons = group.dependencies.setdefault(dep_group.id, [])
            if dep not in reasons:
                reasons.append(dep)

    logger.info("Assembled %d groups from %d work units", len(groups), len(ordered_unit_ids))
    return list(groups.values())


def stabilise(graph: UnitGraph, unit_ids: Sequence[str]) -> List[str]:
    """Keep the given order, except that required dependencies come first.

    Kahn's algorithm over the required edges inside ``unit_ids``, always
    releasing the earliest ready unit in the original order.
    """
    index = {uid: i for i, uid in enumerate(unit_ids)}
    pending: Dict[str, int] = {}
    dependents: Dict[str, List[str]] = {uid: [] for uid in unit_ids}
    for uid in unit_ids:
        local = [d for d in dict.fromkeys(graph[uid].required_dependencies) if d in index and d != uid]
        pending[uid] = len(local)
        for dep in local:
            dependents[dep].append(uid)

    ready = [index[uid] for uid in unit_ids if pending[uid] == 0]
    heapq.heapify(ready)
    ordered: List[str] = []
    while ready:
        uid = unit_ids[heapq.heappop(ready)]
        ordered.append(uid)
        for dependent in dependents[uid]:
            pending[dependent] -= 1
            if pending[dependent] == 0:
                heapq.heappush(ready, index[dependent])

    if len(ordered) < len(unit_ids):
        # Unreachable for an acyclic unit graph; keep the rest as given.
        placed = set(ordered)
        ordered.extend(uid for uid in unit_ids if uid not in placed)
    return ordered
