"""Content heuristics: one group per content entity sub-kind.

The goal units are the default-translation content units (e.g. "Article"
for ``d7_node_complete:article``); every other heuristic here gathers
what belongs with a goal unit:

1. ``entity_bundles_dependencies`` lifts the goal's required closure in
2. ``entity_translations`` joins translations to their goal's group
3. ``entity_depending_*`` push dependents of the goal (or its lifted
   prerequisites) into the group of the dependency that runs last
4. ``entity_related_*`` lift units whose source parameters name the
   goal's entity type and bundle
"""

import logging
from typing import List, Optional

from ..constants import TAG_CONFIGURATION
from ..errors import ClusterLabelError
from ..models import ClusterAssignment, ClusterStrategy, HeuristicKind, WorkUnit
from .base import Heuristic, HeuristicView
from .entity import (
    destination_entity_type_id,
    is_content_default_translation,
    is_content_entity_destination,
    is_content_translation,
    source_entity_parameters,
)
from .shared import ConfigNeedingHuman, SharedEntityData, SharedEntityStructure, SharedLanguageConfig

logger = logging.getLogger(__name__)


class ContentEntityBundles(Heuristic):
    id = "entity_bundles"
    cluster_strategy = ClusterStrategy.PER_UNIT
    weight = 100
    goal = True

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        return is_content_default_translation(unit)

    def compute_cluster(self, unit: WorkUnit, view: HeuristicView) -> str:
        return unit.label


class ContentEntityBundlesDependencies(Heuristic):
    """Lifts the recursively required prerequisites of every goal unit."""

    id = "entity_bundles_dependencies"
    kind = HeuristicKind.LIFTING
    cluster_strategy = ClusterStrategy.DEPENDENT_CONTEXT
    depends_on = (
        ContentEntityBundles.id,
        SharedLanguageConfig.id,
        ConfigNeedingHuman.id,
        SharedEntityStructure.id,
        SharedEntityData.id,
    )
    weight = 70
    lifts = True

    def _lookup_table(self, view: HeuristicView):
        memo = view.memo
        if "table" not in memo:
            already_clustered = set(view.matched(*self.depends_on))
            memo["table"] = view.lift().lift_table(
                view.matched(ContentEntityBundles.id), already_clustered
            )
        return memo["table"]

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        return unit.id in self._lookup_table(view)

    def compute_cluster(self, unit: WorkUnit, view: HeuristicView) -> str:
        goal_id = self._lookup_table(view)[unit.id]
        goal_cluster = view.cluster_of(goal_id)
        if goal_cluster is None:
            raise ClusterLabelError(self.id, unit.id, f"goal unit {goal_id} is not clustered")
        return goal_cluster.label


class ContentEntityTranslations(Heuristic):
    id = "entity_translations"
    kind = HeuristicKind.DEPENDENT
    cluster_strategy = ClusterStrategy.DEPENDENT_CONTEXT
    depends_on = (ContentEntityBundles.id,)
    weight = 200

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        if not is_content_translation(unit):
            return False
        goals = set(view.matched(ContentEntityBundles.id))
        return any(d in goals for d in unit.required_dependencies + unit.optional_dependencies)

    def compute_cluster(self, unit: WorkUnit, view: HeuristicView) -> Optional[ClusterAssignment]:
        goals = set(view.matched(ContentEntityBundles.id))
        graph = view.graph
        # A required goal dependency beats an optional one.
        for deps in (unit.required_dependencies, unit.optional_dependencies):
            candidates = graph.sort_ids(d for d in deps if d in goals)
            if candidates:
                return view.cluster_of(candidates[0])
        raise ClusterLabelError(self.id, unit.id, "no goal unit among its dependencies")


class ContentEntityDepending(Heuristic):
    """Pushes dependents of goal units (and their lifted prerequisites)."""

    kind = HeuristicKind.DEPENDENT
    cluster_strategy = ClusterStrategy.DEPENDENT_CONTEXT
    depends_on = (ContentEntityBundles.id, ContentEntityBundlesDependencies.id)

    def _clustered_dependees(self, unit: WorkUnit, view: HeuristicView) -> List[str]:
        # Own matches count too: an entity display depends on a field
        # instance that was pushed the same way.
        clustered = set(view.matched(*self.depends_on, self.id))
        return [d for d in unit.required_dependencies if d in clustered]

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        dependees = self._clustered_dependees(unit, view)
        if not dependees:
            return False
        is_pure_depender = len(dependees) == len(unit.required_dependencies)
        is_non_dependee = not unit.metadata.before
        return is_pure_depender or is_non_dependee

    def compute_cluster(self, unit: WorkUnit, view: HeuristicView) -> Optional[ClusterAssignment]:
        dependees = self._clustered_dependees(unit, view)
        goals = set(view.matched(ContentEntityBundles.id))
        return view.push().target_assignment(unit, dependees, goals)


class ContentEntityDependingConfig(ContentEntityDepending):
    id = "entity_depending_config"
    weight = 80

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        return unit.has_tag(TAG_CONFIGURATION) and super().matches(unit, view)


class ContentEntityDependingContent(ContentEntityDepending):
    id = "entity_depending_content"
    weight = 110

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        return not unit.has_tag(TAG_CONFIGURATION) and super().matches(unit, view)


def candidate_goal_ids(entity_type: str, bundle: Optional[str]) -> List[str]:
    """Goal unit IDs a unit about ``entity_type``/``bundle`` may relate to.

    Most specific first: per-bundle "complete" and regular units, then
    the all-bundle variants.
    """
    candidates = []
    if bundle:
        candidates.extend([
            f"d7_{entity_type}_complete:{bundle}",
            f"d7_{entity_type}:{bundle}",
            f"{entity_type}:{bundle}",
        ])
    candidates.extend([
        f"d7_{entity_type}_complete",
        f"d7_{entity_type}",
        entity_type,
    ])
    return candidates


class ContentEntityIndependentButRelated(Heuristic):
    """Lifts units that are about a goal's entity type and bundle."""

    kind = HeuristicKind.DEPENDENT
    cluster_strategy = ClusterStrategy.DEPENDENT_CONTEXT
    depends_on = (ContentEntityBundles.id,)
    lifts = True

    def _related_goal(self, unit: WorkUnit, view: HeuristicView) -> Optional[str]:
        entity_type, bundle = source_entity_parameters(unit)
        if not entity_type and is_content_entity_destination(unit):
            entity_type = destination_entity_type_id(unit)
        if not entity_type:
            return None
        goals = set(view.matched(ContentEntityBundles.id))
        for candidate in candidate_goal_ids(entity_type, str(bundle) if bundle else None):
            if candidate in goals:
                return candidate
        return None

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        return self._related_goal(unit, view) is not None

    def compute_cluster(self, unit: WorkUnit, view: HeuristicView) -> str:
        goal_id = self._related_goal(unit, view)
        goal_cluster = view.cluster_of(goal_id) if goal_id else None
        if goal_cluster is None:
            raise ClusterLabelError(self.id, unit.id, "related goal unit is not clustered")
        logger.debug("Lifting %s into %s (related to %s)", unit.id, goal_cluster.label, goal_id)
        return goal_cluster.label


class ContentEntityIndependentButRelatedConfig(ContentEntityIndependentButRelated):
    id = "entity_related_config"
    weight = 90

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        return unit.has_tag(TAG_CONFIGURATION) and super().matches(unit, view)


class ContentEntityIndependentButRelatedContent(ContentEntityIndependentButRelated):
    id = "entity_related_content"
    weight = 120

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        return not unit.has_tag(TAG_CONFIGURATION) and super().matches(unit, view)
