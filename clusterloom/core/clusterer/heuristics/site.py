"""Dependent heuristics for site-wide configuration and leftovers.

Runs after the content heuristics have claimed everything that belongs
to a content group. What remains is site configuration, config entities
and units that can simply follow their dependencies; the catch-all takes
the rest.
"""

import logging
from typing import List, Optional

from ..constants import LABEL_OTHER, LABEL_SITE_CONFIGURATION
from ..errors import ClusterLabelError
from ..models import ClusterAssignment, ClusterStrategy, HeuristicKind, WorkUnit
from .base import Heuristic, HeuristicView
from .content import (
    ContentEntityBundlesDependencies,
    ContentEntityDependingConfig,
    ContentEntityIndependentButRelatedConfig,
)
from .entity import destination_entity_type_id, is_config_entity_destination
from .shared import ConfigNeedingHuman, ModerationFlow, SharedLanguageConfig

logger = logging.getLogger(__name__)


class SiteConfiguration(Heuristic):
    """Stand-alone simple configuration: no dependencies, no dependents."""

    id = "site_config"
    kind = HeuristicKind.DEPENDENT
    fixed_label = LABEL_SITE_CONFIGURATION
    depends_on = (ConfigNeedingHuman.id, SharedLanguageConfig.id)
    weight = 500

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        claimed = set(view.matched(*self.depends_on))
        return (
            unit.id not in claimed
            and not unit.metadata.before
            and not unit.metadata.after
            and destination_entity_type_id(unit) is None
        )


class PushedToSiteConfiguration(Heuristic):
    id = "site_config_pushed"
    kind = HeuristicKind.DEPENDENT
    fixed_label = LABEL_SITE_CONFIGURATION
    depends_on = (SiteConfiguration.id,)
    weight = 500

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        # Without dependencies it is safe anywhere; probably a config
        # entity or simple configuration with a translation.
        if not unit.metadata.after:
            return True
        site_units = set(view.matched(SiteConfiguration.id, self.id))
        return any(d in site_units for d in unit.required_dependencies)


class PushedToModerationFlow(Heuristic):
    """Pulls a moderation flow's prerequisites into the flow's group."""

    id = "moderation_flow_pushed"
    kind = HeuristicKind.LIFTING
    cluster_strategy = ClusterStrategy.DEPENDENT_CONTEXT
    depends_on = (ModerationFlow.id,)
    weight = 40

    def _flow_prerequisites(self, view: HeuristicView):
        memo = view.memo
        if "prerequisites" not in memo:
            prerequisites = set()
            for flow_id in view.matched(ModerationFlow.id):
                prerequisites.update(view.graph[flow_id].required_dependencies)
            memo["prerequisites"] = prerequisites
        return memo["prerequisites"]

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        if not view.matched(ModerationFlow.id):
            return False
        return unit.id in self._flow_prerequisites(view)

    def compute_cluster(self, unit: WorkUnit, view: HeuristicView) -> Optional[ClusterAssignment]:
        successors = set(unit.metadata.before)
        for flow_id in view.matched(ModerationFlow.id):
            if flow_id in successors:
                return view.cluster_of(flow_id)
        raise ClusterLabelError(self.id, unit.id, "no moderation flow runs after it")


class ConfigEntity(Heuristic):
    """One group per remaining config entity unit, named after the unit."""

    id = "config_entity"
    kind = HeuristicKind.DEPENDENT
    cluster_strategy = ClusterStrategy.PER_UNIT
    depends_on = (
        SiteConfiguration.id,
        PushedToSiteConfiguration.id,
        ContentEntityBundlesDependencies.id,
        ContentEntityDependingConfig.id,
        ContentEntityIndependentButRelatedConfig.id,
    )
    weight = 500

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        return is_config_entity_destination(unit)

    def compute_cluster(self, unit: WorkUnit, view: HeuristicView) -> str:
        return unit.label


def _clustered(unit: WorkUnit, view: HeuristicView) -> List[str]:
    return [d for d in unit.required_dependencies if view.cluster_of(d) is not None]


class PushedToDependency(Heuristic):
    """Moves a leftover unit nothing depends on next to its dependencies.

    Applies as soon as one required dependency has been clustered; the
    unit joins the group of the clustered one that executes last.
    """

    id = "pushed_to_dependency"
    kind = HeuristicKind.DEPENDENT
    cluster_strategy = ClusterStrategy.DEPENDENT_CONTEXT
    weight = 600

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        if unit.metadata.before or not unit.required_dependencies:
            return False
        return bool(_clustered(unit, view))

    def compute_cluster(self, unit: WorkUnit, view: HeuristicView) -> Optional[ClusterAssignment]:
        return view.push().target_assignment(unit, _clustered(unit, view))


class Other(Heuristic):
    id = "other"
    kind = HeuristicKind.DEPENDENT
    fixed_label = LABEL_OTHER
    weight = 1000
    catch_all = True

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        return True
