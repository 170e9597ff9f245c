"""Clustering heuristics.

The default chain is registered on import, in the order the runner uses
as its tie-break. The catch-all is registered last.
"""

from .base import FixedClusterHeuristic, Heuristic, HeuristicView
from .registry import HeuristicRegistry

# ── Register the default chain ───────────────────────────────────────

from .content import (
    ContentEntityBundles,
    ContentEntityBundlesDependencies,
    ContentEntityDependingConfig,
    ContentEntityDependingContent,
    ContentEntityIndependentButRelatedConfig,
    ContentEntityIndependentButRelatedContent,
    ContentEntityTranslations,
)
from .shared import (
    BeanBlockPlacements,
    BlockPlacements,
    ConfigNeedingHuman,
    ModerationFlow,
    SharedBookData,
    SharedColorapi,
    SharedEntityData,
    SharedEntityStructure,
    SharedLanguageConfig,
    SharedVoteTypeConfig,
)
from .site import (
    ConfigEntity,
    Other,
    PushedToDependency,
    PushedToModerationFlow,
    PushedToSiteConfiguration,
    SiteConfiguration,
)

for _heuristic in (
    SharedLanguageConfig(),
    ConfigNeedingHuman(),
    BlockPlacements(),
    BeanBlockPlacements(),
    ModerationFlow(),
    SharedVoteTypeConfig(),
    SharedColorapi(),
    SharedEntityStructure(),
    SharedEntityData(),
    SharedBookData(),
    SiteConfiguration(),
    PushedToModerationFlow(),
    ContentEntityBundles(),
    ContentEntityBundlesDependencies(),
    ContentEntityTranslations(),
    ContentEntityDependingConfig(),
    ContentEntityDependingContent(),
    ContentEntityIndependentButRelatedConfig(),
    ContentEntityIndependentButRelatedContent(),
    PushedToSiteConfiguration(),
    ConfigEntity(),
    PushedToDependency(),
    Other(),
):
    HeuristicRegistry.register(_heuristic)

__all__ = [
    "BeanBlockPlacements",
    "BlockPlacements",
    "ConfigEntity",
    "ConfigNeedingHuman",
    "ContentEntityBundles",
    "ContentEntityBundlesDependencies",
    "ContentEntityDependingConfig",
    "ContentEntityDependingContent",
    "ContentEntityIndependentButRelatedConfig",
    "ContentEntityIndependentButRelatedContent",
    "ContentEntityTranslations",
    "FixedClusterHeuristic",
    "Heuristic",
    "HeuristicRegistry",
    "HeuristicView",
    "ModerationFlow",
    "Other",
    "PushedToDependency",
    "PushedToModerationFlow",
    "PushedToSiteConfiguration",
    "SharedBookData",
    "SharedColorapi",
    "SharedEntityData",
    "SharedEntityStructure",
    "SharedLanguageConfig",
    "SharedVoteTypeConfig",
    "SiteConfiguration",
]
