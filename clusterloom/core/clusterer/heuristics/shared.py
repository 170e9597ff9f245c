"""Independent heuristics: clusters decided from a unit's own attributes.

These run first. They claim the supporting configuration everything else
depends on (language, text formats, shared entity structure) and the few
well-known special-purpose groups (blocks, books, moderation flows).
"""

import logging

from ..constants import (
    ENTITY_TYPE_KNOWN_REMAP,
    LABEL_BEAN_BLOCK_PLACEMENTS,
    LABEL_BLOCK_PLACEMENTS,
    LABEL_BOOK_OUTLINES,
    LABEL_COLOR_API,
    LABEL_LANGUAGE_SETTINGS,
    LABEL_VOTE_TYPES,
    PARAGRAPHS_LEGACY_ENTITY_TYPE_IDS,
    PARAGRAPHS_MIGRATION_BASE_IDS,
    SHARED_DATA_PREFIX,
    SHARED_STRUCTURE_PREFIX,
    TEXT_FORMAT_UNIT_ID,
)
from ..errors import ClusterLabelError
from ..models import ClusterStrategy, WorkUnit
from .base import FixedClusterHeuristic, Heuristic, HeuristicView
from .entity import (
    destination_entity_type_id,
    is_config_entity_destination,
    source_entity_parameters,
)

logger = logging.getLogger(__name__)


class SharedLanguageConfig(FixedClusterHeuristic):
    id = "lang"
    fixed_label = LABEL_LANGUAGE_SETTINGS
    unit_ids = frozenset({
        "language",
        "default_language",
        "d7_language_types",
        "d7_language_negotiation_settings",
        "language_prefixes_and_domains",
    })


class ConfigNeedingHuman(Heuristic):
    """Configuration an operator has to review before anything else runs."""

    id = "config_needs_human"
    cluster_strategy = ClusterStrategy.PER_UNIT

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        return unit.id == TEXT_FORMAT_UNIT_ID

    def compute_cluster(self, unit: WorkUnit, view: HeuristicView) -> str:
        return unit.label


class BlockPlacements(FixedClusterHeuristic):
    id = "blocks"
    fixed_label = LABEL_BLOCK_PLACEMENTS
    weight = 500
    base_ids = frozenset({"d7_block", "d7_block_translation"})


class BeanBlockPlacements(FixedClusterHeuristic):
    id = "bean_blocks"
    fixed_label = LABEL_BEAN_BLOCK_PLACEMENTS
    weight = 500
    base_ids = frozenset({
        "bean_block",
        "bean_block_translation_et",
        "bean_block_translation_i18n",
    })


class ModerationFlow(Heuristic):
    id = "moderation_flow"
    cluster_strategy = ClusterStrategy.PER_UNIT
    weight = 50

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        return unit.base_id == "workbench_moderation_flow"

    def compute_cluster(self, unit: WorkUnit, view: HeuristicView) -> str:
        return unit.label


class SharedVoteTypeConfig(FixedClusterHeuristic):
    id = "vote_type"
    fixed_label = LABEL_VOTE_TYPES
    base_ids = frozenset({"d7_vote_type", "fivestar_vote_type"})


class SharedColorapi(FixedClusterHeuristic):
    id = "enable_colorapi"
    fixed_label = LABEL_COLOR_API
    base_ids = frozenset({"enable_colorapi"})


class SharedBookData(FixedClusterHeuristic):
    id = "book"
    fixed_label = LABEL_BOOK_OUTLINES
    weight = 500
    unit_ids = frozenset({"d7_book"})


class SharedEntityStructure(Heuristic):
    """Bundle-agnostic structure shared by every sub-kind of an entity type.

    Field storage, view modes and similar configuration only deserve a
    group of their own when the entity type actually has several bundles
    to share it between; the entity catalog answers that.
    """

    id = "shared_structure"
    cluster_strategy = ClusterStrategy.PER_UNIT

    # Media view modes are shared across all media types.
    SHARED_MEDIA_SOURCE_PLUGINS = frozenset({"d7_media_view_mode"})

    ENTITY_TYPE_SOURCE_BASE_IDS = frozenset({
        "d7_field",
        "d7_field_instance",
        "d7_field_formatter_settings",
        "d7_field_instance_widget_settings",
        "d7_view_modes",
    })

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        dest_type = destination_entity_type_id(unit)
        if dest_type in ("paragraphs_type", "menu"):
            return True
        # Targets non-bundleable menu links but belongs with the menus.
        if unit.id == "d7_language_content_menu_settings":
            return True

        source_type, source_bundle = source_entity_parameters(unit)
        if (
            source_type in PARAGRAPHS_LEGACY_ENTITY_TYPE_IDS
            and unit.base_id in self.ENTITY_TYPE_SOURCE_BASE_IDS
        ):
            return True

        if not is_config_entity_destination(unit):
            return False
        if unit.source.plugin in self.SHARED_MEDIA_SOURCE_PLUGINS:
            return True
        if not source_type or source_bundle:
            return False

        expected_type = ENTITY_TYPE_KNOWN_REMAP.get(source_type, source_type)
        if not view.catalog.has_definition(expected_type):
            return False

        has_bundles = view.catalog.supports_bundles(expected_type)
        if has_bundles and unit.metadata.after:
            logger.warning(
                "Work unit %s looks like shared structure for %s but depends on %s; "
                "leaving it to later heuristics",
                unit.id,
                expected_type,
                ", ".join(unit.metadata.after),
            )
            return False
        return has_bundles

    def compute_cluster(self, unit: WorkUnit, view: HeuristicView) -> str:
        source = unit.source
        field_entity_type = source.get("entity_type")
        dest_type = destination_entity_type_id(unit)
        target_type = source.constant("target_type")

        # Paragraphs and field collections both land in paragraphs but keep
        # their own shared structure group.
        if field_entity_type == "field_collection_item" or source.plugin == "d7_field_collection_type":
            plural = "field collection items"
        elif field_entity_type == "paragraphs_item" or source.plugin == "d7_paragraphs_type":
            plural = "paragraphs"
        elif source.plugin in self.SHARED_MEDIA_SOURCE_PLUGINS or field_entity_type == "file":
            plural = view.catalog.plural_label("media")
        elif field_entity_type:
            plural = view.catalog.plural_label(field_entity_type)
        elif target_type:
            if target_type == "menu_link_content":
                target_type = "menu"
            plural = view.catalog.plural_label(target_type)
        elif dest_type:
            plural = view.catalog.plural_label(dest_type)
        else:
            raise ClusterLabelError(self.id, unit.id, "no entity type to name the shared structure after")

        return f"{SHARED_STRUCTURE_PREFIX}{plural}"


class SharedEntityData(Heuristic):
    """Nested paragraph/field collection data, shared by all host bundles."""

    id = "shared_data"
    cluster_strategy = ClusterStrategy.PER_UNIT

    def matches(self, unit: WorkUnit, view: HeuristicView) -> bool:
        if destination_entity_type_id(unit) != "paragraph":
            return False
        parts = unit.id.split(":")
        if len(parts) < 3:
            return False
        base_id, parent_type = parts[0], parts[1]
        return (
            base_id in PARAGRAPHS_MIGRATION_BASE_IDS
            and parent_type in PARAGRAPHS_LEGACY_ENTITY_TYPE_IDS
        )

    def compute_cluster(self, unit: WorkUnit, view: HeuristicView) -> str:
        parent_type = unit.source.get("parent_type") or "unknown"
        dest_type = destination_entity_type_id(unit) or "unknown"

        if (dest_type, parent_type) == ("paragraph", "field_collection_item"):
            plural = "nested field collection items"
        elif (dest_type, parent_type) == ("paragraph", "paragraphs_item"):
            plural = "nested paragraphs"
        else:
            plural = view.catalog.plural_label(dest_type)
        return f"{SHARED_DATA_PREFIX}{plural}"
