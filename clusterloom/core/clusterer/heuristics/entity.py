"""Entity classification helpers shared by the structure/content heuristics.

Every question here is answered from a unit's own attributes: its tags,
its destination plugin and its classification-only source parameters.
"""

import re
from typing import NamedTuple, Optional

from ..constants import (
    CONTENT_ENTITY_DESTINATION_BASE_IDS,
    KNOWN_CONFIG_DESTINATION_PLUGINS,
    MULTIFIELD_BASE_IDS,
    TAG_CONFIGURATION,
    TAG_CONTENT,
    TAG_MULTILINGUAL,
    TAG_TRANSLATION,
)
from ..models import WorkUnit

# Units whose source names the related entity type under "entity_type_id".
_ENTITY_TYPE_ID_SOURCES = frozenset({
    "d7_url_alias",
    "d7_menu_links",
    "d7_menu_links_localized",
    "d7_menu_links_translation",
    "node_translation_menu_links",
    "d7_path_redirect",
    "d7_metatag_field_instance",
    "d7_metatag_field_instance_widget_settings",
})

_MULTIFIELD_SOURCES = frozenset({
    "multifield_type",
    "multifield_translation_settings",
    "pm_multifield_type",
    "pm_multifield_translation_settings",
})

_NODE_COUNTER_SOURCES = frozenset({
    "statistics_node_counter",
    "statistics_node_translation_counter",
})

# Destinations that are entities but not part of the content model when
# they are derived per related entity type.
_PER_ENTITY_SUPPORT_TYPES = frozenset({"path_alias", "menu_link_content", "redirect"})

_COMMENT_NODE_BUNDLE = re.compile(r"^comment_node_(.+)$")


class SourceEntityParameters(NamedTuple):
    entity_type: Optional[str]
    bundle: Optional[str]


def source_entity_parameters(unit: WorkUnit) -> SourceEntityParameters:
    """The entity type and bundle a unit's source is about, if any.

    Comment bundles are normalised to the host node type, so
    ``comment_node_article`` and ``article`` relate to the same bundle.
    """
    source = unit.source
    base_id = unit.base_id

    if base_id in _ENTITY_TYPE_ID_SOURCES:
        entity_type = source.get("entity_type_id")
        bundle = source.get("bundle")
    elif base_id in _MULTIFIELD_SOURCES:
        entity_type, bundle = "multifield", None
    elif base_id in _NODE_COUNTER_SOURCES:
        entity_type, bundle = "node", source.get("node_type")
    else:
        entity_type = source.get("entity_type") or source.constant("entity_type")
        bundle = source.get("node_type") or source.get("bundle") or source.get("type")

    if entity_type == "comment" and bundle and source.get("node_type") is None:
        match = _COMMENT_NODE_BUNDLE.match(bundle)
        if match:
            bundle = match.group(1)
        elif bundle == "comment_forum":
            bundle = "forum"

    return SourceEntityParameters(entity_type, bundle)


def destination_entity_type_id(unit: WorkUnit) -> Optional[str]:
    return unit.destination.entity_type_id


def is_config_entity_destination(unit: WorkUnit) -> bool:
    plugin_id = unit.destination.plugin_id
    return unit.has_tag(TAG_CONFIGURATION) and (
        plugin_id.startswith("entity:") or plugin_id in KNOWN_CONFIG_DESTINATION_PLUGINS
    )


def is_content_entity_destination(unit: WorkUnit) -> bool:
    """Whether the unit creates stand-alone content entities."""
    dest_type = destination_entity_type_id(unit)
    if dest_type in _PER_ENTITY_SUPPORT_TYPES and source_entity_parameters(unit).entity_type is not None:
        return False
    # Multifield data always belongs to a host entity.
    if unit.base_id in MULTIFIELD_BASE_IDS:
        return False
    return (
        unit.has_tag(TAG_CONTENT)
        and unit.destination.base_id in CONTENT_ENTITY_DESTINATION_BASE_IDS
    )


def is_translation(unit: WorkUnit) -> bool:
    return unit.has_tag(TAG_TRANSLATION) or unit.has_tag(TAG_MULTILINGUAL)


def is_content_translation(unit: WorkUnit) -> bool:
    return is_content_entity_destination(unit) and is_translation(unit)


def is_content_default_translation(unit: WorkUnit) -> bool:
    """Goal units: default-translation content entity destinations."""
    return is_content_entity_destination(unit) and not is_translation(unit)
