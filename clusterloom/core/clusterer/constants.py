"""Shared constants for the clusterer: tags, destination ids, cluster labels.

Kept in one place so heuristics, grouping and the sorter agree on the
exact strings the loader hands over.
"""

# =============================================================================
# Unit IDs
# =============================================================================

# Separates a base ID from its derivative parts: "d7_node_complete:article".
DERIVATIVE_SEPARATOR = ":"

# =============================================================================
# Tags
# =============================================================================

TAG_CONFIGURATION = "Configuration"
TAG_CONTENT = "Content"
TAG_TRANSLATION = "translation"
TAG_MULTILINGUAL = "Multilingual"

# =============================================================================
# Destinations
# =============================================================================

# Destination base IDs whose derivative names an entity type.
ENTITY_DESTINATION_BASE_IDS = frozenset({
    "entity",
    "entity_revision",
    "entity_complete",
    "entity_reference_revisions",
})

# Destination base IDs that stand-alone content entities use.
CONTENT_ENTITY_DESTINATION_BASE_IDS = frozenset({
    "entity",
    "entity_complete",
    "entity_revision",
})

# Config destinations which are not "entity:*" derivatives.
KNOWN_CONFIG_DESTINATION_PLUGINS = frozenset({
    "component_entity_display",
    "component_entity_form_display",
})

# Legacy source entity types that land in a different destination entity type.
ENTITY_TYPE_KNOWN_REMAP = {
    "field_collection_item": "paragraph",
    "paragraphs_item": "paragraph",
    "multifield": "paragraph",
    "file": "media",
    "bean": "block_content",
}

PARAGRAPHS_LEGACY_ENTITY_TYPE_IDS = ("paragraphs_item", "field_collection_item")

PARAGRAPHS_MIGRATION_BASE_IDS = (
    "d7_paragraphs",
    "d7_paragraphs_revisions",
    "d7_field_collection",
    "d7_field_collection_revisions",
)

MULTIFIELD_BASE_IDS = ("multifield", "pm_multifield")

# =============================================================================
# Cluster labels
# =============================================================================

LABEL_LANGUAGE_SETTINGS = "Language settings"
LABEL_SITE_CONFIGURATION = "Site configuration"
LABEL_BLOCK_PLACEMENTS = "Block placements"
LABEL_BEAN_BLOCK_PLACEMENTS = "Bean block placements"
LABEL_BOOK_OUTLINES = "Book outlines"
LABEL_VOTE_TYPES = "Shared structure for Vote types"
LABEL_COLOR_API = "Shared structure for Color API fields"
LABEL_OTHER = "Other"

SHARED_STRUCTURE_PREFIX = "Shared structure for "
SHARED_DATA_PREFIX = "Shared data for "

# The text format unit: nearly everything depends on it.
TEXT_FORMAT_UNIT_ID = "d7_filter_format"

# =============================================================================
# Categories
# =============================================================================

CATEGORY_NO_DATA = "no_data"

# =============================================================================
# Group IDs
# =============================================================================

GROUP_ID_PATTERN = r"^[a-f0-9]{32}-[^/]{1,192}$"
GROUP_LABEL_MAX_LENGTH = 192
