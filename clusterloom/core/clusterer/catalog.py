"""Entity type catalog — the destination system's entity type definitions.

The structure heuristics only need three answers about a destination
entity type: does it exist, does it support multiple sub-kinds (bundles),
and what is its plural display name. This is that lookup service.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntityTypeInfo:
    """One destination entity type."""
    id: str
    label: str
    plural_label: str
    bundle_entity_type: Optional[str] = None

    @property
    def has_bundles(self) -> bool:
        return self.bundle_entity_type is not None


class EntityTypeCatalog:
    """Read-only registry of destination entity types."""

    def __init__(self, entity_types: Iterable[EntityTypeInfo] = ()):
        self._types: Dict[str, EntityTypeInfo] = {t.id: t for t in entity_types}

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Mapping[str, Any]]]) -> "EntityTypeCatalog":
        """Build from ``{id: {label, plural_label, bundle_entity_type}}``."""
        types = []
        for type_id, definition in (data or {}).items():
            definition = definition or {}
            label = definition.get("label") or type_id
            types.append(EntityTypeInfo(
                id=type_id,
                label=label,
                plural_label=definition.get("plural_label") or f"{label}s",
                bundle_entity_type=definition.get("bundle_entity_type"),
            ))
        return cls(types)

    def merged(self, other: "EntityTypeCatalog") -> "EntityTypeCatalog":
        """A new catalog where ``other``'s definitions win."""
        combined = dict(self._types)
        combined.update(other._types)
        return EntityTypeCatalog(combined.values())

    def has_definition(self, entity_type_id: Optional[str]) -> bool:
        return entity_type_id is not None and entity_type_id in self._types

    def get_definition(self, entity_type_id: Optional[str]) -> Optional[EntityTypeInfo]:
        if entity_type_id is None:
            return None
        return self._types.get(entity_type_id)

    def supports_bundles(self, entity_type_id: Optional[str]) -> bool:
        """Whether the entity type supports multiple sub-kinds."""
        definition = self.get_definition(entity_type_id)
        return definition is not None and definition.has_bundles

    def plural_label(self, entity_type_id: str) -> str:
        """Plural display name; falls back to the raw ID."""
        definition = self.get_definition(entity_type_id)
        return definition.plural_label if definition else entity_type_id

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, entity_type_id: object) -> bool:
        return entity_type_id in self._types
