"""Unit graph loader — reads work unit documents from disk.

Accepts JSON or YAML with this shape::

    entity_types:          # optional, merged over configured types
      node: {label: Content, plural_label: content items, bundle_entity_type: node_type}
    units:
      - id: d7_node_complete:article
        label: Article
        required: [d7_node_type, d7_user]
        optional: []
        tags: [Drupal 7, Content]
        destination: entity_complete:node
        source: {plugin: d7_node_complete, configuration: {node_type: article}}
        row_count: 120
        all_rows_processed: false

Units that have nothing left to do and are not content (no rows, all
rows processed) are omitted; units without rows are categorised as
having no data.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

from .clusterer.catalog import EntityTypeCatalog
from .clusterer.constants import CATEGORY_NO_DATA
from .clusterer.errors import UnitGraphError
from .clusterer.heuristics.entity import is_content_entity_destination
from .clusterer.models import DestinationDescriptor, SourceDescriptor, UnitMetadata, WorkUnit
from .config.config_loader import EntityTypeSettings

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


class DestinationRecord(BaseModel):
    """Destination plugin plus optional sub-kind."""
    plugin_id: str = Field(..., description="Destination plugin ID, e.g. entity_complete:node", min_length=1)
    bundle: Optional[str] = Field(None, description="Destination sub-kind")


class SourceRecord(BaseModel):
    """Source plugin plus classification-only parameters."""
    plugin: str = Field("", description="Source plugin ID")
    configuration: Dict[str, Any] = Field(default_factory=dict, description="Source parameters")


class UnitRecord(BaseModel):
    """One work unit as it appears in a unit graph document."""
    id: str = Field(..., description="Unique unit ID", min_length=1)
    label: Optional[str] = Field(None, description="Human-readable label; defaults to the ID")
    required: List[str] = Field(default_factory=list, description="Required dependency IDs")
    optional: List[str] = Field(default_factory=list, description="Optional dependency IDs")
    tags: List[str] = Field(default_factory=list, description="Classification tags")
    destination: Union[str, DestinationRecord] = Field("null", description="Destination plugin")
    source: SourceRecord = Field(default_factory=SourceRecord, description="Source plugin")
    row_count: Optional[int] = Field(None, description="Source rows, if known")
    all_rows_processed: bool = Field(False, description="Whether every source row was processed")

    def to_work_unit(self) -> WorkUnit:
        if isinstance(self.destination, str):
            destination = DestinationDescriptor(self.destination)
        else:
            destination = DestinationDescriptor(self.destination.plugin_id, self.destination.bundle)
        return WorkUnit(
            id=self.id,
            label=self.label or self.id,
            required_dependencies=list(self.required),
            optional_dependencies=list(self.optional),
            tags=frozenset(self.tags),
            destination=destination,
            source=SourceDescriptor(self.source.plugin, dict(self.source.configuration)),
            row_count=self.row_count,
            metadata=UnitMetadata(category=CATEGORY_NO_DATA if self.row_count == 0 else None),
        )


class UnitGraphDocument(BaseModel):
    """A complete unit graph as handed over by the unit provider."""
    entity_types: Dict[str, EntityTypeSettings] = Field(
        default_factory=dict, description="Extra destination entity types"
    )
    units: List[UnitRecord] = Field(..., description="All executable work units")

    def catalog(self) -> EntityTypeCatalog:
        return EntityTypeCatalog.from_mapping(
            {k: v.model_dump() for k, v in self.entity_types.items()}
        )


def parse_document(data: Any) -> UnitGraphDocument:
    """Validate already-decoded document data."""
    if not isinstance(data, dict):
        raise UnitGraphError("Unit graph document must be a mapping with a 'units' list")
    try:
        return UnitGraphDocument.model_validate(data)
    except ValidationError as e:
        raise UnitGraphError(f"Invalid unit graph document: {e}") from e


def load_document(path: Union[str, Path]) -> UnitGraphDocument:
    """Read and validate a JSON or YAML unit graph document."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in YAML_SUFFIXES:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except OSError as e:
        raise UnitGraphError(f"Cannot read unit graph {path}: {e}") from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise UnitGraphError(f"Cannot parse unit graph {path}: {e}") from e

    document = parse_document(data)
    logger.info("Loaded %d work units from %s", len(document.units), path)
    return document


def is_omittable(record: UnitRecord, unit: WorkUnit) -> bool:
    """Dataless, fully processed, and not a content unit."""
    return (
        record.row_count == 0
        and record.all_rows_processed
        and not is_content_entity_destination(unit)
    )


def build_units(document: UnitGraphDocument) -> List[WorkUnit]:
    """Work units for the engine, omittable ones dropped."""
    units: List[WorkUnit] = []
    omitted = []
    for record in document.units:
        unit = record.to_work_unit()
        if is_omittable(record, unit):
            omitted.append(unit.id)
            continue
        units.append(unit)
    if omitted:
        logger.debug("Omitting %d dataless work units: %s", len(omitted), ", ".join(omitted))
    return units


def load_units(path: Union[str, Path]) -> Tuple[List[WorkUnit], EntityTypeCatalog]:
    """Units plus the entity types the document declares."""
    document = load_document(path)
    return build_units(document), document.catalog()
