"""Configuration loading for clusterloom.

Settings live in ``config/clusterloom.yaml`` at the project root (the
directory can be moved with ``CLUSTERLOOM_CONFIG_DIR``). The raw YAML is
cached after the first read; ``reload_configs()`` drops the cache.

A few numeric knobs can be overridden from the environment (or a
``.env`` file), which wins over the YAML value:

- ``CLUSTERLOOM_ALPHABETICAL_THRESHOLD``: sorter.alphabetical_threshold
- ``CLUSTERLOOM_MAX_REVISITS``: lift.max_revisits
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from ..clusterer.constants import LABEL_LANGUAGE_SETTINGS
from ..clusterer.context import DEFAULT_SELF_REFERENCE_FAMILIES
from ..clusterer.errors import ClustererConfigurationError

load_dotenv()

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "clusterloom.yaml"

_config_cache: Optional[Dict[str, Any]] = None
_settings_cache: Optional["ClustererSettings"] = None


class SorterSettings(BaseModel):
    """Group execution-order sorter knobs."""
    very_high_impact_multiplier: int = Field(
        100000, description="Weight band for groups other high-impact groups depend on", gt=0
    )
    high_impact_multiplier: int = Field(
        10000, description="Weight band for the remaining depended-upon groups", gt=0
    )
    alphabetical_threshold: int = Field(
        10, description="Below this many groups, sort alphabetically only", ge=0
    )
    correction_offset: int = Field(
        100, description="How far above a lifted group an under-weighted blocker is pulled", gt=0
    )
    lift_exempt_labels: List[str] = Field(
        default_factory=lambda: [LABEL_LANGUAGE_SETTINGS],
        description="Group labels never used as a lift target",
    )


class LiftSettings(BaseModel):
    """Recursive lifting knobs."""
    max_revisits: int = Field(
        1, description="Times a unit may reappear on one recursion path before it is a cycle", ge=0
    )
    self_reference_families: List[str] = Field(
        default_factory=lambda: list(DEFAULT_SELF_REFERENCE_FAMILIES),
        description="fnmatch patterns of unit families that legitimately reference themselves",
    )

    @property
    def max_path_visits(self) -> int:
        return self.max_revisits + 1


class EntityTypeSettings(BaseModel):
    """One destination entity type, as the catalog needs it."""
    label: Optional[str] = Field(None, description="Singular display name")
    plural_label: Optional[str] = Field(None, description="Plural display name")
    bundle_entity_type: Optional[str] = Field(
        None, description="Entity type holding its sub-kinds; unset when it has none"
    )


class ClustererSettings(BaseModel):
    """Everything the clustering engine reads from configuration."""
    sorter: SorterSettings = Field(default_factory=SorterSettings)
    lift: LiftSettings = Field(default_factory=LiftSettings)
    entity_types: Dict[str, EntityTypeSettings] = Field(
        default_factory=dict, description="Destination entity types by ID"
    )

    def entity_type_mapping(self) -> Dict[str, Dict[str, Any]]:
        return {k: v.model_dump() for k, v in self.entity_types.items()}


def get_config_path() -> Path:
    """Directory holding ``clusterloom.yaml``."""
    override = os.getenv("CLUSTERLOOM_CONFIG_DIR")
    if override:
        return Path(override)
    return Path(__file__).parent.parent.parent.parent / "config"


def load_unified_config() -> Dict[str, Any]:
    """Raw YAML configuration, cached. Missing file means defaults."""
    global _config_cache
    if _config_cache is not None:
        return _config_cache

    config_file = get_config_path() / CONFIG_FILENAME
    if not config_file.exists():
        logger.warning("%s not found at %s, using defaults", CONFIG_FILENAME, config_file)
        _config_cache = {}
        return _config_cache

    try:
        with open(config_file, "r") as f:
            loaded = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ClustererConfigurationError(f"Invalid YAML in {config_file}: {e}") from e

    if not isinstance(loaded, dict):
        raise ClustererConfigurationError(f"{config_file} must contain a mapping at the top level")

    logger.debug("Loaded configuration from %s", config_file)
    _config_cache = loaded
    return _config_cache


def get_config_value(*keys: str, default: Any = None) -> Any:
    """Nested lookup into the raw configuration.

    Example: ``get_config_value("clusterloom", "sorter", "correction_offset")``.
    """
    node: Any = load_unified_config()
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ClustererConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def get_settings() -> ClustererSettings:
    """Validated clusterer settings, cached until ``reload_configs()``."""
    global _settings_cache
    if _settings_cache is not None:
        return _settings_cache

    section = dict(get_config_value("clusterloom", default={}) or {})
    sorter = dict(section.get("sorter") or {})
    lift = dict(section.get("lift") or {})

    threshold = _env_int("CLUSTERLOOM_ALPHABETICAL_THRESHOLD")
    if threshold is not None:
        sorter["alphabetical_threshold"] = threshold
    max_revisits = _env_int("CLUSTERLOOM_MAX_REVISITS")
    if max_revisits is not None:
        lift["max_revisits"] = max_revisits

    try:
        _settings_cache = ClustererSettings(
            sorter=sorter,
            lift=lift,
            entity_types=section.get("entity_types") or {},
        )
    except ValidationError as e:
        raise ClustererConfigurationError(f"Invalid clusterloom configuration: {e}") from e
    return _settings_cache


def reload_configs() -> None:
    """Drop cached configuration so the next read hits the file again."""
    global _config_cache, _settings_cache
    _config_cache = None
    _settings_cache = None
    logger.info("Configuration caches cleared")
