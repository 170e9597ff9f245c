# Clusterloom configuration - YAML file plus env overrides, validated with pydantic
from .config_loader import (
    ClustererSettings,
    EntityTypeSettings,
    LiftSettings,
    SorterSettings,
    get_config_path,
    get_config_value,
    get_settings,
    load_unified_config,
    reload_configs,
)

__all__ = [
    "ClustererSettings",
    "EntityTypeSettings",
    "LiftSettings",
    "SorterSettings",
    "get_config_path",
    "get_config_value",
    "get_settings",
    "load_unified_config",
    "reload_configs",
]
