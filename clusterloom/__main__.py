import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from .core.clusterer import ClustererConfigurationError, ClusteringEngine, GroupRepository, UnitGraphError
from .core.config import get_settings, reload_configs
from .core.loader import load_units

EXIT_INPUT_ERROR = 1
EXIT_CONFIGURATION_ERROR = 2


def setup_logging(log_level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )


logger = logging.getLogger(__name__)


def _render_text(groups, initial_ids: Optional[List[str]]) -> str:
    lines = []
    for position, group in enumerate(groups, start=1):
        flags = " (skipped by default)" if group.skipped_by_default else ""
        lines.append(f"{position}. {group.label}{flags}")
        data = set(group.data_members)
        for member in group.members:
            marker = "*" if member in data else "-"
            lines.append(f"   {marker} {member}")
        for dep_id, reasons in group.dependencies.items():
            lines.append(f"   requires {dep_id} because of {', '.join(reasons)}")
    if initial_ids is not None:
        lines.append("")
        lines.append("Initial work units:")
        lines.extend(f"   {unit_id}" for unit_id in initial_ids)
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for clusterloom."""
    parser = argparse.ArgumentParser(
        description="Clusterloom - cluster migration work units into ordered groups"
    )
    parser.add_argument(
        "unit_graph",
        type=str,
        help="JSON or YAML unit graph document"
    )
    parser.add_argument(
        "--config-dir",
        type=str,
        default=None,
        help="Directory containing clusterloom.yaml"
    )
    parser.add_argument(
        "--format",
        type=str,
        default="text",
        choices=["json", "text"],
        help="Output format"
    )
    parser.add_argument(
        "--initial-units",
        action="store_true",
        help="Also list the supporting units that can be imported up front"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    if args.config_dir:
        os.environ["CLUSTERLOOM_CONFIG_DIR"] = args.config_dir
        reload_configs()

    try:
        settings = get_settings()
        units, document_catalog = load_units(args.unit_graph)
        engine = ClusteringEngine.from_settings(settings, catalog=document_catalog)
        repository = GroupRepository(engine, lambda: units)
        groups = repository.get_groups()
        initial_ids = repository.initial_unit_ids() if args.initial_units else None
    except UnitGraphError as e:
        logger.error("Invalid unit graph: %s", e)
        return EXIT_INPUT_ERROR
    except ClustererConfigurationError as e:
        logger.error("Clusterer configuration problem: %s", e)
        return EXIT_CONFIGURATION_ERROR

    if args.format == "json":
        payload = {"groups": [g.to_dict() for g in groups]}
        if initial_ids is not None:
            payload["initial_unit_ids"] = initial_ids
        print(json.dumps(payload, indent=2))
    else:
        print(_render_text(groups, initial_ids))
    return 0


if __name__ == "__main__":
    sys.exit(main())
