"""Heuristic registry.

Simple ordered dict-based registry. The default chain is registered at
import time via ``heuristics/__init__.py``; registration order is the
tie-break the runner keeps among heuristics it is free to reorder.
"""

import logging
from typing import Dict, List, Optional

from .base import Heuristic

logger = logging.getLogger(__name__)


class HeuristicRegistry:
    """Registry for clustering heuristics.

    Class-level store so the engine can call
    ``HeuristicRegistry.default_chain()`` without holding an instance.
    """

    _heuristics: Dict[str, Heuristic] = {}

    @classmethod
    def register(cls, heuristic: Heuristic) -> None:
        """Register a heuristic instance (replacing one with the same ID)."""
        cls._heuristics[heuristic.id] = heuristic
        logger.debug(
            "Registered heuristic: %s (%s, %s)",
            heuristic.id,
            heuristic.kind.value,
            heuristic.cluster_strategy.value,
        )

    @classmethod
    def get_heuristic(cls, heuristic_id: str) -> Optional[Heuristic]:
        """Get a heuristic by ID. Returns ``None`` if not found."""
        return cls._heuristics.get(heuristic_id)

    @classmethod
    def default_chain(cls) -> List[Heuristic]:
        """All registered heuristics, in registration order."""
        return list(cls._heuristics.values())

    @classmethod
    def list_heuristics(cls) -> List[Dict[str, object]]:
        """List all registered heuristics with metadata."""
        return [
            {
                "id": h.id,
                "kind": h.kind.value,
                "cluster_strategy": h.cluster_strategy.value,
                "depends_on": list(h.depends_on),
                "weight": h.weight,
                "catch_all": h.catch_all,
            }
            for h in cls._heuristics.values()
        ]
