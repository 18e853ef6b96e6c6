"""
Layout engine contract, shared geometry helpers and strategy factory.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from src.graph.models import Edge, Node, NodePositions, Position

logger = logging.getLogger(__name__)


class LayoutAlgorithm(str, Enum):
    FORCE_DIRECTED = "force-directed"
    HIERARCHICAL = "hierarchical"
    CIRCULAR = "circular"


@dataclass(frozen=True)
class LayoutOptions:
    """
    Options shared by all layout strategies.

    Attributes:
        width: Viewport width
        height: Viewport height
        iterations: Maximum simulation ticks (force-directed)
        node_spacing: Horizontal gap between nodes in a rank (hierarchical)
        level_separation: Vertical gap between ranks (hierarchical)
        padding: Margin kept free by scale_to_fit
        time_budget_ms: Wall-clock budget for the simulation (force-directed)
        seed: Seed for random placement; None for nondeterministic layouts
    """

    width: float = 1200.0
    height: float = 800.0
    iterations: int = 300
    node_spacing: float = 100.0
    level_separation: float = 150.0
    padding: float = 50.0
    time_budget_ms: float = 3000.0
    seed: Optional[int] = None

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Viewport must be positive, got {self.width}x{self.height}")
        if self.iterations < 0:
            raise ValueError(f"iterations must be >= 0, got {self.iterations}")

    @classmethod
    def from_config(cls, layout_cfg: Optional[Mapping[str, Any]], **overrides: Any) -> "LayoutOptions":
        """Build options from the ``layout`` section of config.yaml; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in (layout_cfg or {}).items() if key in known}
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


class LayoutEngine(ABC):
    """Base class for layout strategies."""

    algorithm: LayoutAlgorithm

    @abstractmethod
    async def compute(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        options: Optional[LayoutOptions] = None,
    ) -> NodePositions:
        """
        Compute node positions.

        Returns:
            Dict with one Position per input node id
        """

    @staticmethod
    def _bounds(positions: Mapping[str, Position]):
        xs = [p.x for p in positions.values()]
        ys = [p.y for p in positions.values()]
        return min(xs), max(xs), min(ys), max(ys)

    def center_layout(self, positions: Mapping[str, Position], width: float, height: float) -> NodePositions:
        """Translate positions so their bounding box is centered in the viewport."""
        if not positions:
            return {}

        min_x, max_x, min_y, max_y = self._bounds(positions)
        offset_x = (width - (max_x - min_x)) / 2 - min_x
        offset_y = (height - (max_y - min_y)) / 2 - min_y

        return {node_id: Position(p.x + offset_x, p.y + offset_y) for node_id, p in positions.items()}

    def scale_to_fit(
        self,
        positions: Mapping[str, Position],
        width: float,
        height: float,
        padding: float = 50.0,
    ) -> NodePositions:
        """
        Uniformly shrink positions into the padded viewport.

        Layouts are never scaled up; after scaling the bounding box's top-left
        corner sits at (padding, padding).
        """
        if not positions:
            return {}

        min_x, max_x, min_y, max_y = self._bounds(positions)
        layout_width = max_x - min_x
        layout_height = max_y - min_y

        scale_x = (width - 2 * padding) / layout_width if layout_width > 0 else 1.0
        scale_y = (height - 2 * padding) / layout_height if layout_height > 0 else 1.0
        scale = min(scale_x, scale_y, 1.0)

        return {
            node_id: Position((p.x - min_x) * scale + padding, (p.y - min_y) * scale + padding)
            for node_id, p in positions.items()
        }


def create_layout_engine(algorithm: Union[LayoutAlgorithm, str]) -> LayoutEngine:
    """
    Create the layout engine for an algorithm name.

    Raises:
        ValueError: if the algorithm is not one of LayoutAlgorithm
    """
    # Imported here: the strategy modules import LayoutEngine from this module.
    from .circular import CircularLayout
    from .force_directed import ForceDirectedLayout
    from .hierarchical import HierarchicalLayout

    try:
        algorithm = LayoutAlgorithm(algorithm)
    except ValueError:
        raise ValueError(
            f"Unknown layout algorithm: {algorithm!r} (expected one of {[a.value for a in LayoutAlgorithm]})"
        ) from None

    engines: Dict[LayoutAlgorithm, type] = {
        LayoutAlgorithm.FORCE_DIRECTED: ForceDirectedLayout,
        LayoutAlgorithm.HIERARCHICAL: HierarchicalLayout,
        LayoutAlgorithm.CIRCULAR: CircularLayout,
    }
    return engines[algorithm]()
