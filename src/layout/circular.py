"""
Circular layout: one concentric ring per entity type.

The type group with the highest summed centrality gets the innermost ring;
within a ring, more central nodes come first, spaced evenly by angle.
"""

import logging
import math
from typing import Dict, List, Optional, Sequence

from src.graph.models import Edge, EntityType, Node, NodePositions, Position
from .engine import LayoutAlgorithm, LayoutEngine, LayoutOptions

logger = logging.getLogger(__name__)

BASE_RADIUS_RATIO = 0.15
RING_SPACING_RATIO = 0.12


class CircularLayout(LayoutEngine):
    """Concentric rings grouped by entity type; edges do not affect placement."""

    algorithm = LayoutAlgorithm.CIRCULAR

    async def compute(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        options: Optional[LayoutOptions] = None,
    ) -> NodePositions:
        options = options or LayoutOptions()
        if not nodes:
            return {}

        center_x = options.width / 2
        center_y = options.height / 2
        short_side = min(options.width, options.height)
        base_radius = short_side * BASE_RADIUS_RATIO
        ring_spacing = short_side * RING_SPACING_RATIO

        groups: Dict[EntityType, List[Node]] = {}
        for node in nodes:
            groups.setdefault(node.type, []).append(node)

        rings = sorted(
            groups.values(),
            key=lambda members: sum(member.metadata.centrality for member in members),
            reverse=True,
        )

        positions: Dict[str, Position] = {}
        for ring_index, members in enumerate(rings):
            radius = base_radius + ring_index * ring_spacing
            ordered = sorted(members, key=lambda member: member.metadata.centrality, reverse=True)
            for i, node in enumerate(ordered):
                angle = 2 * math.pi * i / len(ordered)
                positions[node.id] = Position(
                    center_x + radius * math.cos(angle),
                    center_y + radius * math.sin(angle),
                )

        logger.debug("Circular layout: %d rings for %d nodes", len(rings), len(positions))
        return positions
