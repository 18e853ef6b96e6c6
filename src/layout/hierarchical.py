"""
Hierarchical (layered, top-to-bottom) layout.

Steps:
1. Break cycles by reversing the back edges of a depth-first traversal
2. Assign ranks by longest path over the resulting DAG
3. Order nodes within each rank with alternating barycenter sweeps
4. Place ranks ``level_separation`` apart and nodes ``node_spacing`` apart

Nodes without any valid edge are not layered; they get a random position
inside the viewport. The result is shrunk into the padded viewport.
"""

import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

import networkx as nx
import numpy as np

from src.graph.models import Edge, Node, NodePositions, Position, drop_dangling_edges
from .engine import LayoutAlgorithm, LayoutEngine, LayoutOptions

logger = logging.getLogger(__name__)

DEFAULT_NODE_WIDTH = 60.0
DEFAULT_NODE_HEIGHT = 45.0
LAYOUT_MARGIN = 50.0
ORDERING_SWEEPS = 4


def _acyclic_edges(node_ids: Sequence[str], edges: Sequence[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """Reverse the DFS back edges so the edge set becomes acyclic."""
    adjacency: Dict[str, List[str]] = {node_id: [] for node_id in node_ids}
    for source, target in edges:
        adjacency[source].append(target)

    back_edges: Set[Tuple[str, str]] = set()
    state: Dict[str, int] = {}  # 1 = on stack, 2 = done
    for root in node_ids:
        if root in state:
            continue
        state[root] = 1
        stack = [(root, iter(adjacency[root]))]
        while stack:
            current, children = stack[-1]
            child = next(children, None)
            if child is None:
                state[current] = 2
                stack.pop()
            elif state.get(child) == 1:
                back_edges.add((current, child))
            elif child not in state:
                state[child] = 1
                stack.append((child, iter(adjacency[child])))

    return [(t, s) if (s, t) in back_edges else (s, t) for s, t in edges]


class HierarchicalLayout(LayoutEngine):
    """Layered layout for graphs with a dominant edge direction."""

    algorithm = LayoutAlgorithm.HIERARCHICAL

    async def compute(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        options: Optional[LayoutOptions] = None,
    ) -> NodePositions:
        options = options or LayoutOptions()
        if not nodes:
            return {}

        by_id = {node.id: node for node in nodes}
        pairs: List[Tuple[str, str]] = []
        seen: Set[Tuple[str, str]] = set()
        for edge in drop_dangling_edges(nodes, edges, stage="hierarchical layout"):
            pair = (edge.source, edge.target)
            if edge.source != edge.target and pair not in seen:
                seen.add(pair)
                pairs.append(pair)

        connected = {node_id for pair in pairs for node_id in pair}
        layered_ids = [node.id for node in nodes if node.id in connected]

        dag = nx.DiGraph()
        dag.add_nodes_from(layered_ids)
        dag.add_edges_from(_acyclic_edges(layered_ids, pairs))

        ranks = self._assign_ranks(dag, layered_ids)
        layers = self._order_layers(dag, layered_ids, ranks)
        positions = self._place(layers, by_id, options)

        rng = np.random.default_rng(options.seed)
        fallback = [node for node in nodes if node.id not in positions]
        for node in fallback:
            positions[node.id] = Position(
                float(rng.random() * options.width),
                float(rng.random() * options.height),
            )

        logger.debug(
            "Hierarchical layout: %d ranks, %d layered nodes, %d unlayered",
            len(layers),
            len(layered_ids),
            len(fallback),
        )
        return self.scale_to_fit(positions, options.width, options.height, options.padding)

    @staticmethod
    def _assign_ranks(dag: nx.DiGraph, node_ids: Sequence[str]) -> Dict[str, int]:
        order = {node_id: i for i, node_id in enumerate(node_ids)}
        ranks: Dict[str, int] = {}
        for node_id in nx.lexicographical_topological_sort(dag, key=order.__getitem__):
            preds = list(dag.predecessors(node_id))
            ranks[node_id] = max((ranks[p] + 1 for p in preds), default=0)
        return ranks

    @staticmethod
    def _order_layers(dag: nx.DiGraph, node_ids: Sequence[str], ranks: Dict[str, int]) -> List[List[str]]:
        if not ranks:
            return []
        layers: List[List[str]] = [[] for _ in range(max(ranks.values()) + 1)]
        for node_id in node_ids:
            layers[ranks[node_id]].append(node_id)

        undirected = dag.to_undirected(as_view=True)

        def reorder(layer_index: int, reference_index: int) -> None:
            reference = {node_id: i for i, node_id in enumerate(layers[reference_index])}
            current = layers[layer_index]
            keyed = []
            for i, node_id in enumerate(current):
                neighbor_slots = [reference[n] for n in undirected.neighbors(node_id) if n in reference]
                barycenter = sum(neighbor_slots) / len(neighbor_slots) if neighbor_slots else float(i)
                keyed.append((barycenter, i, node_id))
            keyed.sort()
            layers[layer_index] = [node_id for _, _, node_id in keyed]

        for sweep in range(ORDERING_SWEEPS):
            if sweep % 2 == 0:
                for r in range(1, len(layers)):
                    reorder(r, r - 1)
            else:
                for r in range(len(layers) - 2, -1, -1):
                    reorder(r, r + 1)

        return layers

    @staticmethod
    def _place(layers: List[List[str]], by_id: Dict[str, Node], options: LayoutOptions) -> Dict[str, Position]:
        positions: Dict[str, Position] = {}
        y_cursor = LAYOUT_MARGIN
        for layer in layers:
            widths = [by_id[n].size * 2 or DEFAULT_NODE_WIDTH for n in layer]
            heights = [by_id[n].size * 1.5 or DEFAULT_NODE_HEIGHT for n in layer]
            total_width = sum(widths) + options.node_spacing * (len(layer) - 1)
            layer_height = max(heights)

            x_cursor = LAYOUT_MARGIN - total_width / 2
            y_center = y_cursor + layer_height / 2
            for node_id, width in zip(layer, widths):
                positions[node_id] = Position(x_cursor + width / 2, y_center)
                x_cursor += width + options.node_spacing

            y_cursor += layer_height + options.level_separation
        return positions
