"""
Centrality scoring for knowledge-graph nodes.

Computes per-node importance as a weighted blend of:
- degree centrality (neighbor count / max neighbor count)
- simplified betweenness (shortest-path counts through each node)
- an eigenvector score (degree proxy by default)

All scores are normalized into [0, 1].
"""

import logging
import math
from collections import deque
from typing import Dict, List, Optional, Sequence

import networkx as nx
import pandas as pd

from .models import CentralityScores, Edge, Node, build_undirected_graph

logger = logging.getLogger(__name__)

DEGREE_WEIGHT = 0.4
BETWEENNESS_WEIGHT = 0.3
EIGENVECTOR_WEIGHT = 0.3

EIGENVECTOR_METHODS = ("degree_proxy", "power_iteration")


class CentralityService:
    """Computes normalized centrality scores over an undirected view of the graph."""

    def __init__(self, eigenvector_method: str = "degree_proxy", max_iter: int = 1000):
        """
        Initialize centrality service.

        Args:
            eigenvector_method: "degree_proxy" reuses normalized degree as the
                eigenvector score; "power_iteration" runs networkx's
                eigenvector centrality.
            max_iter: Iteration cap for the power iteration method
        """
        if eigenvector_method not in EIGENVECTOR_METHODS:
            raise ValueError(
                f"Unknown eigenvector method: {eigenvector_method!r} (expected one of {EIGENVECTOR_METHODS})"
            )
        self.eigenvector_method = eigenvector_method
        self.max_iter = max_iter

    def calculate_centrality(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> Dict[str, CentralityScores]:
        """
        Calculate centrality scores for all nodes.

        Args:
            nodes: Graph nodes
            edges: Graph edges (edges with missing endpoints are ignored)

        Returns:
            Dict mapping node id to its CentralityScores
        """
        if not nodes:
            return {}

        graph = build_undirected_graph(nodes, edges)

        degrees: Dict[str, int] = {node.id: graph.degree(node.id) for node in nodes}
        max_degree = max(degrees.values())
        degree_scores = {
            node_id: (value / max_degree if max_degree > 0 else 0.0) for node_id, value in degrees.items()
        }

        betweenness_scores = self._calculate_betweenness(graph, [node.id for node in nodes])
        eigenvector_scores = self._calculate_eigenvector(graph, degree_scores)

        scores: Dict[str, CentralityScores] = {}
        for node in nodes:
            degree = degree_scores[node.id]
            betweenness = betweenness_scores.get(node.id, 0.0)
            eigenvector = eigenvector_scores.get(node.id, 0.0)
            combined = (
                DEGREE_WEIGHT * degree
                + BETWEENNESS_WEIGHT * betweenness
                + EIGENVECTOR_WEIGHT * eigenvector
            )
            scores[node.id] = CentralityScores(
                degree=degree,
                betweenness=betweenness,
                eigenvector=eigenvector,
                combined=min(1.0, combined),
            )

        logger.debug(
            "Computed centrality for %d nodes (%d edges, max degree %d)",
            len(scores),
            graph.number_of_edges(),
            max_degree,
        )
        return scores

    def _calculate_betweenness(self, graph: nx.Graph, node_ids: List[str]) -> Dict[str, float]:
        """
        Simplified, unweighted betweenness.

        For each source a BFS records distances, every shortest-path
        predecessor and the number of shortest paths reaching each node. The
        path count of every reachable target is credited to each of the
        target's predecessors other than the source.
        """
        betweenness: Dict[str, float] = {node_id: 0.0 for node_id in node_ids}

        for source in node_ids:
            distances: Dict[str, int] = {source: 0}
            predecessors: Dict[str, List[str]] = {source: []}
            path_counts: Dict[str, int] = {source: 1}
            order: List[str] = []
            queue = deque([source])

            while queue:
                current = queue.popleft()
                order.append(current)
                next_distance = distances[current] + 1
                for neighbor in graph.neighbors(current):
                    if neighbor not in distances:
                        distances[neighbor] = next_distance
                        predecessors[neighbor] = [current]
                        path_counts[neighbor] = path_counts[current]
                        queue.append(neighbor)
                    elif distances[neighbor] == next_distance:
                        predecessors[neighbor].append(current)
                        path_counts[neighbor] += path_counts[current]

            for target in order:
                if target == source:
                    continue
                count = path_counts[target]
                for pred in predecessors[target]:
                    if pred != source:
                        betweenness[pred] += count

        max_value = max(betweenness.values(), default=0.0)
        if max_value <= 0:
            return {node_id: 0.0 for node_id in betweenness}
        return {node_id: value / max_value for node_id, value in betweenness.items()}

    def _calculate_eigenvector(self, graph: nx.Graph, degree_scores: Dict[str, float]) -> Dict[str, float]:
        if self.eigenvector_method == "degree_proxy" or graph.number_of_edges() == 0:
            return dict(degree_scores)

        try:
            raw = nx.eigenvector_centrality(graph, max_iter=self.max_iter, weight=None)
        except nx.PowerIterationFailedConvergence:
            logger.warning(
                "Eigenvector centrality did not converge in %d iterations; using degree proxy",
                self.max_iter,
            )
            return dict(degree_scores)

        max_value = max(raw.values(), default=0.0)
        if max_value <= 0:
            return {node_id: 0.0 for node_id in degree_scores}
        return {node_id: min(1.0, max(0.0, raw.get(node_id, 0.0) / max_value)) for node_id in degree_scores}

    def get_top_nodes(
        self,
        nodes: Sequence[Node],
        scores: Dict[str, CentralityScores],
        limit: int = 10,
    ) -> List[Node]:
        """Get nodes sorted by combined score (descending, stable), truncated to ``limit``."""
        ranked = sorted(
            nodes,
            key=lambda node: scores[node.id].combined if node.id in scores else 0.0,
            reverse=True,
        )
        return ranked[: max(0, limit)]

    def get_percentile_threshold(self, scores: Dict[str, CentralityScores], percentile: float) -> float:
        """
        Combined-score value at the given percentile.

        Values are sorted ascending and indexed at floor(percentile/100 * count);
        an index outside the list yields 0.
        """
        values = sorted(score.combined for score in scores.values())
        index = math.floor((percentile / 100.0) * len(values))
        if index < 0 or index >= len(values):
            return 0.0
        return values[index]

    def scores_to_frame(
        self,
        scores: Dict[str, CentralityScores],
        nodes: Optional[Sequence[Node]] = None,
    ) -> pd.DataFrame:
        """
        Tabulate scores, one row per node, sorted by combined score.

        Args:
            scores: Output of calculate_centrality
            nodes: Optional nodes to pull label and type columns from
        """
        columns = ["id", "label", "type", "degree", "betweenness", "eigenvector", "combined"]
        by_id = {node.id: node for node in nodes} if nodes is not None else {}
        rows = []
        for node_id, score in scores.items():
            node = by_id.get(node_id)
            rows.append(
                {
                    "id": node_id,
                    "label": node.label if node else None,
                    "type": node.type.value if node else None,
                    **score.to_dict(),
                }
            )
        df = pd.DataFrame(rows, columns=columns)
        return df.sort_values("combined", ascending=False, kind="mergesort").reset_index(drop=True)
