"""
Community detection and cluster geometry.

- Louvain modularity communities (networkx) over the strength-weighted graph
- Cluster labels taken from each community's most central member
- Palette colors, extended past the base palette by golden-angle hue steps
- Convex-hull boundaries (Graham scan) around positioned cluster members
"""

import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import networkx as nx

from .models import Cluster, ClusterAssignment, Edge, Node, Position, build_undirected_graph

logger = logging.getLogger(__name__)

BASE_CLUSTER_COLORS: Tuple[str, ...] = (
    "#4F46E5",  # indigo
    "#10B981",  # green
    "#F59E0B",  # amber
    "#EF4444",  # red
    "#8B5CF6",  # purple
    "#06B6D4",  # cyan
    "#EC4899",  # pink
    "#F97316",  # orange
    "#14B8A6",  # teal
    "#A855F7",  # violet
)

GOLDEN_ANGLE = 137.5


def generate_cluster_colors(count: int) -> List[str]:
    """
    Get ``count`` distinct cluster colors.

    The base palette is used first; additional colors step the hue by the
    golden angle so consecutive clusters stay visually apart.
    """
    if count <= len(BASE_CLUSTER_COLORS):
        return list(BASE_CLUSTER_COLORS[: max(0, count)])

    colors = list(BASE_CLUSTER_COLORS)
    for i in range(len(BASE_CLUSTER_COLORS), count):
        hue = (i * GOLDEN_ANGLE) % 360
        colors.append(f"hsl({hue:g}, 70%, 60%)")
    return colors


def _cross(o: Position, a: Position, b: Position) -> float:
    return (a.x - o.x) * (b.y - o.y) - (a.y - o.y) * (b.x - o.x)


def convex_hull(points: Sequence[Position]) -> List[Position]:
    """
    Graham scan convex hull.

    Anchor is the lowest-y point (lowest x on ties); the rest are swept in
    polar-angle order and any point producing a non-left turn is popped.
    Returns a counter-clockwise ring. Fewer than 3 points are returned as-is.
    """
    if len(points) < 3:
        return list(points)

    anchor = 0
    for i, point in enumerate(points):
        start = points[anchor]
        if point.y < start.y or (point.y == start.y and point.x < start.x):
            anchor = i
    start = points[anchor]

    # Ties on angle are broken by distance so collinear runs sweep outward.
    rest = sorted(
        (p for i, p in enumerate(points) if i != anchor),
        key=lambda p: (math.atan2(p.y - start.y, p.x - start.x), (p.x - start.x) ** 2 + (p.y - start.y) ** 2),
    )

    hull: List[Position] = [start]
    for point in rest:
        while len(hull) > 1 and _cross(hull[-2], hull[-1], point) <= 0:
            hull.pop()
        hull.append(point)

    return hull


class ClusteringService:
    """Detects communities and derives their colors and boundaries."""

    def __init__(self, resolution: float = 1.0, seed: Optional[int] = 42):
        """
        Initialize clustering service.

        Args:
            resolution: Louvain resolution (higher favours smaller communities)
            seed: Random seed for Louvain node ordering; None for nondeterministic runs
        """
        self.resolution = resolution
        self.seed = seed

    def detect_clusters(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> List[Cluster]:
        """
        Partition nodes into communities.

        Args:
            nodes: Graph nodes
            edges: Graph edges, weighted by strength

        Returns:
            Clusters in order of first appearance of a member in ``nodes``;
            every node id appears in exactly one cluster.
        """
        if not nodes:
            return []

        graph = build_undirected_graph(nodes, edges)

        # Modularity is undefined when every edge has strength 0; fall back to topology.
        weight: Optional[str] = "weight"
        if graph.number_of_edges() > 0 and graph.size(weight="weight") <= 0:
            logger.warning(
                "All %d edges have zero strength; clustering on unweighted topology",
                graph.number_of_edges(),
            )
            weight = None

        communities = nx.community.louvain_communities(
            graph,
            weight=weight,
            resolution=self.resolution,
            seed=self.seed,
        )

        community_of: Dict[str, int] = {}
        for index, members in enumerate(communities):
            for node_id in members:
                community_of[node_id] = index

        grouped: Dict[int, List[Node]] = {}
        for node in nodes:
            grouped.setdefault(community_of[node.id], []).append(node)

        colors = generate_cluster_colors(len(grouped))
        clusters: List[Cluster] = []
        for position, members in enumerate(grouped.values()):
            label_node = members[0]
            for member in members[1:]:
                if member.metadata.centrality > label_node.metadata.centrality:
                    label_node = member
            clusters.append(
                Cluster(
                    id=f"cluster-{position}",
                    label=label_node.label or f"Cluster {position}",
                    node_ids=tuple(member.id for member in members),
                    color=colors[position % len(colors)],
                )
            )

        logger.info(
            "Detected %d clusters over %d nodes (%d edges)",
            len(clusters),
            graph.number_of_nodes(),
            graph.number_of_edges(),
        )
        return clusters

    def calculate_cluster_boundary(
        self,
        node_ids: Sequence[str],
        positions: Mapping[str, Position],
    ) -> List[Position]:
        """Convex hull around the positioned members of a cluster; unpositioned ids are skipped."""
        points = [positions[node_id] for node_id in node_ids if node_id in positions]
        return convex_hull(points)

    def calculate_cluster_boundaries(
        self,
        clusters: Sequence[Cluster],
        positions: Mapping[str, Position],
    ) -> Dict[str, List[Position]]:
        """Boundary polygon per cluster id."""
        return {
            cluster.id: self.calculate_cluster_boundary(cluster.node_ids, positions)
            for cluster in clusters
        }

    def assign_cluster_colors(self, clusters: Sequence[Cluster]) -> Dict[str, ClusterAssignment]:
        """Flatten cluster membership into a per-node lookup."""
        assignments: Dict[str, ClusterAssignment] = {}
        for cluster in clusters:
            for node_id in cluster.node_ids:
                assignments[node_id] = ClusterAssignment(cluster_id=cluster.id, cluster_color=cluster.color)
        return assignments
