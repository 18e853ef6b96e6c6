"""
Graph pruning and filtering.

Filters are applied in a fixed order (importance, entity type, relation type,
search) so that every intermediate result keeps edges closed over the
surviving node set.
"""

import logging
from dataclasses import dataclass
from typing import AbstractSet, Dict, List, Optional, Sequence

from .centrality import CentralityService
from .models import CentralityScores, Edge, FilterState, Node, drop_dangling_edges

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterResult:
    nodes: List[Node]
    edges: List[Edge]
    matched_node_ids: Optional[List[str]] = None

    def to_dict(self) -> Dict:
        data = {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }
        if self.matched_node_ids is not None:
            data["matchedNodeIds"] = list(self.matched_node_ids)
        return data


def _edges_between(edges: Sequence[Edge], nodes: Sequence[Node]) -> List[Edge]:
    node_ids = {node.id for node in nodes}
    return [edge for edge in edges if edge.source in node_ids and edge.target in node_ids]


class GraphPruningService:
    """Composable node/edge filters over an analyzed graph."""

    def __init__(self, centrality_service: Optional[CentralityService] = None):
        self.centrality_service = centrality_service or CentralityService()

    def prune_by_importance(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        centrality_scores: Dict[str, CentralityScores],
        percentile_threshold: float,
    ) -> FilterResult:
        """
        Keep nodes whose combined centrality reaches the given percentile.

        Nodes without a score are dropped; edges touching a dropped node go too.
        At the 100th percentile only the top-scoring nodes survive.
        """
        if percentile_threshold >= 100 and centrality_scores:
            threshold = max(score.combined for score in centrality_scores.values())
        else:
            threshold = self.centrality_service.get_percentile_threshold(centrality_scores, percentile_threshold)
        kept = [
            node
            for node in nodes
            if node.id in centrality_scores and centrality_scores[node.id].combined >= threshold
        ]
        logger.debug(
            "Importance pruning at p%.1f (threshold %.4f): kept %d/%d nodes",
            percentile_threshold,
            threshold,
            len(kept),
            len(nodes),
        )
        return FilterResult(nodes=kept, edges=_edges_between(edges, kept))

    def filter_by_entity_type(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        visible_types: AbstractSet,
    ) -> FilterResult:
        """Keep nodes whose type is visible, with the edges between them."""
        kept = [node for node in nodes if node.type in visible_types]
        return FilterResult(nodes=kept, edges=_edges_between(edges, kept))

    def filter_edges_by_type(self, edges: Sequence[Edge], visible_types: AbstractSet) -> List[Edge]:
        """Keep edges whose relation type is visible; nodes are unaffected."""
        return [edge for edge in edges if edge.type in visible_types]

    def filter_by_search(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        search_query: str,
    ) -> FilterResult:
        """
        Highlight nodes matching a query.

        Case-insensitive substring match against label and description.
        Nothing is removed; matches are reported in ``matched_node_ids``.
        """
        nodes = list(nodes)
        edges = list(edges)
        query = (search_query or "").strip().lower()
        if not query:
            return FilterResult(nodes=nodes, edges=edges, matched_node_ids=[])

        matched = [
            node.id
            for node in nodes
            if query in node.label.lower()
            or (node.metadata.description is not None and query in node.metadata.description.lower())
        ]
        return FilterResult(nodes=nodes, edges=edges, matched_node_ids=matched)

    def apply_filters(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        filters: FilterState,
        centrality_scores: Optional[Dict[str, CentralityScores]] = None,
    ) -> FilterResult:
        """
        Apply every configured filter in order.

        Args:
            nodes: Graph nodes
            edges: Graph edges; dangling ones are dropped before any stage
            filters: Filter configuration
            centrality_scores: Scores for importance pruning (skipped when None)

        Returns:
            FilterResult with the surviving nodes and edges, plus the search
            matches when a query is set
        """
        current_nodes = list(nodes)
        current_edges = drop_dangling_edges(current_nodes, edges, stage="filtering")
        matched_node_ids: Optional[List[str]] = None

        if centrality_scores is not None and filters.importance_threshold is not None:
            result = self.prune_by_importance(
                current_nodes,
                current_edges,
                centrality_scores,
                filters.importance_threshold,
            )
            current_nodes, current_edges = result.nodes, result.edges

        if filters.visible_entity_types:
            result = self.filter_by_entity_type(current_nodes, current_edges, filters.visible_entity_types)
            current_nodes, current_edges = result.nodes, result.edges

        if filters.visible_relation_types:
            current_edges = self.filter_edges_by_type(current_edges, filters.visible_relation_types)

        if filters.search_query:
            matched_node_ids = self.filter_by_search(
                current_nodes,
                current_edges,
                filters.search_query,
            ).matched_node_ids

        logger.info(
            "Filters applied: %d/%d nodes, %d edges visible",
            len(current_nodes),
            len(nodes),
            len(current_edges),
        )
        return FilterResult(nodes=current_nodes, edges=current_edges, matched_node_ids=matched_node_ids)

    def get_isolated_nodes(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> List[Node]:
        """Nodes that no edge in ``edges`` touches."""
        connected = set()
        for edge in edges:
            connected.add(edge.source)
            connected.add(edge.target)
        return [node for node in nodes if node.id not in connected]

    def remove_isolated_nodes(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> FilterResult:
        isolated_ids = {node.id for node in self.get_isolated_nodes(nodes, edges)}
        return FilterResult(
            nodes=[node for node in nodes if node.id not in isolated_ids],
            edges=list(edges),
        )
