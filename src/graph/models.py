"""
Graph model for the knowledge-graph analytics core.

Nodes and edges arrive from the extraction step as plain dictionaries; they are
parsed into frozen dataclasses so every service works on immutable input and
returns freshly built collections.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, NamedTuple, Optional, Sequence

import networkx as nx

logger = logging.getLogger(__name__)


class EntityType(str, Enum):
    """Kinds of entity a node can represent."""

    PERSON = "person"
    ORGANIZATION = "organization"
    LOCATION = "location"
    CONCEPT = "concept"
    PRODUCT = "product"
    METRIC = "metric"
    DATE = "date"
    TECHNICAL = "technical"


class RelationType(str, Enum):
    """Kinds of relationship an edge can represent."""

    CAUSES = "causes"
    REQUIRES = "requires"
    PART_OF = "part-of"
    RELATES_TO = "relates-to"
    IMPLEMENTS = "implements"
    USES = "uses"
    DEPENDS_ON = "depends-on"


class Position(NamedTuple):
    x: float
    y: float


NodePositions = Dict[str, Position]


@dataclass(frozen=True)
class TextSpan:
    start: int
    end: int
    text: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TextSpan":
        return cls(start=int(data["start"]), end=int(data["end"]), text=str(data.get("text", "")))

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start, "end": self.end, "text": self.text}


@dataclass(frozen=True)
class NodeMetadata:
    centrality: float = 0.0
    connections: int = 0
    description: Optional[str] = None
    source_quote: Optional[str] = None
    source_span: Optional[TextSpan] = None


@dataclass(frozen=True)
class Node:
    """A typed entity in the knowledge graph."""

    id: str
    label: str
    type: EntityType
    size: float = 30.0
    color: str = "#4F46E5"
    position: Optional[Position] = None
    metadata: NodeMetadata = field(default_factory=NodeMetadata)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        """
        Build a node from the extraction payload.

        Accepts the camelCase keys used by the extraction step
        (``sourceQuote``, ``sourceSpan``). Raises ValueError for an
        unknown entity type.
        """
        meta = data.get("metadata") or {}
        span = meta.get("sourceSpan")
        position = data.get("position")
        return cls(
            id=str(data["id"]),
            label=str(data.get("label", data["id"])),
            type=EntityType(data["type"]),
            size=float(data.get("size") or 30.0),
            color=str(data.get("color") or "#4F46E5"),
            position=Position(float(position["x"]), float(position["y"])) if position else None,
            metadata=NodeMetadata(
                centrality=float(meta.get("centrality", 0.0)),
                connections=int(meta.get("connections", 0)),
                description=meta.get("description"),
                source_quote=meta.get("sourceQuote"),
                source_span=TextSpan.from_dict(span) if span else None,
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {
            "centrality": self.metadata.centrality,
            "connections": self.metadata.connections,
        }
        if self.metadata.description is not None:
            metadata["description"] = self.metadata.description
        if self.metadata.source_quote is not None:
            metadata["sourceQuote"] = self.metadata.source_quote
        if self.metadata.source_span is not None:
            metadata["sourceSpan"] = self.metadata.source_span.to_dict()

        data: Dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "type": self.type.value,
            "size": self.size,
            "color": self.color,
            "metadata": metadata,
        }
        if self.position is not None:
            data["position"] = {"x": self.position.x, "y": self.position.y}
        return data


@dataclass(frozen=True)
class EnhancedNode(Node):
    """Node enriched with its computed centrality and cluster membership."""

    degree: float = 0.0
    betweenness: float = 0.0
    eigenvector: float = 0.0
    cluster_id: str = ""
    cluster_color: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "degree": self.degree,
                "betweenness": self.betweenness,
                "eigenvector": self.eigenvector,
                "clusterId": self.cluster_id,
                "clusterColor": self.cluster_color,
            }
        )
        return data


@dataclass(frozen=True)
class Edge:
    """A typed, weighted relationship between two nodes."""

    id: str
    source: str
    target: str
    type: RelationType
    strength: float = 0.5
    label: Optional[str] = None
    evidence: Sequence[TextSpan] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Edge":
        """Build an edge from the extraction payload; strength is clamped into [0, 1]."""
        strength = float(data.get("strength", 0.5))
        return cls(
            id=str(data["id"]),
            source=str(data["source"]),
            target=str(data["target"]),
            type=RelationType(data["type"]),
            strength=min(1.0, max(0.0, strength)),
            label=data.get("label"),
            evidence=tuple(TextSpan.from_dict(span) for span in data.get("evidence") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "type": self.type.value,
            "strength": self.strength,
        }
        if self.label is not None:
            data["label"] = self.label
        if self.evidence:
            data["evidence"] = [span.to_dict() for span in self.evidence]
        return data


@dataclass(frozen=True)
class CentralityScores:
    """Normalized importance scores of a single node; every value lies in [0, 1]."""

    degree: float = 0.0
    betweenness: float = 0.0
    eigenvector: float = 0.0
    combined: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "degree": self.degree,
            "betweenness": self.betweenness,
            "eigenvector": self.eigenvector,
            "combined": self.combined,
        }


@dataclass(frozen=True)
class Cluster:
    id: str
    label: str
    node_ids: Sequence[str]
    color: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "nodeIds": list(self.node_ids), "color": self.color}


@dataclass(frozen=True)
class ClusterAssignment:
    cluster_id: str
    cluster_color: str


@dataclass(frozen=True)
class FilterState:
    """
    Filter configuration applied by the pruning pipeline.

    Empty type sets mean "no filtering on that axis"; the importance
    threshold is a percentile in [0, 100].
    """

    visible_entity_types: FrozenSet[EntityType] = frozenset()
    importance_threshold: float = 0.0
    search_query: str = ""
    visible_relation_types: FrozenSet[RelationType] = frozenset()

    @classmethod
    def show_all(cls, nodes: Iterable[Node], edges: Iterable[Edge]) -> "FilterState":
        """Reset state: every type present in the graph is visible."""
        return cls(
            visible_entity_types=frozenset(node.type for node in nodes),
            importance_threshold=0.0,
            search_query="",
            visible_relation_types=frozenset(edge.type for edge in edges),
        )


def drop_dangling_edges(nodes: Iterable[Node], edges: Iterable[Edge], stage: str = "") -> List[Edge]:
    """Return the edges whose endpoints both exist in ``nodes``; log the rest."""
    node_ids = {node.id for node in nodes}
    valid: List[Edge] = []
    dropped = 0
    for edge in edges:
        if edge.source in node_ids and edge.target in node_ids:
            valid.append(edge)
        else:
            dropped += 1
            logger.debug("Dropping edge %s: %s -> %s (node not found)", edge.id, edge.source, edge.target)
    if dropped:
        logger.warning("Dropped %d edge(s) with missing endpoints%s", dropped, f" during {stage}" if stage else "")
    return valid


def build_undirected_graph(nodes: Sequence[Node], edges: Iterable[Edge]) -> nx.Graph:
    """
    Build an undirected networkx graph weighted by edge strength.

    Dangling edges and self-loops are skipped; when an endpoint pair appears
    more than once the first edge wins.
    """
    graph = nx.Graph()
    for node in nodes:
        graph.add_node(node.id, label=node.label)

    for edge in drop_dangling_edges(nodes, edges, stage="graph construction"):
        if edge.source == edge.target or graph.has_edge(edge.source, edge.target):
            continue
        graph.add_edge(edge.source, edge.target, weight=edge.strength, type=edge.type.value)

    return graph
