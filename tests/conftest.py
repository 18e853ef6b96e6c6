"""
Pytest configuration and shared fixtures for the graph analytics tests.

Provides small reference graphs (star, two triangles, chain, mixed types).
"""

from typing import List

import pytest

from src.graph.models import EntityType, Node, RelationType
from tests.factories import make_edge, make_node


@pytest.fixture
def star_graph():
    """Hub 'hub' connected to five leaves."""
    nodes: List[Node] = [make_node("hub")] + [make_node(f"leaf-{i}") for i in range(5)]
    edges = [make_edge("hub", f"leaf-{i}") for i in range(5)]
    return nodes, edges


@pytest.fixture
def two_triangles():
    """Two disjoint triangles: {a, b, c} and {d, e, f}."""
    nodes = [make_node(node_id) for node_id in "abcdef"]
    edges = [
        make_edge("a", "b"),
        make_edge("b", "c"),
        make_edge("c", "a"),
        make_edge("d", "e"),
        make_edge("e", "f"),
        make_edge("f", "d"),
    ]
    return nodes, edges


@pytest.fixture
def chain_graph():
    """Path a - b - c - d - e."""
    nodes = [make_node(node_id) for node_id in "abcde"]
    edges = [make_edge(s, t) for s, t in zip("abcd", "bcde")]
    return nodes, edges


@pytest.fixture
def mixed_graph():
    """Graph with several entity and relation types plus an isolated node."""
    nodes = [
        make_node("alice", EntityType.PERSON, label="Alice Smith", description="Lead researcher"),
        make_node("acme", EntityType.ORGANIZATION, label="Acme Corp", description="Robotics company"),
        make_node("paris", EntityType.LOCATION, label="Paris"),
        make_node("ml", EntityType.CONCEPT, label="Machine Learning", description="Statistical learning"),
        make_node("robot", EntityType.PRODUCT, label="Robot Arm", description="Uses machine learning"),
        make_node("lonely", EntityType.DATE, label="1999"),
    ]
    edges = [
        make_edge("alice", "acme", RelationType.PART_OF, 0.9),
        make_edge("acme", "paris", RelationType.RELATES_TO, 0.4),
        make_edge("acme", "robot", RelationType.IMPLEMENTS, 0.8),
        make_edge("robot", "ml", RelationType.USES, 0.7),
        make_edge("alice", "ml", RelationType.RELATES_TO, 0.6),
    ]
    return nodes, edges
