"""
Tests for the concentric circular layout (src/layout/circular.py).
"""

import math

import pytest

from src.graph.models import EntityType
from src.layout.circular import CircularLayout
from src.layout.engine import LayoutOptions
from tests.factories import make_edge, make_node

OPTIONS = LayoutOptions(width=1000, height=800)
CENTER = (500.0, 400.0)


def _radius(p):
    return math.hypot(p.x - CENTER[0], p.y - CENTER[1])


def _angle(p):
    return math.atan2(p.y - CENTER[1], p.x - CENTER[0]) % (2 * math.pi)


@pytest.fixture
def typed_nodes():
    """Three concepts (most important group), two people and one location."""
    return [
        make_node("p1", EntityType.PERSON, centrality=0.3),
        make_node("c1", EntityType.CONCEPT, centrality=0.9),
        make_node("l1", EntityType.LOCATION, centrality=0.1),
        make_node("c2", EntityType.CONCEPT, centrality=0.5),
        make_node("p2", EntityType.PERSON, centrality=0.4),
        make_node("c3", EntityType.CONCEPT, centrality=0.7),
    ]


@pytest.mark.asyncio
async def test_rings_follow_group_importance(typed_nodes):
    """Test that the most important type group sits on the innermost ring."""
    positions = await CircularLayout().compute(typed_nodes, [], OPTIONS)

    concept_radius = _radius(positions["c1"])
    person_radius = _radius(positions["p1"])
    location_radius = _radius(positions["l1"])

    assert concept_radius == pytest.approx(800 * 0.15)
    assert person_radius == pytest.approx(800 * 0.15 + 800 * 0.12)
    assert location_radius == pytest.approx(800 * 0.15 + 2 * 800 * 0.12)
    for node_id in ("c2", "c3"):
        assert _radius(positions[node_id]) == pytest.approx(concept_radius)
    assert _radius(positions["p2"]) == pytest.approx(person_radius)


@pytest.mark.asyncio
async def test_ring_members_are_evenly_spaced_by_importance(typed_nodes):
    """Test that the most central member starts at angle 0 and the rest follow evenly."""
    positions = await CircularLayout().compute(typed_nodes, [], OPTIONS)

    assert _angle(positions["c1"]) == pytest.approx(0.0, abs=1e-9)
    assert _angle(positions["c3"]) == pytest.approx(2 * math.pi / 3)
    assert _angle(positions["c2"]) == pytest.approx(4 * math.pi / 3)
    assert _angle(positions["p2"]) == pytest.approx(0.0, abs=1e-9)
    assert _angle(positions["p1"]) == pytest.approx(math.pi)


@pytest.mark.asyncio
async def test_edges_do_not_move_nodes(typed_nodes):
    """Test that placement ignores edges."""
    layout = CircularLayout()
    without = await layout.compute(typed_nodes, [], OPTIONS)
    with_edges = await layout.compute(typed_nodes, [make_edge("c1", "l1"), make_edge("p1", "ghost")], OPTIONS)

    assert without == with_edges
