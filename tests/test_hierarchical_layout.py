"""
Tests for the layered layout (src/layout/hierarchical.py).
"""

import networkx as nx
import pytest

from src.layout.engine import LayoutOptions
from src.layout.hierarchical import HierarchicalLayout, _acyclic_edges
from tests.factories import make_edge, make_node


@pytest.fixture
def layout():
    return HierarchicalLayout()


def _inside(positions, options):
    return all(0 <= p.x <= options.width and 0 <= p.y <= options.height for p in positions.values())


@pytest.mark.asyncio
async def test_chain_ranks_descend(layout):
    """Test that each step along a chain is placed lower."""
    nodes = [make_node(node_id) for node_id in "abc"]
    edges = [make_edge("a", "b"), make_edge("b", "c")]

    positions = await layout.compute(nodes, edges, LayoutOptions())

    assert positions["a"].y < positions["b"].y < positions["c"].y
    assert positions["a"].x == pytest.approx(positions["c"].x)


@pytest.mark.asyncio
async def test_siblings_share_a_rank(layout):
    """Test that children of the same parent share a row but not a column."""
    nodes = [make_node(node_id) for node_id in ("root", "left", "right")]
    edges = [make_edge("root", "left"), make_edge("root", "right")]

    positions = await layout.compute(nodes, edges, LayoutOptions())

    assert positions["left"].y == pytest.approx(positions["right"].y)
    assert positions["left"].x != pytest.approx(positions["right"].x)
    assert positions["root"].y < positions["left"].y


@pytest.mark.asyncio
async def test_cycle_is_laid_out(layout):
    """Test that a directed cycle does not prevent layering."""
    nodes = [make_node(node_id) for node_id in "abc"]
    edges = [make_edge("a", "b"), make_edge("b", "c"), make_edge("c", "a")]
    options = LayoutOptions()

    positions = await layout.compute(nodes, edges, options)

    assert set(positions) == {"a", "b", "c"}
    assert len({round(p.y, 6) for p in positions.values()}) == 3
    assert _inside(positions, options)


@pytest.mark.asyncio
async def test_isolated_nodes_get_fallback_positions(layout, mixed_graph):
    """Test that nodes without edges still get positions inside the viewport."""
    nodes, edges = mixed_graph
    options = LayoutOptions(width=900, height=700, seed=4)

    positions = await layout.compute(nodes, edges, options)

    assert set(positions) == {node.id for node in nodes}
    assert _inside(positions, options)


@pytest.mark.asyncio
async def test_wide_graph_is_scaled_into_viewport(layout):
    """Test that a wide rank is shrunk to fit."""
    nodes = [make_node("root")] + [make_node(f"child-{i}") for i in range(30)]
    edges = [make_edge("root", f"child-{i}") for i in range(30)]
    options = LayoutOptions(width=800, height=600, padding=40)

    positions = await layout.compute(nodes, edges, options)

    xs = [p.x for p in positions.values()]
    assert min(xs) == pytest.approx(40)
    assert max(xs) == pytest.approx(760)
    assert _inside(positions, options)


def test_acyclic_edges_breaks_cycles():
    """Test that reversing back edges yields a DAG over the same pairs."""
    edges = [("a", "b"), ("b", "c"), ("c", "a"), ("c", "d"), ("d", "b")]

    result = _acyclic_edges(["a", "b", "c", "d"], edges)

    assert len(result) == len(edges)
    assert {frozenset(pair) for pair in result} == {frozenset(pair) for pair in edges}
    assert nx.is_directed_acyclic_graph(nx.DiGraph(result))


def test_acyclic_edges_leaves_dags_untouched():
    """Test that an already acyclic edge list is returned unchanged."""
    edges = [("a", "b"), ("a", "c"), ("b", "d"), ("c", "d")]
    assert _acyclic_edges(["a", "b", "c", "d"], edges) == edges
