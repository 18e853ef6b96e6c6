"""
Tests for generation-tracked layout requests (src/layout/scheduler.py).
"""

import asyncio

import pytest

from src.layout.engine import LayoutAlgorithm, LayoutOptions
from src.layout.scheduler import LayoutScheduler
from tests.factories import make_edge, make_node


@pytest.fixture
def large_chain():
    nodes = [make_node(f"n{i}") for i in range(60)]
    edges = [make_edge(f"n{i}", f"n{i + 1}") for i in range(59)]
    return nodes, edges


@pytest.mark.asyncio
async def test_request_returns_positions(mixed_graph):
    """Test a single uncontested request."""
    nodes, edges = mixed_graph
    scheduler = LayoutScheduler()

    positions = await scheduler.request(LayoutAlgorithm.CIRCULAR, nodes, edges)

    assert set(positions) == {node.id for node in nodes}
    assert scheduler.generation == 1
    assert not scheduler.busy


@pytest.mark.asyncio
async def test_newer_request_supersedes_older(large_chain):
    """Test that only the latest request's result is delivered."""
    nodes, edges = large_chain
    scheduler = LayoutScheduler()

    first = asyncio.ensure_future(
        scheduler.request(LayoutAlgorithm.FORCE_DIRECTED, nodes, edges, LayoutOptions(seed=1))
    )
    await asyncio.sleep(0)
    second = await scheduler.request(LayoutAlgorithm.CIRCULAR, nodes, edges)

    assert await first is None
    assert set(second) == {node.id for node in nodes}
    assert scheduler.generation == 2


@pytest.mark.asyncio
async def test_cancel_discards_running_request(large_chain):
    """Test that an explicit cancel turns the pending result stale."""
    nodes, edges = large_chain
    scheduler = LayoutScheduler()

    pending = asyncio.ensure_future(
        scheduler.request("force-directed", nodes, edges, LayoutOptions(seed=1))
    )
    await asyncio.sleep(0)
    assert scheduler.busy

    scheduler.cancel()

    assert await pending is None
    assert not scheduler.busy


@pytest.mark.asyncio
async def test_unknown_algorithm_leaves_generation_untouched(mixed_graph):
    """Test that an invalid request fails without cancelling anything."""
    nodes, edges = mixed_graph
    scheduler = LayoutScheduler()

    with pytest.raises(ValueError):
        await scheduler.request("spiral", nodes, edges)

    assert scheduler.generation == 0
