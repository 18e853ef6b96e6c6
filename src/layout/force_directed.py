"""
Force-directed layout.

A velocity-Verlet style simulation with four forces:
- many-body repulsion between every node pair (capped distance)
- springs along each valid edge
- a centering force toward the viewport middle
- collision avoidance sized by node radius

The simulation cools by alpha decay and stops on the first of: alpha below
ALPHA_MIN, the iteration cap, or the wall-clock budget.
"""

import asyncio
import logging
import time
from typing import Optional, Sequence

import numpy as np

from src.graph.models import Edge, Node, NodePositions, Position, drop_dangling_edges
from .engine import LayoutAlgorithm, LayoutEngine, LayoutOptions

logger = logging.getLogger(__name__)

CHARGE_STRENGTH = -300.0
CHARGE_DISTANCE_MAX = 500.0
CHARGE_DISTANCE_MIN = 1.0
LINK_DISTANCE = 100.0
DEFAULT_LINK_STRENGTH = 0.5
COLLISION_MARGIN = 10.0
COLLISION_STRENGTH = 0.7
DEFAULT_NODE_SIZE = 30.0

ALPHA_MIN = 0.001
ALPHA_DECAY = 0.0228
VELOCITY_DECAY = 0.4

# Ticks between yields to the event loop.
YIELD_EVERY = 10


class ForceDirectedLayout(LayoutEngine):
    """Physics simulation layout; deterministic only when ``options.seed`` is set."""

    algorithm = LayoutAlgorithm.FORCE_DIRECTED

    async def compute(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        options: Optional[LayoutOptions] = None,
    ) -> NodePositions:
        options = options or LayoutOptions()
        if not nodes:
            return {}

        rng = np.random.default_rng(options.seed)
        n = len(nodes)
        index = {node.id: i for i, node in enumerate(nodes)}

        pos = np.column_stack(
            (rng.random(n) * options.width, rng.random(n) * options.height)
        ).astype(float)
        vel = np.zeros((n, 2))
        radii = np.array([(node.size or DEFAULT_NODE_SIZE) + COLLISION_MARGIN for node in nodes], dtype=float)

        valid_edges = drop_dangling_edges(nodes, edges, stage="force-directed layout")
        links = [edge for edge in valid_edges if edge.source != edge.target]
        sources = np.array([index[edge.source] for edge in links], dtype=int)
        targets = np.array([index[edge.target] for edge in links], dtype=int)
        stiffness = np.array([edge.strength or DEFAULT_LINK_STRENGTH for edge in links], dtype=float)

        counts = np.bincount(np.concatenate((sources, targets)), minlength=n).astype(float)
        bias = counts[sources] / np.maximum(counts[sources] + counts[targets], 1.0) if links else np.zeros(0)

        center = np.array([options.width / 2, options.height / 2])
        alpha = 1.0
        start = time.monotonic()
        budget = options.time_budget_ms / 1000.0
        ticks = 0
        reason = "iterations"

        for tick in range(options.iterations):
            alpha += (0.0 - alpha) * ALPHA_DECAY

            if links:
                self._apply_links(pos, vel, sources, targets, stiffness, bias, alpha, rng)
            self._apply_charge(pos, vel, alpha, rng)
            pos -= pos.mean(axis=0) - center
            self._apply_collision(pos, vel, radii, rng)

            vel *= 1.0 - VELOCITY_DECAY
            pos += vel
            ticks = tick + 1

            if alpha < ALPHA_MIN:
                reason = "alpha"
                break
            if time.monotonic() - start > budget:
                reason = "time budget"
                break
            if ticks % YIELD_EVERY == 0:
                await asyncio.sleep(0)

        logger.debug(
            "Force layout stopped after %d ticks (%s, alpha=%.4f, %.0f ms) for %d nodes / %d links",
            ticks,
            reason,
            alpha,
            (time.monotonic() - start) * 1000,
            n,
            len(links),
        )
        return {node.id: Position(float(pos[i, 0]), float(pos[i, 1])) for i, node in enumerate(nodes)}

    @staticmethod
    def _jiggle(values: np.ndarray, rng: np.random.Generator) -> None:
        """Replace exact zeros with a tiny random offset, in place."""
        zeros = values == 0
        if zeros.any():
            values[zeros] = (rng.random(int(zeros.sum())) - 0.5) * 1e-6

    def _apply_links(self, pos, vel, sources, targets, stiffness, bias, alpha, rng) -> None:
        delta = (pos[targets] + vel[targets]) - (pos[sources] + vel[sources])
        self._jiggle(delta, rng)
        length = np.sqrt((delta ** 2).sum(axis=1))
        factor = (length - LINK_DISTANCE) / length * alpha * stiffness
        shift = delta * factor[:, None]
        np.add.at(vel, targets, -shift * bias[:, None])
        np.add.at(vel, sources, shift * (1.0 - bias)[:, None])

    def _apply_charge(self, pos, vel, alpha, rng) -> None:
        n = len(pos)
        if n < 2:
            return
        delta = pos[None, :, :] - pos[:, None, :]
        off_diagonal = ~np.eye(n, dtype=bool)
        coincident = (delta == 0) & off_diagonal[:, :, None]
        if coincident.any():
            delta[coincident] = (rng.random(int(coincident.sum())) - 0.5) * 1e-6

        dist2 = (delta ** 2).sum(axis=2)
        in_range = off_diagonal & (dist2 < CHARGE_DISTANCE_MAX ** 2)
        dist2 = np.where(dist2 < CHARGE_DISTANCE_MIN ** 2, np.sqrt(CHARGE_DISTANCE_MIN ** 2 * dist2), dist2)
        weight = np.zeros_like(dist2)
        np.divide(CHARGE_STRENGTH * alpha, dist2, out=weight, where=in_range & (dist2 > 0))
        vel += (delta * weight[:, :, None]).sum(axis=1)

    def _apply_collision(self, pos, vel, radii, rng) -> None:
        n = len(pos)
        if n < 2:
            return
        predicted = pos + vel
        delta = predicted[:, None, :] - predicted[None, :, :]
        off_diagonal = ~np.eye(n, dtype=bool)
        coincident = (delta == 0).all(axis=2) & off_diagonal
        if coincident.any():
            delta[coincident] = (rng.random((int(coincident.sum()), 2)) - 0.5) * 1e-6

        reach = radii[:, None] + radii[None, :]
        dist2 = (delta ** 2).sum(axis=2)
        overlapping = off_diagonal & (dist2 < reach ** 2)
        if not overlapping.any():
            return

        dist = np.sqrt(dist2)
        push = np.zeros_like(dist)
        np.divide((reach - dist) * COLLISION_STRENGTH, dist, out=push, where=overlapping & (dist > 0))
        r2 = radii ** 2
        share = r2[None, :] / (r2[:, None] + r2[None, :])
        vel += (delta * (push * share)[:, :, None]).sum(axis=1)
