"""
Generation-tracked layout requests.

Each request supersedes the previous one: the in-flight computation is
cancelled and, should it still complete, its result is reported as stale
(None) so callers never apply outdated positions.
"""

import asyncio
import logging
from typing import Optional, Sequence, Union

from src.graph.models import Edge, Node, NodePositions
from .engine import LayoutAlgorithm, LayoutOptions, create_layout_engine

logger = logging.getLogger(__name__)


class LayoutScheduler:
    """Runs at most one live layout computation at a time."""

    def __init__(self):
        self.generation = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        """Invalidate the current request, if any."""
        self.generation += 1
        if self.busy:
            self._task.cancel()

    async def request(
        self,
        algorithm: Union[LayoutAlgorithm, str],
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        options: Optional[LayoutOptions] = None,
    ) -> Optional[NodePositions]:
        """
        Compute a layout, superseding any request still running.

        Returns:
            Positions, or None when a newer request arrived before this one finished
        """
        # Resolve the engine first so an unknown algorithm fails before anything is cancelled.
        engine = create_layout_engine(algorithm)
        self.cancel()
        generation = self.generation

        task = asyncio.ensure_future(engine.compute(nodes, edges, options))
        self._task = task
        try:
            positions = await task
        except asyncio.CancelledError:
            if generation != self.generation:
                logger.debug("Layout generation %d cancelled by a newer request", generation)
                return None
            raise
        finally:
            if self._task is task:
                self._task = None

        if generation != self.generation:
            logger.debug("Discarding stale layout generation %d (current %d)", generation, self.generation)
            return None
        return positions
