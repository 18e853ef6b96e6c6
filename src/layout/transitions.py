"""
Eased transitions between two layouts.
"""

import asyncio
import logging
from typing import Callable, Mapping

from src.graph.models import NodePositions, Position

logger = logging.getLogger(__name__)

FRAME_INTERVAL_MS = 1000 / 60

UpdateCallback = Callable[[NodePositions, float], None]


def ease_out_cubic(t: float) -> float:
    return 1 - (1 - t) ** 3


def interpolate_positions(
    start: Mapping[str, Position],
    end: Mapping[str, Position],
    eased: float,
) -> NodePositions:
    """Positions ``eased`` of the way from ``start`` to ``end``; ids absent from ``start`` begin at the origin."""
    origin = Position(0.0, 0.0)
    frame: NodePositions = {}
    for node_id, target in end.items():
        source = start.get(node_id, origin)
        frame[node_id] = Position(
            source.x + (target.x - source.x) * eased,
            source.y + (target.y - source.y) * eased,
        )
    return frame


async def animate_transition(
    start: Mapping[str, Position],
    end: Mapping[str, Position],
    duration_ms: float,
    on_update: UpdateCallback,
    frame_interval_ms: float = FRAME_INTERVAL_MS,
) -> None:
    """
    Animate every node in ``end`` from its ``start`` position.

    Args:
        start: Positions at progress 0
        end: Positions at progress 1; defines which nodes are animated
        duration_ms: Animation length in milliseconds; <= 0 emits only the final frame
        on_update: Called as on_update(positions, progress) once per frame
        frame_interval_ms: Milliseconds between frames

    Returns once the frame with progress 1 has been delivered.
    """
    loop = asyncio.get_running_loop()
    started = loop.time()
    frames = 0

    while True:
        elapsed_ms = (loop.time() - started) * 1000
        progress = min(elapsed_ms / duration_ms, 1.0) if duration_ms > 0 else 1.0
        on_update(interpolate_positions(start, end, ease_out_cubic(progress)), progress)
        frames += 1
        if progress >= 1.0:
            break
        await asyncio.sleep(frame_interval_ms / 1000)

    logger.debug("Transition of %d nodes finished after %d frames", len(end), frames)
