"""Fixed-tick animation clock, one per session."""

from typing import Callable, Optional, Protocol
import asyncio
import logging

from poketerm.graphics.compositor import Frame

logger = logging.getLogger(__name__)

FrameSink = Callable[[Frame], None]


class Tickable(Protocol):
    """Anything the clock can drive (a Session in practice)."""

    def advance(self, delta_ms: float) -> None: ...

    def render(self) -> Frame: ...

    @property
    def closed(self) -> bool: ...


class AnimationClock:
    """Advances a session at a fixed rate and emits one frame per tick.

    Every tick uses the same delta (1 / tick_rate), so the animation is
    independent of scheduling jitter. Waiting for the next tick boundary is
    the only suspension point; cancelling the task there stops the loop.

    Args:
        target: Session to advance and render
        sink: Receives each finished frame (must not block)
        tick_rate: Ticks per second
    """

    def __init__(self, target: Tickable, sink: FrameSink, tick_rate: int = 10):
        self.target = target
        self.sink = sink
        self.tick_rate = tick_rate
        self.interval = 1.0 / tick_rate
        self.delta_ms = 1000.0 / tick_rate
        self._running = False
        self._tick_count = 0

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def is_running(self) -> bool:
        return self._running

    def tick(self) -> Optional[Frame]:
        """One tick: advance state, render, hand the frame to the sink."""
        self.target.advance(self.delta_ms)
        if self.target.closed:
            return None

        frame = self.target.render()
        self.sink(frame)
        self._tick_count += 1
        return frame

    async def run(self) -> None:
        """Tick until the target closes or the task is cancelled."""
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        self._running = True
        logger.debug(f"Clock started at {self.tick_rate} ticks/s")

        try:
            while self._running and not self.target.closed:
                self.tick()

                next_tick += self.interval
                delay = next_tick - loop.time()
                if delay < 0:
                    # Fell behind; drop the backlog instead of bursting
                    next_tick = loop.time()
                    delay = 0
                await asyncio.sleep(delay)
        finally:
            self._running = False
            logger.debug(f"Clock stopped after {self._tick_count} ticks")

    def stop(self) -> None:
        """Stop after the current tick."""
        self._running = False
