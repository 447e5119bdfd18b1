import asyncio
import unittest

from poketerm.animation.clock import AnimationClock


class CountingTarget:
    def __init__(self, close_after=None):
        self.close_after = close_after
        self.deltas = []
        self.renders = 0

    @property
    def closed(self):
        return self.close_after is not None and len(self.deltas) >= self.close_after

    def advance(self, delta_ms):
        self.deltas.append(delta_ms)

    def render(self):
        self.renders += 1
        return f"frame {self.renders}"


class AnimationClockTests(unittest.TestCase):
    def test_tick_advances_then_renders(self):
        target = CountingTarget()
        frames = []
        clock = AnimationClock(target, frames.append, tick_rate=10)

        self.assertEqual(clock.tick(), "frame 1")
        self.assertEqual(target.deltas, [100.0])
        self.assertEqual(frames, ["frame 1"])
        self.assertEqual(clock.tick_count, 1)

    def test_closed_target_is_not_rendered(self):
        target = CountingTarget(close_after=1)
        frames = []
        clock = AnimationClock(target, frames.append)

        self.assertIsNone(clock.tick())
        self.assertEqual(frames, [])


class AnimationClockRunTests(unittest.IsolatedAsyncioTestCase):
    async def test_run_stops_when_target_closes(self):
        target = CountingTarget(close_after=3)
        frames = []
        clock = AnimationClock(target, frames.append, tick_rate=100)

        await asyncio.wait_for(clock.run(), timeout=5)

        self.assertEqual(len(frames), 2)
        self.assertEqual(target.deltas, [10.0, 10.0, 10.0])
        self.assertFalse(clock.is_running)

    async def test_cancel_stops_the_loop(self):
        target = CountingTarget()
        clock = AnimationClock(target, lambda frame: None, tick_rate=50)

        task = asyncio.create_task(clock.run())
        await asyncio.sleep(0.1)
        self.assertTrue(clock.is_running)
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

        self.assertFalse(clock.is_running)
        self.assertGreater(clock.tick_count, 0)

    async def test_stop_ends_after_current_tick(self):
        target = CountingTarget()
        frames = []
        clock = AnimationClock(target, frames.append, tick_rate=50)

        def sink(frame):
            frames.append(frame)
            if len(frames) == 2:
                clock.stop()

        clock.sink = sink
        await asyncio.wait_for(clock.run(), timeout=5)
        self.assertEqual(len(frames), 2)


if __name__ == "__main__":
    unittest.main()
