import math
import random
import unittest

from poketerm.animation.capture import (
    ABSORB_OVERSPAWN,
    SHAKE_CYCLES,
    TAU,
    CapturePhase,
    GameStateMachine,
    PhaseTimings,
    advance_phase,
    ease_in_out_quad,
    ease_out_cubic,
    ease_out_quad,
    shake_offset,
    shakes_completed,
    tween,
)
from poketerm.core.events import EventBus, EventType
from poketerm.graphics.sphere import SphereParams

PHASE_ORDER = [
    CapturePhase.IDLE,
    CapturePhase.THROWING,
    CapturePhase.OPENING,
    CapturePhase.ABSORBING,
    CapturePhase.CLOSING,
    CapturePhase.SHAKING,
    CapturePhase.STAR_HOLD,
    CapturePhase.CAUGHT,
]


def make_machine(event_bus=None, **kwargs):
    params = SphereParams(radius=6.0, center_x=10.0, center_y=20.0)
    return GameStateMachine(
        params,
        target_x=100.0,
        event_bus=event_bus,
        rng=random.Random(7),
        **kwargs,
    )


def run_until(machine, phase, delta_ms=100.0, limit=10000):
    for _ in range(limit):
        if machine.phase is phase:
            return
        machine.update(delta_ms)
    raise AssertionError(f"never reached {phase}")


class ThrowScenarioTests(unittest.TestCase):
    def test_throw_moves_right_then_opens_once(self):
        machine = make_machine()
        self.assertTrue(machine.handle_command("catch"))
        self.assertIs(machine.phase, CapturePhase.THROWING)

        transitions = []
        last_x = machine.params.center_x
        while machine.phase is CapturePhase.THROWING:
            result = machine.update(100.0)
            if result is not None:
                transitions.append(result)
            self.assertGreater(machine.params.center_x, last_x)
            last_x = machine.params.center_x

        self.assertIs(machine.phase, CapturePhase.OPENING)
        self.assertLess(abs(machine.params.center_x - 100.0), 1e-6)

        for _ in range(3):
            result = machine.update(100.0)
            if result is not None:
                transitions.append(result)
        self.assertEqual(transitions.count(CapturePhase.OPENING), 1)

    def test_throw_has_no_vertical_arc(self):
        machine = make_machine()
        machine.handle_command("catch")
        while machine.phase is CapturePhase.THROWING:
            machine.update(100.0)
            self.assertEqual(machine.params.center_y, 20.0)


class PhaseOrderingTests(unittest.TestCase):
    def test_full_cycle_follows_table(self):
        machine = make_machine()
        seen = [machine.phase]
        machine.handle_command("catch")
        seen.append(machine.phase)

        for _ in range(2000):
            result = machine.update(100.0)
            if result is not None:
                seen.append(result)
            if result is CapturePhase.IDLE:
                break

        self.assertEqual(seen, PHASE_ORDER + [CapturePhase.IDLE])

    def test_caught_lasts_one_tick(self):
        machine = make_machine()
        machine.handle_command("catch")
        run_until(machine, CapturePhase.CAUGHT)
        self.assertIs(machine.update(100.0), CapturePhase.IDLE)

    def test_idle_never_leaves_by_itself(self):
        machine = make_machine()
        for _ in range(500):
            self.assertIsNone(machine.update(100.0))
        self.assertIs(machine.phase, CapturePhase.IDLE)

    def test_pure_transition_resets_elapsed(self):
        timings = PhaseTimings(opening_ms=300.0)
        self.assertEqual(
            advance_phase(CapturePhase.OPENING, 200.0, 100.0, timings),
            (CapturePhase.ABSORBING, 0.0),
        )
        self.assertEqual(
            advance_phase(CapturePhase.OPENING, 100.0, 100.0, timings),
            (CapturePhase.OPENING, 200.0),
        )
        self.assertEqual(
            advance_phase(CapturePhase.THROWING, 0.0, 100.0, timings, arrived=True),
            (CapturePhase.OPENING, 0.0),
        )

    def test_absorbing_ends_early_when_enough_particles_arrive(self):
        timings = PhaseTimings()
        phase, _ = advance_phase(CapturePhase.ABSORBING, 0.0, 100.0, timings, absorbed_all=True)
        self.assertIs(phase, CapturePhase.CLOSING)

    def test_events_are_emitted(self):
        bus = EventBus()
        machine = make_machine(event_bus=bus)
        machine.set_encounter(25)
        machine.handle_command("catch")
        for _ in range(2000):
            if machine.update(100.0) is CapturePhase.IDLE:
                break

        captured = bus.get_history(EventType.CAPTURED)
        self.assertEqual(len(captured), 1)
        self.assertEqual(captured[0].data["dex_id"], 25)
        changes = bus.get_history(EventType.PHASE_CHANGED, limit=20)
        self.assertEqual([e.data["to"] for e in changes], PHASE_ORDER[1:] + [CapturePhase.IDLE])


class SpinTests(unittest.TestCase):
    def test_rotation_advances_every_tick_in_every_phase(self):
        machine = make_machine()
        phases = {CapturePhase.IDLE}

        before = machine.params.rotation
        machine.update(100.0)
        self.assertAlmostEqual((machine.params.rotation - before) % TAU, machine.spin_speed * 0.1)

        machine.handle_command("catch")

        for _ in range(2000):
            before = machine.params.rotation
            phase = machine.phase
            result = machine.update(100.0)
            step = (machine.params.rotation - before) % TAU
            self.assertGreater(step, 0.0, f"spin stalled in {phase.name}")
            self.assertAlmostEqual(step, machine.spin_speed * 0.1)
            phases.add(phase)
            if result is CapturePhase.IDLE:
                break

        self.assertEqual(phases, set(PHASE_ORDER))


class ShakeTests(unittest.TestCase):
    def _shaking_profile(self, tick_rate):
        delta = 1000.0 / tick_rate
        machine = make_machine()
        machine.handle_command("catch")
        run_until(machine, CapturePhase.SHAKING, delta_ms=delta)

        counts = [machine.shakes]
        ticks = 0
        while machine.phase is CapturePhase.SHAKING:
            machine.update(delta)
            ticks += 1
            counts.append(machine.shakes)
        return counts, ticks * delta, machine

    def test_three_shakes_at_any_tick_rate(self):
        for tick_rate in (10, 30, 60):
            counts, duration, machine = self._shaking_profile(tick_rate)
            self.assertIs(machine.phase, CapturePhase.STAR_HOLD)
            self.assertEqual(counts[-1], SHAKE_CYCLES)
            self.assertEqual(sorted(set(counts)), [0, 1, 2, 3])
            self.assertGreaterEqual(duration, machine.timings.shaking_ms - 1e-6)
            self.assertLess(duration, machine.timings.shaking_ms + 1000.0 / tick_rate + 1e-6)

    def test_shake_offset_decays_and_returns_to_center(self):
        self.assertAlmostEqual(shake_offset(0.0, 2400.0, 3.0), 0.0)
        self.assertAlmostEqual(shake_offset(2400.0, 2400.0, 3.0), 0.0)
        first_peak = abs(shake_offset(2400.0 / 12, 2400.0, 3.0))
        last_peak = abs(shake_offset(2400.0 * 11 / 12, 2400.0, 3.0))
        self.assertGreater(first_peak, last_peak)

    def test_shakes_completed_is_time_based(self):
        self.assertEqual(shakes_completed(0.0, 2400.0), 0)
        self.assertEqual(shakes_completed(799.0, 2400.0), 0)
        self.assertEqual(shakes_completed(800.0, 2400.0), 1)
        self.assertEqual(shakes_completed(2400.0, 2400.0), 3)
        self.assertEqual(shakes_completed(5000.0, 2400.0), 3)

    def test_ball_stands_still_during_star_hold(self):
        machine = make_machine()
        machine.handle_command("catch")
        run_until(machine, CapturePhase.STAR_HOLD)
        self.assertTrue(machine.star_visible)
        xs = set()
        while machine.phase is CapturePhase.STAR_HOLD:
            xs.add(machine.params.center_x)
            machine.update(100.0)
        self.assertEqual(xs, {100.0})


class CommandGatingTests(unittest.TestCase):
    def test_catch_ignored_outside_idle(self):
        machine = make_machine()
        machine.handle_command("catch")

        for phase in PHASE_ORDER[1:]:
            run_until(machine, phase)
            snapshot = (
                machine.phase,
                machine.elapsed_ms,
                machine.params.center_x,
                machine.params.center_y,
                machine.params.rotation,
                machine.params.split,
            )
            self.assertFalse(machine.handle_command("catch"))
            self.assertEqual(snapshot, (
                machine.phase,
                machine.elapsed_ms,
                machine.params.center_x,
                machine.params.center_y,
                machine.params.rotation,
                machine.params.split,
            ))

    def test_other_tokens_ignored(self):
        machine = make_machine()
        self.assertFalse(machine.handle_command("dex"))
        self.assertFalse(machine.handle_command("throw"))
        self.assertIs(machine.phase, CapturePhase.IDLE)

    def test_catch_is_case_insensitive(self):
        machine = make_machine()
        self.assertTrue(machine.handle_command("  CATCH "))

    def test_sprite_hidden_while_inside_ball(self):
        machine = make_machine()
        machine.handle_command("catch")
        visible = {}
        for _ in range(2000):
            visible.setdefault(machine.phase, machine.sprite_visible)
            if machine.update(100.0) is CapturePhase.IDLE:
                break

        for phase in (CapturePhase.ABSORBING, CapturePhase.CLOSING,
                      CapturePhase.SHAKING, CapturePhase.STAR_HOLD):
            self.assertFalse(visible[phase])
        self.assertTrue(visible[CapturePhase.THROWING])


class SplitTests(unittest.TestCase):
    def test_ball_opens_and_closes(self):
        machine = make_machine()
        machine.handle_command("catch")
        run_until(machine, CapturePhase.ABSORBING)
        self.assertEqual(machine.params.split, machine.split_offset)
        run_until(machine, CapturePhase.SHAKING)
        self.assertEqual(machine.params.split, 0.0)

    def test_ball_returns_to_rest_after_capture(self):
        machine = make_machine()
        machine.handle_command("catch")
        run_until(machine, CapturePhase.CAUGHT)
        self.assertTrue(math.isclose(machine.params.center_x, 10.0))

    def test_absorbing_spawns_more_than_it_needs(self):
        machine = make_machine()
        machine.handle_command("catch")
        run_until(machine, CapturePhase.ABSORBING)

        spawned = machine.particles.rate * machine.timings.absorbing_ms / 1000.0
        self.assertAlmostEqual(spawned, machine.absorb_particles * ABSORB_OVERSPAWN)
        self.assertGreater(spawned, machine.absorb_particles)


class CurveTests(unittest.TestCase):
    def test_curves_start_at_zero_and_end_at_one(self):
        for curve in (ease_out_quad, ease_out_cubic, ease_in_out_quad):
            self.assertEqual(curve(0.0), 0.0)
            self.assertEqual(curve(1.0), 1.0)

    def test_ease_in_out_is_symmetric(self):
        self.assertEqual(ease_in_out_quad(0.5), 0.5)
        self.assertAlmostEqual(ease_in_out_quad(0.25), 1.0 - ease_in_out_quad(0.75))

    def test_tween_clamps_progress(self):
        self.assertEqual(tween(2.0, 0.0, -1.0, ease_out_cubic), 2.0)
        self.assertEqual(tween(2.0, 0.0, 3.0, ease_out_cubic), 0.0)
        self.assertAlmostEqual(tween(0.0, 4.0, 0.5, ease_out_quad), 3.0)


if __name__ == "__main__":
    unittest.main()
