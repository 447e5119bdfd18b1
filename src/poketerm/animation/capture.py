"""Capture animation state machine.

Phases run in a fixed loop:

    IDLE -> THROWING -> OPENING -> ABSORBING -> CLOSING -> SHAKING
         -> STAR_HOLD -> CAUGHT -> IDLE

Only IDLE listens to the "catch" command. Every other boundary is reached
from elapsed time (or, for THROWING and ABSORBING, from what the animation
has done), and at most one boundary is crossed per tick, so no phase is
ever skipped. The ball keeps spinning in every phase.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional, Tuple
import logging
import math
import random

from poketerm.animation.particles import ParticleStream
from poketerm.core.events import Event, EventBus, EventType
from poketerm.graphics.sphere import SphereParams

logger = logging.getLogger(__name__)

TAU = 2 * math.pi
SHAKE_CYCLES = 3
ARRIVAL_EPSILON = 1e-6
CATCH_COMMAND = "catch"

# Particles spawned over a full ABSORBING phase, per absorb_particles
ABSORB_OVERSPAWN = 1.5

Box = Tuple[float, float, float, float]


class CapturePhase(Enum):
    """Phases of one capture attempt."""

    IDLE = auto()
    THROWING = auto()
    OPENING = auto()
    ABSORBING = auto()
    CLOSING = auto()
    SHAKING = auto()
    STAR_HOLD = auto()
    CAUGHT = auto()


NEXT_PHASE: dict[CapturePhase, CapturePhase] = {
    CapturePhase.IDLE: CapturePhase.THROWING,
    CapturePhase.THROWING: CapturePhase.OPENING,
    CapturePhase.OPENING: CapturePhase.ABSORBING,
    CapturePhase.ABSORBING: CapturePhase.CLOSING,
    CapturePhase.CLOSING: CapturePhase.SHAKING,
    CapturePhase.SHAKING: CapturePhase.STAR_HOLD,
    CapturePhase.STAR_HOLD: CapturePhase.CAUGHT,
    CapturePhase.CAUGHT: CapturePhase.IDLE,
}

# The wild Pokemon is drawn only in these phases
SPRITE_PHASES = frozenset({
    CapturePhase.IDLE,
    CapturePhase.THROWING,
    CapturePhase.OPENING,
    CapturePhase.CAUGHT,
})


@dataclass(frozen=True)
class PhaseTimings:
    """Fixed phase durations in milliseconds."""

    opening_ms: float = 600.0
    absorbing_ms: float = 1500.0
    closing_ms: float = 500.0
    shaking_ms: float = 2400.0
    star_hold_ms: float = 1500.0

    @classmethod
    def from_settings(cls, animation) -> "PhaseTimings":
        return cls(
            opening_ms=animation.opening_ms,
            absorbing_ms=animation.absorbing_ms,
            closing_ms=animation.closing_ms,
            shaking_ms=animation.shaking_ms,
            star_hold_ms=animation.star_hold_ms,
        )

    def duration(self, phase: CapturePhase) -> Optional[float]:
        """Fixed duration of a phase, or None when it ends on something else."""
        return {
            CapturePhase.OPENING: self.opening_ms,
            CapturePhase.ABSORBING: self.absorbing_ms,
            CapturePhase.CLOSING: self.closing_ms,
            CapturePhase.SHAKING: self.shaking_ms,
            CapturePhase.STAR_HOLD: self.star_hold_ms,
        }.get(phase)


def advance_phase(
    phase: CapturePhase,
    elapsed_ms: float,
    delta_ms: float,
    timings: PhaseTimings,
    arrived: bool = False,
    absorbed_all: bool = False,
) -> Tuple[CapturePhase, float]:
    """Pure phase transition: (phase, elapsed) -> (phase', elapsed').

    Args:
        phase: Current phase
        elapsed_ms: Time already spent in the phase
        delta_ms: Tick length
        timings: Phase durations
        arrived: THROWING only, the ball reached the Pokemon
        absorbed_all: ABSORBING only, enough particles were absorbed

    Returns:
        The next phase with its elapsed counter (reset to zero on a change)
    """
    elapsed = elapsed_ms + delta_ms

    if phase is CapturePhase.IDLE:
        # Left only through the catch command
        return phase, elapsed
    if phase is CapturePhase.CAUGHT:
        done = True
    elif phase is CapturePhase.THROWING:
        done = arrived
    elif phase is CapturePhase.ABSORBING:
        done = absorbed_all or elapsed >= timings.absorbing_ms
    else:
        done = elapsed >= timings.duration(phase)

    if done:
        return NEXT_PHASE[phase], 0.0
    return phase, elapsed


def ease_out_quad(t: float) -> float:
    return 1 - (1 - t) ** 2


def ease_out_cubic(t: float) -> float:
    return 1 - (1 - t) ** 3


def ease_in_out_quad(t: float) -> float:
    if t < 0.5:
        return 2 * t * t
    return 1 - (2 - 2 * t) ** 2 / 2


def tween(start: float, end: float, t: float, curve: Callable[[float], float]) -> float:
    """Value between start and end at progress t (clamped to [0, 1]) along curve."""
    return start + (end - start) * curve(max(0.0, min(1.0, t)))


def shake_offset(elapsed_ms: float, duration_ms: float, amplitude: float) -> float:
    """Left-right ball offset: SHAKE_CYCLES sine cycles with decaying amplitude."""
    t = max(0.0, min(1.0, elapsed_ms / duration_ms))
    envelope = tween(amplitude, 0.0, t, ease_out_quad)
    return envelope * math.sin(TAU * SHAKE_CYCLES * t)


def shakes_completed(elapsed_ms: float, duration_ms: float) -> int:
    """Whole shake cycles done after elapsed_ms of the shaking phase."""
    return min(SHAKE_CYCLES, int(SHAKE_CYCLES * elapsed_ms / duration_ms))


class GameStateMachine:
    """Drives the Poke Ball through a capture attempt.

    Owns the SphereParams the renderer reads. Updated once per tick with
    the tick length; the result depends only on the sequence of deltas
    and commands, never on wall-clock time.

    Args:
        params: Sphere parameters (its center is the rest position)
        target_x: Column the ball is thrown to (the Pokemon)
        timings: Phase durations
        spin_speed: Radians per second, in every phase
        throw_speed: Columns per second while THROWING
        shake_amplitude: Peak shake offset in columns
        split_offset: Rows each half moves while the ball is open
        absorb_particles: Particles that end ABSORBING early
        aspect_ratio: Glyph height / width correction
        event_bus: Receives PHASE_CHANGED and CAPTURED events
        rng: Random source for particles
    """

    def __init__(
        self,
        params: SphereParams,
        target_x: float,
        timings: Optional[PhaseTimings] = None,
        spin_speed: float = 2.4,
        throw_speed: float = 45.0,
        shake_amplitude: float = 3.0,
        split_offset: float = 2.0,
        absorb_particles: int = 24,
        aspect_ratio: float = 1.5,
        event_bus: Optional[EventBus] = None,
        rng: Optional[random.Random] = None,
    ):
        self.params = params
        self.rest_x = params.center_x
        self.target_x = target_x
        self.timings = timings or PhaseTimings()
        self.spin_speed = spin_speed
        self.throw_speed = throw_speed
        self.shake_amplitude = shake_amplitude
        self.split_offset = split_offset
        self.absorb_particles = absorb_particles
        self.aspect_ratio = aspect_ratio
        self.event_bus = event_bus
        self.rng = rng or random.Random()

        self.phase = CapturePhase.IDLE
        self.elapsed_ms = 0.0
        self.shakes = 0
        self.particles: Optional[ParticleStream] = None

        # Set by the game screen for each encounter
        self.encounter_id: Optional[int] = None
        self.sprite_box: Optional[Box] = None

    @classmethod
    def from_settings(
        cls,
        params: SphereParams,
        target_x: float,
        settings,
        event_bus: Optional[EventBus] = None,
        rng: Optional[random.Random] = None,
    ) -> "GameStateMachine":
        anim = settings.animation
        return cls(
            params=params,
            target_x=target_x,
            timings=PhaseTimings.from_settings(anim),
            spin_speed=anim.spin_speed,
            throw_speed=anim.throw_speed,
            shake_amplitude=anim.shake_amplitude,
            split_offset=anim.split_offset,
            absorb_particles=anim.absorb_particles,
            aspect_ratio=settings.render.aspect_ratio,
            event_bus=event_bus,
            rng=rng,
        )

    # Queries
    @property
    def sprite_visible(self) -> bool:
        return self.phase in SPRITE_PHASES

    @property
    def star_visible(self) -> bool:
        return self.phase is CapturePhase.STAR_HOLD

    @property
    def accepts_commands(self) -> bool:
        return self.phase is CapturePhase.IDLE

    def set_encounter(self, dex_id: int, sprite_box: Optional[Box] = None) -> None:
        """Set the Pokemon the next throw is aimed at."""
        self.encounter_id = dex_id
        self.sprite_box = sprite_box

    # Input
    def handle_command(self, command: str) -> bool:
        """Handle a gameplay command. Only "catch" while IDLE does anything.

        Returns:
            True if the command started a throw
        """
        if command.strip().lower() != CATCH_COMMAND:
            return False
        if not self.accepts_commands:
            logger.debug(f"Ignoring catch during {self.phase.name}")
            return False

        self._change_phase(CapturePhase.THROWING)
        return True

    # Per-tick update
    def update(self, delta_ms: float) -> Optional[CapturePhase]:
        """Advance one tick.

        Args:
            delta_ms: Tick length in milliseconds

        Returns:
            The new phase if a boundary was crossed this tick, else None
        """
        # Spin never stops
        self.params.rotation = (self.params.rotation + self.spin_speed * delta_ms / 1000) % TAU

        arrived = False
        absorbed_all = False

        if self.phase is CapturePhase.THROWING:
            arrived = self._move_towards_target(delta_ms)
        elif self.phase is CapturePhase.ABSORBING and self.particles is not None:
            self.particles.set_target(self.params.center_y, self.params.center_x)
            self.particles.update(delta_ms)
            absorbed_all = self.particles.absorbed >= self.absorb_particles

        new_phase, elapsed = advance_phase(
            self.phase,
            self.elapsed_ms,
            delta_ms,
            self.timings,
            arrived=arrived,
            absorbed_all=absorbed_all,
        )

        if new_phase is not self.phase:
            self._change_phase(new_phase)
            return new_phase

        self.elapsed_ms = elapsed
        self._apply_visuals()
        return None

    def _move_towards_target(self, delta_ms: float) -> bool:
        """Constant horizontal speed, no arc. Returns True on arrival."""
        remaining = self.target_x - self.params.center_x
        step = self.throw_speed * delta_ms / 1000
        if abs(remaining) <= step:
            self.params.center_x = self.target_x
        else:
            self.params.center_x += math.copysign(step, remaining)
        return abs(self.params.center_x - self.target_x) < ARRIVAL_EPSILON

    def _change_phase(self, new_phase: CapturePhase) -> None:
        old_phase = self.phase
        self.phase = new_phase
        self.elapsed_ms = 0.0

        logger.debug(f"Capture phase: {old_phase.name} -> {new_phase.name}")
        self._on_enter(old_phase, new_phase)
        self._apply_visuals()

        if self.event_bus:
            self.event_bus.emit(Event(
                EventType.PHASE_CHANGED,
                data={"from": old_phase, "to": new_phase},
                source="capture",
            ))

    def _on_enter(self, old_phase: CapturePhase, new_phase: CapturePhase) -> None:
        if new_phase is CapturePhase.THROWING:
            self.shakes = 0
        elif new_phase is CapturePhase.ABSORBING:
            self.particles = ParticleStream(
                source=self.sprite_box or self._default_source(),
                target=(self.params.center_y, self.params.center_x),
                rate=self.absorb_particles * ABSORB_OVERSPAWN * 1000.0 / self.timings.absorbing_ms,
                aspect_ratio=self.aspect_ratio,
                arrive_radius=max(1.0, self.params.radius * 0.5),
                rng=self.rng,
            )
        elif new_phase is CapturePhase.CLOSING:
            self.particles = None
        elif new_phase is CapturePhase.STAR_HOLD:
            self.shakes = SHAKE_CYCLES
            logger.debug(f"Capture confirmed: #{self.encounter_id}")
        elif new_phase is CapturePhase.CAUGHT:
            self._record_capture()
            self.params.center_x = self.rest_x

    def _apply_visuals(self) -> None:
        """Derive split and shake offsets from the phase and its elapsed time."""
        phase = self.phase
        params = self.params

        if phase is CapturePhase.OPENING:
            t = self.elapsed_ms / self.timings.opening_ms
            params.split = tween(0.0, self.split_offset, t, ease_out_cubic)
        elif phase is CapturePhase.ABSORBING:
            params.split = self.split_offset
        elif phase is CapturePhase.CLOSING:
            t = self.elapsed_ms / self.timings.closing_ms
            params.split = tween(self.split_offset, 0.0, t, ease_in_out_quad)
        else:
            params.split = 0.0

        if phase is CapturePhase.SHAKING:
            params.center_x = self.target_x + shake_offset(
                self.elapsed_ms, self.timings.shaking_ms, self.shake_amplitude
            )
            self.shakes = shakes_completed(self.elapsed_ms, self.timings.shaking_ms)
        elif phase is CapturePhase.STAR_HOLD:
            params.center_x = self.target_x

    def _default_source(self) -> Box:
        """Spawn box around the throw target when no sprite box is known."""
        row = self.params.center_y
        return (row - 4, self.target_x - 8, row + 2, self.target_x + 8)

    def _record_capture(self) -> None:
        logger.info(f"Capture recorded: #{self.encounter_id}")
        if self.event_bus:
            self.event_bus.emit(Event(
                EventType.CAPTURED,
                data={"dex_id": self.encounter_id},
                source="capture",
            ))
