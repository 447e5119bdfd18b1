"""Glyph particle stream used while the Poke Ball absorbs a Pokemon."""

from typing import List, Optional, Tuple
from dataclasses import dataclass
import math
import random

from poketerm.graphics.buffers import FrameBuffers
from poketerm.graphics.colors import Color, PARTICLE, scale_color

# Between the sphere surface and the (hidden) sprite
PARTICLE_DEPTH = 500.0

PARTICLE_GLYPHS = "*+·o"


@dataclass
class Particle:
    """A single glyph particle homing on a target point."""

    x: float  # column
    y: float  # row
    vx: float = 0.0
    vy: float = 0.0
    glyph: str = "*"
    color: Color = PARTICLE
    lifetime: float = 2000.0  # milliseconds
    age: float = 0.0
    active: bool = True

    @property
    def is_dead(self) -> bool:
        """Check if particle has expired."""
        return self.age >= self.lifetime

    def update(self, delta_ms: float) -> None:
        """Move along the current velocity and age."""
        if not self.active:
            return

        self.x += self.vx * delta_ms / 1000
        self.y += self.vy * delta_ms / 1000
        self.age += delta_ms

        if self.is_dead:
            self.active = False


class ParticleStream:
    """Spawns particles inside a source box and pulls them into a target.

    A particle counts as absorbed when it gets within arrive_radius of the
    target; particles that outlive their lifetime are dropped without
    counting.

    Args:
        source: (top, left, bottom, right) spawn box in cells
        target: (row, col) point particles travel to
        rate: Particles spawned per second
        speed: Travel speed in columns per second
        aspect_ratio: Glyph height / width correction
        arrive_radius: Absorption distance in columns
        rng: Random source (seed it for repeatable streams)
    """

    def __init__(
        self,
        source: Tuple[float, float, float, float],
        target: Tuple[float, float],
        rate: float = 20.0,
        speed: float = 40.0,
        aspect_ratio: float = 1.5,
        arrive_radius: float = 2.0,
        rng: Optional[random.Random] = None,
    ):
        self.source = source
        self.target = target
        self.rate = rate
        self.speed = speed
        self.aspect_ratio = aspect_ratio
        self.arrive_radius = arrive_radius
        self.rng = rng or random.Random()
        self.particles: List[Particle] = []
        self.absorbed = 0
        self._emit_accumulator = 0.0

    def set_target(self, row: float, col: float) -> None:
        self.target = (row, col)

    def emit(self, count: int = 1) -> None:
        """Spawn particles at random points of the source box."""
        top, left, bottom, right = self.source
        for _ in range(count):
            brightness = self.rng.uniform(0.7, 1.0)
            self.particles.append(Particle(
                x=self.rng.uniform(left, right),
                y=self.rng.uniform(top, bottom),
                glyph=self.rng.choice(PARTICLE_GLYPHS),
                color=scale_color(PARTICLE, brightness),
                lifetime=self.rng.uniform(1500.0, 2500.0),
            ))

    def update(self, delta_ms: float) -> None:
        """Emit by rate, steer every particle at the target, collect arrivals."""
        if self.rate > 0:
            self._emit_accumulator += delta_ms
            emit_interval = 1000.0 / self.rate
            while self._emit_accumulator >= emit_interval:
                self._emit_accumulator -= emit_interval
                self.emit(1)

        target_row, target_col = self.target
        for particle in self.particles:
            if not particle.active:
                continue

            # Distances in column units
            dx = target_col - particle.x
            dy = (target_row - particle.y) * self.aspect_ratio
            dist = math.hypot(dx, dy)
            if dist <= self.arrive_radius:
                particle.active = False
                self.absorbed += 1
                continue

            # Never overshoot the target in one step
            step = self.speed * delta_ms / 1000
            scale = min(self.speed, dist * 1000 / max(delta_ms, 1e-6)) / dist
            particle.vx = dx * scale
            particle.vy = dy * scale / self.aspect_ratio
            particle.update(delta_ms)

            if step >= dist:
                particle.active = False
                self.absorbed += 1

        self.particles = [p for p in self.particles if p.active]

    def draw(self, buffers: FrameBuffers, depth: float = PARTICLE_DEPTH) -> None:
        for particle in self.particles:
            buffers.write(
                int(round(particle.y)),
                int(round(particle.x)),
                particle.glyph,
                particle.color,
                depth,
            )

    def get_active_count(self) -> int:
        """Get the number of active particles."""
        return len(self.particles)
