"""Animation module for POKETERM."""

from poketerm.animation.particles import Particle, ParticleStream
from poketerm.animation.capture import (
    CapturePhase,
    GameStateMachine,
    PhaseTimings,
    advance_phase,
)
from poketerm.animation.clock import AnimationClock

__all__ = [
    # Particles
    "Particle",
    "ParticleStream",
    # Capture
    "CapturePhase",
    "GameStateMachine",
    "PhaseTimings",
    "advance_phase",
    # Clock
    "AnimationClock",
]
