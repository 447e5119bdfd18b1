"""The capture scene: a wild Pokemon, a spinning Poke Ball and the HUD."""

from typing import Optional, Tuple
import logging
import random

from poketerm.animation.capture import CATCH_COMMAND, CapturePhase, GameStateMachine
from poketerm.assets.pokedex import POKEDEX_SIZE, display_name
from poketerm.core.state import Screen
from poketerm.graphics.buffers import FrameBuffers
from poketerm.graphics.colors import DIM, HIGHLIGHT, TEXT
from poketerm.graphics.effects import draw_star_burst
from poketerm.graphics.layout import SceneLayout
from poketerm.graphics.sphere import SphereParams, SphereRenderer
from poketerm.graphics.sprite import (
    SPRITE_DEPTH,
    Sprite,
    SpriteLayer,
    floor_anchor,
    placeholder_sprite,
    sprite_bounds,
)
from poketerm.graphics.text import draw_text
from poketerm.screens.base import BaseScreen, SessionContext

logger = logging.getLogger(__name__)

POKEDEX_COMMANDS = ("pokedex", "dex")

# Behind the sprite so the Pokemon's feet cover the ground line
GROUND_DEPTH = SPRITE_DEPTH + 1.0
GROUND_GLYPH = "_"


class GameScreen(BaseScreen):
    """Owns the session's only GameStateMachine.

    Leaving the screen does not touch the machine; because only the active
    screen is updated, an attempt in progress simply pauses and resumes
    where it stopped when the trainer comes back.
    """

    screen = Screen.GAME
    name = "game"

    def __init__(self, context: SessionContext, rng: Optional[random.Random] = None):
        super().__init__(context)
        settings = context.settings
        render = settings.render

        self.rng = rng or random.Random()
        self.layout = SceneLayout.for_size(context.width, context.height)
        self.aspect_ratio = render.aspect_ratio

        self.params = SphereParams(
            radius=render.sphere_radius,
            center_x=self.layout.ball_rest_x,
            center_y=self.layout.ball_center_y(render.sphere_radius, render.aspect_ratio),
            tilt=render.tilt,
            camera_distance=render.camera_distance,
            light_direction=render.light_direction,
        )
        self.renderer = SphereRenderer(
            glyph_ramp=render.glyph_ramp,
            aspect_ratio=render.aspect_ratio,
            sampling_step=render.sampling_step,
            method=render.sphere_method,
        )
        self.sprite_layer = SpriteLayer()
        self.machine = GameStateMachine.from_settings(
            self.params,
            target_x=self.layout.sprite_x,
            settings=settings,
            event_bus=context.event_bus,
            rng=self.rng,
        )

        self.encounter_id: Optional[int] = None
        self.sprite: Optional[Sprite] = None
        self.last_caught: Optional[int] = None
        self._scene_time = 0.0

    @property
    def phase(self) -> CapturePhase:
        return self.machine.phase

    def on_enter(self) -> None:
        if self.encounter_id is None:
            self.new_encounter()

    def new_encounter(self, dex_id: Optional[int] = None) -> int:
        """Pick the next wild Pokemon (random unless given)."""
        if dex_id is None:
            available = self.context.sprites.available_ids()
            if available:
                dex_id = self.rng.choice(available)
            else:
                dex_id = self.rng.randint(1, POKEDEX_SIZE)

        sprite = self.context.sprites.get(dex_id)
        if sprite is None:
            sprite = Sprite(frames=(placeholder_sprite(dex_id, aspect_ratio=self.aspect_ratio),))

        self.encounter_id = dex_id
        self.sprite = sprite
        self.machine.set_encounter(dex_id, self._sprite_box())
        logger.debug(f"Wild encounter: #{dex_id}")
        return dex_id

    def _sprite_anchor(self) -> Tuple[int, int]:
        frame = self.sprite.frame_at(self._scene_time)
        return floor_anchor(frame, self.layout.floor_row, self.layout.sprite_x)

    def _sprite_box(self) -> Tuple[float, float, float, float]:
        frame = self.sprite.frame_at(0.0)
        top, left, bottom, right = sprite_bounds(frame, *floor_anchor(
            frame, self.layout.floor_row, self.layout.sprite_x
        ))
        return float(top), float(left), float(bottom), float(right)

    def on_update(self, delta_ms: float) -> None:
        self._scene_time += delta_ms
        previous = self.machine.phase
        phase = self.machine.update(delta_ms)

        if phase is CapturePhase.CAUGHT:
            self.last_caught = self.encounter_id
        elif phase is CapturePhase.IDLE and previous is CapturePhase.CAUGHT:
            self.new_encounter()

    def on_input(self, line: str) -> bool:
        command = line.strip().lower()
        if command in POKEDEX_COMMANDS:
            return self.transition_to(Screen.POKEDEX_GRID)
        if command == CATCH_COMMAND:
            return self.machine.handle_command(command)
        return False

    # Rendering
    def render(self, buffers: FrameBuffers) -> None:
        self._render_ground(buffers)

        if self.machine.sprite_visible and self.sprite is not None:
            frame = self.sprite.frame_at(self._scene_time)
            row, col = self._sprite_anchor()
            self.sprite_layer.blit(buffers, frame, row, col)

        self.renderer.render(buffers, self.params)

        if self.machine.particles is not None:
            self.machine.particles.draw(buffers)

        if self.machine.star_visible:
            draw_star_burst(
                buffers,
                self.params.center_y,
                self.params.center_x,
                self.params.radius,
                self.machine.elapsed_ms,
                self.aspect_ratio,
            )

        self._render_hud(buffers)

    def _render_ground(self, buffers: FrameBuffers) -> None:
        row = self.layout.floor_row + 1
        for col in range(buffers.width):
            buffers.write(row, col, GROUND_GLYPH, DIM, GROUND_DEPTH)

    def _render_hud(self, buffers: FrameBuffers) -> None:
        trainer = self.context.trainer or "?"
        caught = len(self.context.captured)
        draw_text(buffers, 0, 1, f"Trainer: {trainer}", TEXT)
        status = f"Caught: {caught}/{POKEDEX_SIZE}"
        draw_text(buffers, 0, max(0, buffers.width - len(status) - 1), status, TEXT)

        if self.encounter_id is not None:
            draw_text(buffers, 2, 1, f"A wild {display_name(self.encounter_id)} appeared!", HIGHLIGHT)

        draw_text(buffers, buffers.height - 2, 1, self.prompt(), TEXT)
        draw_text(buffers, buffers.height - 1, 0, "> ", DIM)

    def prompt(self) -> str:
        """One-line status for the current phase."""
        phase = self.machine.phase
        name = display_name(self.encounter_id) if self.encounter_id else "???"

        if phase is CapturePhase.IDLE:
            if self.last_caught is not None:
                return (f"Gotcha! {display_name(self.last_caught)} was caught! "
                        f"Type 'catch' to throw again or 'dex' for your Pokedex")
            return "Type 'catch' to throw a Poke Ball or 'dex' for your Pokedex"
        if phase is CapturePhase.THROWING:
            return "You threw a Poke Ball!"
        if phase in (CapturePhase.OPENING, CapturePhase.ABSORBING):
            return f"{name} is drawn into the ball..."
        if phase is CapturePhase.CLOSING:
            return "The ball snaps shut..."
        if phase is CapturePhase.SHAKING:
            return "Shake... " * self.machine.shakes or "..."
        return f"Gotcha! {name} was caught!"
