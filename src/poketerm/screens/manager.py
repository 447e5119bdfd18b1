"""
Screen manager.

Dispatches ticks, input lines and rendering to whichever screen the
session's StateMachine says is active. The set of screens is fixed and
every move between them goes through StateMachine.transition, so the
transition table in core.state is the only source of truth.
"""

from typing import Dict, Optional
import logging
import random

from poketerm.core.events import Event, EventType
from poketerm.core.state import Screen, ScreenContext
from poketerm.graphics.buffers import FrameBuffers
from poketerm.screens.base import BaseScreen, SessionContext
from poketerm.screens.game import GameScreen
from poketerm.screens.name_entry import NameEntryScreen
from poketerm.screens.pokedex import PokedexDetailScreen, PokedexGridScreen

logger = logging.getLogger(__name__)

QUIT_COMMANDS = ("quit", "exit")


class ScreenManager:
    """Owns one instance of every screen for a session.

    Args:
        context: Session context shared by the screens
        rng: Random source for encounters and particles
    """

    def __init__(self, context: SessionContext, rng: Optional[random.Random] = None):
        self.context = context
        self.state_machine = context.state_machine

        self.game = GameScreen(context, rng=rng)
        self.name_entry = NameEntryScreen(context)
        self.screens: Dict[Screen, BaseScreen] = {
            Screen.NAME_ENTRY: self.name_entry,
            Screen.GAME: self.game,
            Screen.POKEDEX_GRID: PokedexGridScreen(context),
            Screen.POKEDEX_DETAIL: PokedexDetailScreen(context),
        }

        self.state_machine.add_listener(self._on_transition)
        self.active.enter()

    @property
    def state(self) -> Screen:
        return self.state_machine.state

    @property
    def active(self) -> Optional[BaseScreen]:
        """The current screen, or None once terminated."""
        return self.screens.get(self.state_machine.state)

    @property
    def terminated(self) -> bool:
        return self.state_machine.is_terminated

    def _on_transition(self, old: Screen, new: Screen, ctx: ScreenContext) -> None:
        previous = self.screens.get(old)
        if previous is not None:
            previous.exit()

        current = self.screens.get(new)
        if current is not None:
            current.enter()

        self.context.event_bus.emit(Event(
            EventType.SCREEN_CHANGED,
            data={"from": old, "to": new, "entry_id": ctx.entry_id},
            source="screens",
        ))

    def handle_input(self, line: str) -> bool:
        """Route one input line.

        "quit" and "exit" end the session from any screen; everything else
        goes to the active screen, which ignores what it does not know.
        """
        text = line.strip()
        if not text or self.terminated:
            return False

        self.context.event_bus.emit(Event(
            EventType.INPUT_LINE,
            data={"line": text, "screen": self.state},
            source="screens",
        ))

        if text.lower() in QUIT_COMMANDS:
            return self.terminate()

        handled = self.active.handle_input(text)
        if not handled:
            logger.debug(f"Ignored input on {self.state.name}: {text!r}")
        return handled

    def terminate(self) -> bool:
        """End the session (quit, exit or disconnect)."""
        if self.terminated:
            return False
        return self.state_machine.transition(Screen.TERMINATED)

    def update(self, delta_ms: float) -> None:
        """Advance only the active screen; the others stay frozen."""
        screen = self.active
        if screen is not None:
            screen.update(delta_ms)

    def render(self, buffers: FrameBuffers) -> None:
        screen = self.active
        if screen is not None:
            screen.render(buffers)
