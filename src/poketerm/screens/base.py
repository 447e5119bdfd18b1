"""Base class for all session screens in POKETERM."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Set
import logging

from poketerm.assets.registry import SpriteRegistry
from poketerm.config.settings import Settings
from poketerm.core.events import EventBus
from poketerm.core.state import Screen, StateMachine
from poketerm.graphics.buffers import FrameBuffers

logger = logging.getLogger(__name__)


def always_available(name: str) -> bool:
    return True


@dataclass
class SessionContext:
    """Shared context passed to screens.

    Everything here belongs to one session except the sprite registry,
    which is read-only and shared by all of them.
    """

    state_machine: StateMachine
    event_bus: EventBus
    sprites: SpriteRegistry
    settings: Settings

    # Display dimensions
    width: int = 120
    height: int = 40

    # Captured Pokedex numbers of the logged-in trainer
    captured: Set[int] = field(default_factory=set)

    # Claims a trainer name among connected sessions
    claim_name: Callable[[str], bool] = always_available

    @property
    def trainer(self) -> Optional[str]:
        return self.state_machine.context.trainer


class BaseScreen(ABC):
    """Abstract base class for all screens.

    Lifecycle:
        1. enter() - Screen becomes active
        2. update(delta) - Per-tick logic while active
        3. handle_input(line) - One input line
        4. render(buffers) - Draw into the session buffers
        5. exit() - Screen is left; local view state is dropped
    """

    # Screen metadata (override in subclasses)
    screen: Screen = Screen.NAME_ENTRY
    name: str = "base"

    def __init__(self, context: SessionContext):
        self.context = context
        self._active = False
        self._time_in_screen: float = 0.0
        logger.debug(f"Screen created: {self.name}")

    @property
    def time_in_screen(self) -> float:
        """Milliseconds since the screen was last entered."""
        return self._time_in_screen

    # Lifecycle methods
    def enter(self) -> None:
        """Called when the screen becomes active."""
        self._active = True
        self._time_in_screen = 0.0
        logger.debug(f"Entering screen: {self.name}")
        self.on_enter()

    def exit(self) -> None:
        """Called when the screen is deactivated."""
        logger.debug(f"Exiting screen: {self.name}")
        self.on_exit()
        self._active = False

    def update(self, delta_ms: float) -> None:
        """Update screen state each tick.

        Args:
            delta_ms: Tick length in milliseconds
        """
        if not self._active:
            return

        self._time_in_screen += delta_ms
        self.on_update(delta_ms)

    def handle_input(self, line: str) -> bool:
        """Process one input line.

        Args:
            line: Input with surrounding whitespace removed

        Returns:
            True if the line did something
        """
        if not self._active:
            return False

        return self.on_input(line)

    # Abstract methods (must be implemented by subclasses)
    @abstractmethod
    def on_input(self, line: str) -> bool:
        """Handle an input line. Return True if handled."""
        pass

    @abstractmethod
    def render(self, buffers: FrameBuffers) -> None:
        """Draw the screen."""
        pass

    # Optional overrides
    def on_enter(self) -> None:
        pass

    def on_exit(self) -> None:
        pass

    def on_update(self, delta_ms: float) -> None:
        pass

    def transition_to(self, screen: Screen, **context: Any) -> bool:
        """Request a screen transition."""
        return self.context.state_machine.transition(screen, **context)
