"""
Screen state machine for a POKETERM session.

States:
    NAME_ENTRY: Asking the trainer for a name
    GAME: The capture scene (owns the capture animation)
    POKEDEX_GRID: Grid of all 151 entries
    POKEDEX_DETAIL: One captured entry with its sprite
    TERMINATED: Session is over (quit, exit or disconnect)
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Callable, Any
import logging

logger = logging.getLogger(__name__)


class Screen(Enum):
    """Top-level screens of a session."""
    NAME_ENTRY = auto()
    GAME = auto()
    POKEDEX_GRID = auto()
    POKEDEX_DETAIL = auto()
    TERMINATED = auto()


@dataclass
class ScreenContext:
    """Context data carried by the active screen."""
    trainer: str | None = None
    entry_id: int | None = None


Listener = Callable[[Screen, Screen, ScreenContext], None]


class StateMachine:
    """
    Manages screen state and transitions.

    Only transitions listed in VALID_TRANSITIONS are allowed; anything else
    is rejected and leaves the current screen unchanged.
    """

    # Valid state transitions
    VALID_TRANSITIONS: list[tuple[Screen, Screen]] = [
        # From NAME_ENTRY
        (Screen.NAME_ENTRY, Screen.GAME),
        (Screen.NAME_ENTRY, Screen.TERMINATED),

        # From GAME
        (Screen.GAME, Screen.POKEDEX_GRID),
        (Screen.GAME, Screen.TERMINATED),

        # From POKEDEX_GRID
        (Screen.POKEDEX_GRID, Screen.GAME),
        (Screen.POKEDEX_GRID, Screen.POKEDEX_DETAIL),
        (Screen.POKEDEX_GRID, Screen.TERMINATED),

        # From POKEDEX_DETAIL
        (Screen.POKEDEX_DETAIL, Screen.POKEDEX_GRID),
        (Screen.POKEDEX_DETAIL, Screen.TERMINATED),
    ]

    def __init__(self, initial_state: Screen = Screen.NAME_ENTRY) -> None:
        self._state = initial_state
        self._context = ScreenContext()
        self._listeners: list[Listener] = []
        self._valid_transitions = set(self.VALID_TRANSITIONS)
        logger.debug(f"StateMachine initialized with state: {initial_state.name}")

    @property
    def state(self) -> Screen:
        """Get current state."""
        return self._state

    @property
    def context(self) -> ScreenContext:
        """Get current context."""
        return self._context

    @property
    def is_terminated(self) -> bool:
        return self._state is Screen.TERMINATED

    def can_transition(self, to_state: Screen) -> bool:
        """Check if transition to given state is valid."""
        return (self._state, to_state) in self._valid_transitions

    def transition(self, to_state: Screen, **context_updates: Any) -> bool:
        """
        Attempt to transition to a new state.

        Args:
            to_state: Target state
            **context_updates: Updates to apply to context

        Returns:
            True if transition successful, False otherwise
        """
        if not self.can_transition(to_state):
            logger.warning(
                f"Invalid transition: {self._state.name} -> {to_state.name}"
            )
            return False

        old_state = self._state
        self._state = to_state

        # Detail entry only lives on the detail screen
        if to_state is not Screen.POKEDEX_DETAIL:
            self._context.entry_id = None
        for key, value in context_updates.items():
            if hasattr(self._context, key):
                setattr(self._context, key, value)

        logger.info(f"Screen transition: {old_state.name} -> {to_state.name}")

        # Notify listeners
        for listener in self._listeners:
            try:
                listener(old_state, to_state, self._context)
            except Exception as e:
                logger.error(f"Error in state listener: {e}")

        return True

    def add_listener(self, callback: Listener) -> None:
        """Add a state change listener."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Listener) -> None:
        """Remove a state change listener."""
        if callback in self._listeners:
            self._listeners.remove(callback)
