"""Trainer name entry screen."""

from typing import Optional
import logging
import re

from poketerm.core.state import Screen
from poketerm.graphics.buffers import FrameBuffers
from poketerm.graphics.colors import DIM, HIGHLIGHT, RED
from poketerm.graphics.text import draw_box, draw_centered_text
from poketerm.screens.base import BaseScreen

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,16}$")

TITLE = "POKETERM"


class NameEntryScreen(BaseScreen):
    """Asks for a trainer name.

    A name is 1-16 letters, digits, '_' or '-', compared case-insensitively
    and stored lower-case. It must not be in use by another connected
    session.
    """

    screen = Screen.NAME_ENTRY
    name = "name_entry"

    def __init__(self, context):
        super().__init__(context)
        self.error: Optional[str] = None
        # Name reserved for this session, released when it closes
        self.claimed: Optional[str] = None

    def on_enter(self) -> None:
        self.error = None

    def on_exit(self) -> None:
        self.error = None

    def validate(self, line: str) -> Optional[str]:
        """Check and claim a name.

        Returns:
            The normalized name, or None (with error set) if rejected
        """
        candidate = line.strip()
        if not NAME_PATTERN.match(candidate):
            self.error = "Use 1-16 letters, digits, '_' or '-'"
            return None

        normalized = candidate.lower()
        if not self.context.claim_name(normalized):
            self.error = f"{normalized} is already playing"
            logger.info(f"Rejected duplicate trainer name: {normalized}")
            return None

        self.error = None
        self.claimed = normalized
        return normalized

    def accept(self, name: str) -> bool:
        """Enter the game as a validated trainer."""
        return self.transition_to(Screen.GAME, trainer=name)

    def on_input(self, line: str) -> bool:
        name = self.validate(line)
        if name is None:
            return False
        return self.accept(name)

    def render(self, buffers: FrameBuffers) -> None:
        mid = buffers.height // 2
        box_width = min(buffers.width, 44)
        draw_box(buffers, mid - 4, (buffers.width - box_width) // 2, 8, box_width, DIM)

        draw_centered_text(buffers, mid - 2, TITLE, HIGHLIGHT)
        draw_centered_text(buffers, mid, "Enter your trainer name:")
        if self.error:
            draw_centered_text(buffers, mid + 2, self.error, RED)
