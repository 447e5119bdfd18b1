"""Pokedex screens: the 151-entry grid and the detail view of one entry."""

from typing import Optional
import logging
import math

from poketerm.assets.pokedex import POKEDEX_SIZE, display_name, is_valid_id
from poketerm.core.state import Screen
from poketerm.graphics.buffers import FrameBuffers
from poketerm.graphics.colors import DIM, HIGHLIGHT, RED, TEXT
from poketerm.graphics.sprite import SpriteLayer
from poketerm.graphics.text import draw_box, draw_centered_text, draw_text
from poketerm.screens.base import BaseScreen

logger = logging.getLogger(__name__)

BACK_COMMAND = "back"
NEXT_COMMANDS = ("next", "n")
PREV_COMMANDS = ("prev", "p")

CELL_WIDTH = 17
HEADER_ROWS = 3
FOOTER_ROWS = 3


def parse_entry(line: str) -> Optional[int]:
    """Pokedex number typed by the trainer, or None if not a number."""
    text = line.strip().lstrip("#")
    if not text.isdigit():
        return None
    return int(text)


class PokedexGridScreen(BaseScreen):
    """All 151 entries; captured ones show their name.

    Typing the number of a captured entry opens its detail view. Numbers
    outside 1-151 or of entries not caught yet are rejected and the grid
    stays as it is.
    """

    screen = Screen.POKEDEX_GRID
    name = "pokedex_grid"

    def __init__(self, context):
        super().__init__(context)
        self.page = 0
        self.message: Optional[str] = None

    def on_enter(self) -> None:
        self.page = 0
        self.message = None

    def on_exit(self) -> None:
        self.page = 0
        self.message = None

    # Layout
    @property
    def columns(self) -> int:
        return max(1, (self.context.width - 2) // CELL_WIDTH)

    @property
    def rows_per_page(self) -> int:
        return max(1, self.context.height - HEADER_ROWS - FOOTER_ROWS)

    @property
    def per_page(self) -> int:
        return self.columns * self.rows_per_page

    @property
    def page_count(self) -> int:
        return math.ceil(POKEDEX_SIZE / self.per_page)

    def select(self, dex_id: int) -> bool:
        """Open an entry if it exists and has been caught."""
        if not is_valid_id(dex_id):
            self.message = f"There is no #{dex_id:03d} in this Pokedex"
            return False
        if dex_id not in self.context.captured:
            self.message = f"You have not caught #{dex_id:03d} yet"
            return False

        logger.debug(f"Opening Pokedex entry #{dex_id}")
        return self.transition_to(Screen.POKEDEX_DETAIL, entry_id=dex_id)

    def on_input(self, line: str) -> bool:
        command = line.strip().lower()

        if command == BACK_COMMAND:
            return self.transition_to(Screen.GAME)
        if command in NEXT_COMMANDS:
            self.page = (self.page + 1) % self.page_count
            return True
        if command in PREV_COMMANDS:
            self.page = (self.page - 1) % self.page_count
            return True

        dex_id = parse_entry(command)
        if dex_id is None:
            return False
        return self.select(dex_id)

    def render(self, buffers: FrameBuffers) -> None:
        captured = self.context.captured
        title = f"POKEDEX  {len(captured)}/{POKEDEX_SIZE} caught"
        draw_centered_text(buffers, 0, title, HIGHLIGHT)

        first = self.page * self.per_page + 1
        last = min(POKEDEX_SIZE, first + self.per_page - 1)
        for dex_id in range(first, last + 1):
            index = dex_id - first
            row = HEADER_ROWS + index % self.rows_per_page
            col = 1 + (index // self.rows_per_page) * CELL_WIDTH

            if dex_id in captured:
                label = f"#{dex_id:03d} {display_name(dex_id)}"
                color = TEXT
            else:
                label = f"#{dex_id:03d} ---"
                color = DIM
            draw_text(buffers, row, col, label[:CELL_WIDTH - 1], color)

        footer = "Number: view entry   back: return to game"
        if self.page_count > 1:
            footer += f"   next/prev: page {self.page + 1}/{self.page_count}"
        draw_text(buffers, buffers.height - 3, 1, footer, DIM)
        if self.message:
            draw_text(buffers, buffers.height - 2, 1, self.message, RED)
        draw_text(buffers, buffers.height - 1, 0, "> ", DIM)


class PokedexDetailScreen(BaseScreen):
    """One captured entry with its artwork."""

    screen = Screen.POKEDEX_DETAIL
    name = "pokedex_detail"

    def __init__(self, context):
        super().__init__(context)
        self.sprite_layer = SpriteLayer()

    @property
    def entry_id(self) -> Optional[int]:
        return self.context.state_machine.context.entry_id

    def on_input(self, line: str) -> bool:
        if line.strip().lower() == BACK_COMMAND:
            return self.transition_to(Screen.POKEDEX_GRID)
        return False

    def render(self, buffers: FrameBuffers) -> None:
        dex_id = self.entry_id
        if dex_id is None:
            return

        draw_centered_text(buffers, 0, f"#{dex_id:03d} {display_name(dex_id)}", HIGHLIGHT)

        sprite = self.context.sprites.get(dex_id)
        if sprite is None:
            mid = buffers.height // 2
            draw_box(buffers, mid - 2, (buffers.width - 40) // 2, 5, 40, DIM)
            draw_centered_text(buffers, mid, "No artwork available", DIM)
        else:
            frame = sprite.frame_at(self.time_in_screen)
            row = max(HEADER_ROWS, (buffers.height - frame.height) // 2)
            col = (buffers.width - frame.width) // 2
            self.sprite_layer.blit(buffers, frame, row, col)

        draw_text(buffers, buffers.height - 2, 1, "back: return to the Pokedex", DIM)
        draw_text(buffers, buffers.height - 1, 0, "> ", DIM)
