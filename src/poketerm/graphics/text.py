"""Text drawing helpers for the character buffers."""

from typing import Optional

from poketerm.graphics.buffers import FrameBuffers
from poketerm.graphics.colors import Color, TEXT

# Text is drawn in front of everything else
TEXT_DEPTH = 0.0


def draw_text(
    buffers: FrameBuffers,
    row: int,
    col: int,
    text: str,
    color: Optional[Color] = TEXT,
    depth: float = TEXT_DEPTH,
) -> int:
    """Draw a single line of text; cells outside the grid are clipped.

    Spaces are written too, so text blanks out whatever is behind it.

    Returns:
        Column just past the last character
    """
    for i, ch in enumerate(text):
        buffers.write(row, col + i, ch, color, depth)
    return col + len(text)


def draw_centered_text(
    buffers: FrameBuffers,
    row: int,
    text: str,
    color: Optional[Color] = TEXT,
    depth: float = TEXT_DEPTH,
) -> int:
    """Draw text horizontally centered on the grid."""
    col = max(0, (buffers.width - len(text)) // 2)
    return draw_text(buffers, row, col, text, color, depth)


def draw_box(
    buffers: FrameBuffers,
    top: int,
    left: int,
    height: int,
    width: int,
    color: Optional[Color] = TEXT,
    depth: float = TEXT_DEPTH,
) -> None:
    """Draw a single-line box border."""
    if height < 2 or width < 2:
        return

    bottom = top + height - 1
    right = left + width - 1

    for col in range(left + 1, right):
        buffers.write(top, col, "─", color, depth)
        buffers.write(bottom, col, "─", color, depth)
    for row in range(top + 1, bottom):
        buffers.write(row, left, "│", color, depth)
        buffers.write(row, right, "│", color, depth)

    buffers.write(top, left, "┌", color, depth)
    buffers.write(top, right, "┐", color, depth)
    buffers.write(bottom, left, "└", color, depth)
    buffers.write(bottom, right, "┘", color, depth)
