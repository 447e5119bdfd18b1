"""Serialize composited frames into terminal control codes."""

from typing import List

from poketerm.graphics.colors import ColorValue
from poketerm.graphics.compositor import Frame

ESC = "\x1b"
CSI = ESC + "["

CURSOR_HOME = CSI + "H"
CLEAR_SCREEN = CSI + "2J"
RESET = CSI + "0m"
HIDE_CURSOR = CSI + "?25l"
SHOW_CURSOR = CSI + "?25h"
LINE_END = "\r\n"


def sgr(color: ColorValue) -> str:
    """Foreground SGR sequence for a degraded color value."""
    if color is None:
        return RESET
    if isinstance(color, int):
        return f"{CSI}38;5;{color}m"
    r, g, b = color
    return f"{CSI}38;2;{r};{g};{b}m"


def encode_row(glyphs: str, colors) -> str:
    """One row with SGR codes emitted only where the color changes."""
    parts: List[str] = []
    current: ColorValue = None

    for ch, color in zip(glyphs, colors):
        # Foreground color is invisible on blanks
        if ch == " ":
            parts.append(ch)
            continue
        if color != current:
            parts.append(sgr(color))
            current = color
        parts.append(ch)

    if current is not None:
        parts.append(RESET)
    return "".join(parts)


def encode_frame(frame: Frame, home: bool = True) -> str:
    """Full frame as text: cursor home, then every row with CRLF endings."""
    lines = [encode_row(row, colors) for row, colors in zip(frame.rows, frame.colors)]
    body = LINE_END.join(lines)
    return (CURSOR_HOME if home else "") + body


def encode_frame_bytes(frame: Frame) -> bytes:
    return encode_frame(frame).encode("utf-8")
