"""Transient overlay effects drawn on top of the scene."""

import math

from poketerm.graphics.buffers import FrameBuffers
from poketerm.graphics.colors import STAR, scale_color

# In front of the sphere, behind HUD text
OVERLAY_DEPTH = 0.5

STAR_GLYPHS = "*+✦"


def draw_star_burst(
    buffers: FrameBuffers,
    center_row: float,
    center_col: float,
    radius: float,
    time_ms: float,
    aspect_ratio: float = 1.5,
    points: int = 8,
) -> None:
    """Ring of pulsing stars around a point.

    The ring breathes between 1.2x and 1.6x the radius and slowly rotates.
    """
    pulse = 0.5 + 0.5 * math.sin(time_ms / 120.0)
    ring = radius * (1.2 + 0.4 * pulse)
    turn = time_ms / 900.0

    for i in range(points):
        angle = turn + i * 2 * math.pi / points
        col = int(round(center_col + math.cos(angle) * ring))
        row = int(round(center_row - math.sin(angle) * ring / aspect_ratio))
        glyph = STAR_GLYPHS[(i + int(time_ms // 150)) % len(STAR_GLYPHS)]
        buffers.write(row, col, glyph, scale_color(STAR, 0.7 + 0.3 * pulse), OVERLAY_DEPTH)
