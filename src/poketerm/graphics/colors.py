"""Color values and terminal color profiles.

A cell color is stored as RGB. On output it is degraded to whatever the
client terminal understands: truecolor keeps RGB, ansi256 maps to the
nearest xterm-256 palette index, mono drops color entirely. Glyphs are
never touched by the degradation.
"""

from enum import Enum
from typing import Mapping, Optional, Tuple, Union
import os

import numpy as np
from numpy.typing import NDArray

# Type aliases
Color = Tuple[int, int, int]
ColorValue = Union[Color, int, None]

# xterm-256 6x6x6 cube channel levels
_CUBE_LEVELS = np.array([0, 95, 135, 175, 215, 255], dtype=np.int32)
# xterm-256 grayscale ramp (indices 232-255)
_GRAY_LEVELS = np.arange(24, dtype=np.int32) * 10 + 8

# Palette colors used across the renderer
RED = (220, 40, 40)
WHITE = (235, 235, 235)
BAND = (70, 70, 70)
BUTTON = (250, 250, 250)
BUTTON_RIM = (40, 40, 40)
TEXT = (200, 200, 200)
HIGHLIGHT = (255, 210, 60)
DIM = (110, 110, 110)
STAR = (255, 230, 90)
PARTICLE = (255, 120, 120)


class ColorProfile(Enum):
    """Terminal color capability."""

    TRUECOLOR = "truecolor"
    ANSI256 = "ansi256"
    MONO = "mono"

    @classmethod
    def from_name(
        cls,
        name: str,
        env: Optional[Mapping[str, str]] = None,
    ) -> "ColorProfile":
        """Resolve a configured profile name; "auto" inspects the environment."""
        if name == "auto":
            return detect_color_profile(env)
        return cls(name)


def detect_color_profile(env: Optional[Mapping[str, str]] = None) -> ColorProfile:
    """Pick a color profile from environment variables.

    NO_COLOR or a dumb terminal gives mono, COLORTERM=truecolor/24bit gives
    truecolor, a TERM mentioning 256 gives ansi256. Anything else falls back
    to ansi256, which every modern terminal supports.
    """
    env = os.environ if env is None else env

    if "NO_COLOR" in env:
        return ColorProfile.MONO

    term = env.get("TERM", "").lower()
    if term == "dumb":
        return ColorProfile.MONO

    colorterm = env.get("COLORTERM", "").lower()
    if colorterm in ("truecolor", "24bit"):
        return ColorProfile.TRUECOLOR

    return ColorProfile.ANSI256


def rgb_to_ansi256_array(colors: NDArray[np.uint8]) -> NDArray[np.int32]:
    """Map an (..., 3) RGB array to the nearest xterm-256 palette indices."""
    rgb = colors.astype(np.int32)

    # Nearest cube level for each channel
    cube_idx = np.abs(rgb[..., None] - _CUBE_LEVELS).argmin(axis=-1)
    cube_rgb = _CUBE_LEVELS[cube_idx]
    cube_dist = ((cube_rgb - rgb) ** 2).sum(axis=-1)
    cube_code = 16 + 36 * cube_idx[..., 0] + 6 * cube_idx[..., 1] + cube_idx[..., 2]

    # Nearest gray step for the channel mean
    mean = rgb.mean(axis=-1)
    gray_idx = np.asarray(np.clip(np.rint((mean - 8) / 10), 0, 23)).astype(np.int32)
    gray_level = np.asarray(_GRAY_LEVELS[gray_idx])
    gray_dist = ((rgb - gray_level[..., None]) ** 2).sum(axis=-1)
    gray_code = 232 + gray_idx

    return np.where(gray_dist < cube_dist, gray_code, cube_code).astype(np.int32)


def rgb_to_ansi256(color: Color) -> int:
    """Nearest xterm-256 index for a single RGB color."""
    return int(rgb_to_ansi256_array(np.array(color, dtype=np.uint8)))


def degrade(color: Optional[Color], profile: ColorProfile) -> ColorValue:
    """Convert an RGB color to the value a terminal profile can show."""
    if color is None or profile is ColorProfile.MONO:
        return None
    if profile is ColorProfile.ANSI256:
        return rgb_to_ansi256(color)
    return (int(color[0]), int(color[1]), int(color[2]))


def scale_color(color: Color, factor: float) -> Color:
    """Scale an RGB color by a brightness factor, clamped to 0-255."""
    return (
        int(max(0, min(255, color[0] * factor))),
        int(max(0, min(255, color[1] * factor))),
        int(max(0, min(255, color[2] * factor))),
    )
