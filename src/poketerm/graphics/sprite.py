"""2D character sprites and the sprite layer."""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from poketerm.graphics.buffers import FrameBuffers

# Sprites always sit behind anything the sphere draws
SPRITE_DEPTH = 1000.0


@dataclass(frozen=True, eq=False)
class SpriteFrame:
    """Immutable grid of (glyph, color) cells with a transparency mask.

    Attributes:
        glyphs: (height, width) array of single characters
        colors: (height, width, 3) RGB array
        opaque: (height, width) mask; False cells are transparent
    """

    glyphs: NDArray[np.str_]
    colors: NDArray[np.uint8]
    opaque: NDArray[np.bool_]

    def __post_init__(self):
        if self.glyphs.shape != self.opaque.shape or self.colors.shape[:2] != self.glyphs.shape:
            raise ValueError("Sprite grids must share dimensions")
        # Frames are shared between sessions by reference
        for array in (self.glyphs, self.colors, self.opaque):
            array.flags.writeable = False

    @property
    def height(self) -> int:
        return self.glyphs.shape[0]

    @property
    def width(self) -> int:
        return self.glyphs.shape[1]

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[str],
        color: Tuple[int, int, int],
        transparent: str = " ",
    ) -> "SpriteFrame":
        """Build a single-color sprite from text rows."""
        width = max((len(r) for r in rows), default=0)
        padded = [r.ljust(width) for r in rows]
        glyphs = np.array([list(r) for r in padded], dtype="<U1").reshape(len(rows), width)
        opaque = glyphs != transparent
        colors = np.zeros((len(rows), width, 3), dtype=np.uint8)
        colors[opaque] = color
        return cls(glyphs=glyphs.copy(), colors=colors, opaque=opaque.copy())


@dataclass(frozen=True, eq=False)
class Sprite:
    """One or more frames of the same artwork, cycled over time."""

    frames: Tuple[SpriteFrame, ...]
    frame_ms: float = 100.0

    def frame_at(self, time_ms: float) -> SpriteFrame:
        if len(self.frames) == 1:
            return self.frames[0]
        index = int(time_ms // self.frame_ms) % len(self.frames)
        return self.frames[index]

    @property
    def width(self) -> int:
        return max(f.width for f in self.frames)

    @property
    def height(self) -> int:
        return max(f.height for f in self.frames)


def floor_anchor(sprite: SpriteFrame, floor_row: int, center_col: float) -> Tuple[int, int]:
    """Top-left anchor placing a sprite's bottom row on the floor row."""
    return floor_row - sprite.height + 1, int(round(center_col - sprite.width / 2))


class SpriteLayer:
    """Copies sprite frames into FrameBuffers at a fixed depth."""

    def __init__(self, depth: float = SPRITE_DEPTH):
        self.depth = depth

    def blit(
        self,
        buffers: FrameBuffers,
        sprite: SpriteFrame,
        anchor_row: int,
        anchor_col: int,
        depth: Optional[float] = None,
    ) -> int:
        """Write every opaque sprite cell; transparent cells are skipped.

        Args:
            buffers: Target buffers
            sprite: Frame to draw
            anchor_row: Row of the sprite's top edge
            anchor_col: Column of the sprite's left edge
            depth: Override depth (defaults to the layer depth)

        Returns:
            Number of cells that won the depth test
        """
        depth = self.depth if depth is None else depth

        rows, cols = np.nonzero(sprite.opaque)
        if len(rows) == 0:
            return 0

        return buffers.write_many(
            rows + anchor_row,
            cols + anchor_col,
            sprite.glyphs[rows, cols],
            sprite.colors[rows, cols],
            np.full(len(rows), depth),
        )


def placeholder_sprite(
    seed: int,
    width: int = 28,
    height: int = 14,
    aspect_ratio: float = 1.5,
) -> SpriteFrame:
    """Deterministic blob silhouette for entries without artwork."""
    rng = np.random.default_rng(seed)
    base = rng.integers(90, 230, size=3)

    rows, cols = np.mgrid[0:height, 0:width]
    u = (cols - (width - 1) / 2) / (width / 2)
    v = (rows - (height - 1) / 2) * aspect_ratio / (width / 2)

    # Body plus two ears, shapes jittered by the seed
    wobble = 0.08 * np.sin(3 * np.arctan2(v, u) + seed)
    body = u * u + (v * 1.1) ** 2 <= (0.75 + wobble) ** 2
    ear_x = 0.35 + 0.1 * rng.random()
    ears = (np.abs(np.abs(u) - ear_x) < 0.12) & (v < -0.55) & (v > -1.05)
    opaque = body | ears

    light = np.clip(0.6 - 0.4 * u - 0.3 * v, 0.3, 1.0)
    ramp = np.array(list(".:-=+*#%@"), dtype="<U1")
    glyphs = ramp[np.clip((light * (len(ramp) - 1)).astype(np.int64), 0, len(ramp) - 1)]
    glyphs = np.where(opaque, glyphs, " ")

    colors = np.clip(base[None, None, :] * light[:, :, None], 0, 255).astype(np.uint8)
    colors[~opaque] = 0

    return SpriteFrame(glyphs=glyphs.astype("<U1"), colors=colors, opaque=opaque)


def sprite_bounds(sprite: SpriteFrame, anchor_row: int, anchor_col: int) -> Tuple[int, int, int, int]:
    """(top, left, bottom, right) of a sprite placed at an anchor, inclusive."""
    return (
        anchor_row,
        anchor_col,
        anchor_row + sprite.height - 1,
        anchor_col + sprite.width - 1,
    )

