"""Character, color and depth buffers for one session."""

from typing import Optional, Tuple
import numpy as np
from numpy.typing import NDArray

from poketerm.graphics.colors import Color

EMPTY_GLYPH = " "
UNSET_DEPTH = np.inf


class FrameBuffers:
    """Three parallel grids sized to the terminal: glyph, color and depth.

    Every write goes through a depth test: a cell accepts a write only when
    it is unset or the new depth is strictly nearer (smaller) than the one
    already stored. Farther writes are silently ignored, and so are
    coordinates outside the grid.
    """

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.glyphs: NDArray[np.str_] = np.full((height, width), EMPTY_GLYPH, dtype="<U1")
        self.colors: NDArray[np.uint8] = np.zeros((height, width, 3), dtype=np.uint8)
        self.colored: NDArray[np.bool_] = np.zeros((height, width), dtype=bool)
        self.depth: NDArray[np.float64] = np.full((height, width), UNSET_DEPTH, dtype=np.float64)

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.height, self.width)

    def clear(self) -> None:
        """Reset every cell to empty and unset."""
        self.glyphs.fill(EMPTY_GLYPH)
        self.colors.fill(0)
        self.colored.fill(False)
        self.depth.fill(UNSET_DEPTH)

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.height and 0 <= col < self.width

    def is_set(self, row: int, col: int) -> bool:
        """Check whether any writer has claimed a cell since the last clear."""
        return self.in_bounds(row, col) and bool(np.isfinite(self.depth[row, col]))

    def write(
        self,
        row: int,
        col: int,
        glyph: str,
        color: Optional[Color],
        depth: float,
    ) -> bool:
        """Write one cell through the depth test.

        Args:
            row: Cell row
            col: Cell column
            glyph: Single character to store
            color: RGB color, or None for the terminal default
            depth: Distance from the viewer (smaller is nearer)

        Returns:
            True if the write won the depth test
        """
        if not self.in_bounds(row, col):
            return False
        if not np.isfinite(depth) or depth >= self.depth[row, col]:
            return False

        self.glyphs[row, col] = glyph
        self.depth[row, col] = depth
        if color is None:
            self.colored[row, col] = False
        else:
            self.colors[row, col] = color
            self.colored[row, col] = True
        return True

    def write_many(
        self,
        rows: NDArray,
        cols: NDArray,
        glyphs: NDArray,
        colors: NDArray,
        depths: NDArray,
    ) -> int:
        """Vectorized write of many cells through the depth test.

        Several entries may target the same cell; the nearest one wins
        regardless of its position in the arrays.

        Args:
            rows: Integer row per entry
            cols: Integer column per entry
            glyphs: Glyph per entry
            colors: (N, 3) RGB per entry
            depths: Depth per entry

        Returns:
            Number of cells updated
        """
        rows = np.asarray(rows, dtype=np.int64)
        cols = np.asarray(cols, dtype=np.int64)
        depths = np.asarray(depths, dtype=np.float64)

        # Clip to the grid and drop non-finite depths
        keep = (
            (rows >= 0) & (rows < self.height)
            & (cols >= 0) & (cols < self.width)
            & np.isfinite(depths)
        )
        if not keep.any():
            return 0

        rows, cols, depths = rows[keep], cols[keep], depths[keep]
        glyphs = np.asarray(glyphs)[keep]
        colors = np.asarray(colors, dtype=np.uint8)[keep]

        # Nearest entry per cell
        flat = rows * self.width + cols
        order = np.lexsort((depths, flat))
        flat_sorted = flat[order]
        _, first = np.unique(flat_sorted, return_index=True)
        winners = order[first]

        rows, cols, depths = rows[winners], cols[winners], depths[winners]

        # Depth test against what is already stored
        nearer = depths < self.depth[rows, cols]
        if not nearer.any():
            return 0

        rows, cols = rows[nearer], cols[nearer]
        self.glyphs[rows, cols] = glyphs[winners][nearer]
        self.colors[rows, cols] = colors[winners][nearer]
        self.colored[rows, cols] = True
        self.depth[rows, cols] = depths[nearer]
        return int(nearer.sum())

    def claimed(self) -> NDArray[np.bool_]:
        """Mask of cells written since the last clear."""
        return np.isfinite(self.depth)
