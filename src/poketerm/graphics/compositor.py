"""Depth compositor producing finished character frames."""

from dataclasses import dataclass
from typing import Callable, Iterable, Tuple

from poketerm.graphics.buffers import FrameBuffers
from poketerm.graphics.colors import ColorProfile, ColorValue, rgb_to_ansi256_array

RenderPass = Callable[[FrameBuffers], None]


@dataclass(frozen=True)
class Frame:
    """Snapshot of a composited tick: one string and one color row per line.

    Colors are already degraded to the profile the frame was resolved for
    (RGB tuples, xterm-256 indices, or None).
    """

    width: int
    height: int
    rows: Tuple[str, ...]
    colors: Tuple[Tuple[ColorValue, ...], ...]
    profile: ColorProfile

    def text(self) -> str:
        """Plain text of the frame, one line per row."""
        return "\n".join(self.rows)


class Compositor:
    """Runs render passes into shared buffers and resolves the result.

    Every pass writes through FrameBuffers.write, so the depth grid decides
    per cell which pass is visible; pass order does not matter.
    """

    def __init__(self, profile: ColorProfile = ColorProfile.TRUECOLOR):
        self.profile = profile
        self._frame_count = 0

    def compose(self, buffers: FrameBuffers, passes: Iterable[RenderPass]) -> Frame:
        """Clear the buffers, run each pass and resolve the visible cells."""
        buffers.clear()
        for render_pass in passes:
            render_pass(buffers)
        return self.resolve(buffers)

    def resolve(self, buffers: FrameBuffers) -> Frame:
        """Turn buffer contents into a Frame for the current profile."""
        rows = tuple("".join(line) for line in buffers.glyphs.tolist())
        colors = self._resolve_colors(buffers)

        self._frame_count += 1

        return Frame(
            width=buffers.width,
            height=buffers.height,
            rows=rows,
            colors=colors,
            profile=self.profile,
        )

    def _resolve_colors(self, buffers: FrameBuffers) -> Tuple[Tuple[ColorValue, ...], ...]:
        if self.profile is ColorProfile.MONO:
            blank = (None,) * buffers.width
            return tuple(blank for _ in range(buffers.height))

        if self.profile is ColorProfile.ANSI256:
            values = rgb_to_ansi256_array(buffers.colors).tolist()
        else:
            values = [[tuple(px) for px in line] for line in buffers.colors.tolist()]

        colored = buffers.colored.tolist()
        return tuple(
            tuple(v if c else None for v, c in zip(value_row, colored_row))
            for value_row, colored_row in zip(values, colored)
        )

    @property
    def frame_count(self) -> int:
        return self._frame_count
