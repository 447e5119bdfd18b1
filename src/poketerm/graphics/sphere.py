"""Poke Ball sphere renderer.

Draws a textured, shaded unit sphere into FrameBuffers as glyphs. Two
sampling methods are available:

- raycast: every cell inside the projected bounding box shoots one ray;
  the sphere equation is solved for the front surface. Gap-free by
  construction.
- scan: the sphere surface is walked parametrically (theta, phi) with a
  fine step and every sample is projected into the grid.

Both use weak perspective: the whole sphere is scaled by a single factor
derived from its depth instead of dividing per sample.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
import logging
import math

import numpy as np
from numpy.typing import NDArray

from poketerm.graphics.buffers import FrameBuffers
from poketerm.graphics.colors import BAND, BUTTON, BUTTON_RIM, RED, WHITE

logger = logging.getLogger(__name__)

Vector = Tuple[float, float, float]

DEFAULT_RAMP = ".,-~:;=!*#$@"

# Shading used where the surface normal cannot be computed
DEFAULT_SHADE = 0.5
_NORMAL_EPS = 1e-6

# Texture regions in sphere-local coordinates
BAND_HALF_WIDTH = 0.08
BUTTON_RADIUS = 0.2
BUTTON_RIM_RADIUS = 0.3

# Farthest depth any sphere cell may take; particles and sprites sit beyond it
MAX_SPHERE_DEPTH = 100.0

TOP = "top"
BOTTOM = "bottom"


@dataclass
class SphereParams:
    """Where and how the Poke Ball is drawn this tick.

    Attributes:
        radius: Projected radius in columns at z = 0
        center_x: Center column (buffer space)
        center_y: Center row (buffer space)
        rotation: Spin about the vertical axis (radians)
        tilt: Tilt about the horizontal axis (radians)
        camera_distance: Distance from camera to the z = 0 plane
        light_direction: Direction towards the light (view space)
        z: Depth offset of the sphere center
        split: Rows each half is pushed apart (open ball)
    """

    radius: float = 6.0
    center_x: float = 0.0
    center_y: float = 0.0
    rotation: float = 0.0
    tilt: float = 0.0
    camera_distance: float = 4.0
    light_direction: Vector = (-0.45, 0.6, 0.65)
    z: float = 0.0
    split: float = 0.0

    def __post_init__(self):
        self.check_depth()

    def check_depth(self) -> None:
        """Reject placements whose back surface would pass MAX_SPHERE_DEPTH."""
        if not self.center_depth + 1.0 <= MAX_SPHERE_DEPTH:
            raise ValueError(
                f"Sphere depth {self.center_depth} exceeds limit {MAX_SPHERE_DEPTH - 1.0}"
            )

    @property
    def perspective_scale(self) -> float:
        """Weak perspective factor for the whole sphere."""
        return self.camera_distance / (self.camera_distance + self.z)

    @property
    def center_depth(self) -> float:
        return self.camera_distance + self.z


def rotation_matrix(rotation: float, tilt: float) -> NDArray[np.float64]:
    """Sphere-local to view rotation: spin about Y, then tilt about X."""
    ca, sa = math.cos(rotation), math.sin(rotation)
    cb, sb = math.cos(tilt), math.sin(tilt)
    spin = np.array([
        [ca, 0.0, sa],
        [0.0, 1.0, 0.0],
        [-sa, 0.0, ca],
    ])
    tilt_m = np.array([
        [1.0, 0.0, 0.0],
        [0.0, cb, -sb],
        [0.0, sb, cb],
    ])
    return tilt_m @ spin


def texture(local: NDArray[np.float64]) -> NDArray[np.uint8]:
    """Poke Ball colors for (N, 3) sphere-local surface points.

    Red top, white bottom, dark band around the equator and a white button
    on the +Z side of the band.
    """
    ox, oy, oz = local[:, 0], local[:, 1], local[:, 2]

    colors = np.where(oy[:, None] > 0, np.array(RED), np.array(WHITE)).astype(np.uint8)
    colors[np.abs(oy) < BAND_HALF_WIDTH] = BAND

    front = oz > 0
    dist = np.sqrt(ox * ox + oy * oy)
    colors[front & (dist < BUTTON_RIM_RADIUS)] = BUTTON_RIM
    colors[front & (dist < BUTTON_RADIUS)] = BUTTON
    return colors


def shade(normals: NDArray[np.float64], light: Vector) -> NDArray[np.float64]:
    """Lambert term clamped to [0, 1].

    Normals whose length is degenerate (or not finite) get DEFAULT_SHADE
    instead of propagating NaN.
    """
    light_v = np.asarray(light, dtype=np.float64)
    light_len = float(np.linalg.norm(light_v))
    if light_len < _NORMAL_EPS:
        return np.full(len(normals), DEFAULT_SHADE)
    light_v = light_v / light_len

    with np.errstate(invalid="ignore", divide="ignore"):
        length = np.linalg.norm(normals, axis=1)
        bad = ~np.isfinite(length) | (length < _NORMAL_EPS)
        safe = np.where(bad, 1.0, length)
        unit = normals / safe[:, None]
        intensity = np.clip(unit @ light_v, 0.0, 1.0)

    intensity[bad | ~np.isfinite(intensity)] = DEFAULT_SHADE
    return intensity


class SphereRenderer:
    """Renders SphereParams into FrameBuffers.

    Args:
        glyph_ramp: Characters from lightest to most dense coverage
        aspect_ratio: Glyph height / width correction
        sampling_step: Angular step for the scan method (radians)
        method: "raycast" or "scan"
    """

    def __init__(
        self,
        glyph_ramp: str = DEFAULT_RAMP,
        aspect_ratio: float = 1.5,
        sampling_step: float = 0.02,
        method: str = "raycast",
    ):
        if len(glyph_ramp) < 2:
            raise ValueError("glyph_ramp needs at least two characters")
        if method not in ("raycast", "scan"):
            raise ValueError(f"Unknown sphere method: {method}")

        self.ramp = np.array(list(glyph_ramp), dtype="<U1")
        self.aspect_ratio = aspect_ratio
        self.sampling_step = sampling_step
        self.method = method
        self._surface: Optional[NDArray[np.float64]] = None

    def glyphs_for(self, intensity: NDArray[np.float64]) -> NDArray[np.str_]:
        """Map shading intensity in [0, 1] onto the ramp."""
        idx = np.rint(intensity * (len(self.ramp) - 1)).astype(np.int64)
        return self.ramp[np.clip(idx, 0, len(self.ramp) - 1)]

    def render(self, buffers: FrameBuffers, params: SphereParams) -> int:
        """Draw the sphere; returns the number of cells that won the depth test."""
        params.check_depth()
        if params.split > 0:
            written = self._render_part(buffers, params, params.center_y - params.split, TOP)
            written += self._render_part(buffers, params, params.center_y + params.split, BOTTOM)
            return written
        return self._render_part(buffers, params, params.center_y, None)

    def _render_part(
        self,
        buffers: FrameBuffers,
        params: SphereParams,
        center_y: float,
        half: Optional[str],
    ) -> int:
        if self.method == "scan":
            return self._scan(buffers, params, center_y, half)
        return self._raycast(buffers, params, center_y, half)

    def _raycast(
        self,
        buffers: FrameBuffers,
        params: SphereParams,
        center_y: float,
        half: Optional[str],
    ) -> int:
        radius_cols = params.radius * params.perspective_scale
        if radius_cols <= 0:
            return 0
        radius_rows = radius_cols / self.aspect_ratio
        cx = params.center_x

        # Bounding box, clipped to the grid
        c0 = max(0, math.floor(cx - radius_cols))
        c1 = min(buffers.width - 1, math.ceil(cx + radius_cols))
        r0 = max(0, math.floor(center_y - radius_rows))
        r1 = min(buffers.height - 1, math.ceil(center_y + radius_rows))
        if c0 > c1 or r0 > r1:
            return 0

        rows, cols = np.mgrid[r0:r1 + 1, c0:c1 + 1]
        rows = rows.ravel()
        cols = cols.ravel()

        # View plane coordinates, Y up
        u = (cols - cx) / radius_cols
        v = (center_y - rows) * self.aspect_ratio / radius_cols
        d2 = u * u + v * v
        inside = d2 <= 1.0
        if not inside.any():
            return 0

        rows, cols, u, v = rows[inside], cols[inside], u[inside], v[inside]
        z = np.sqrt(np.maximum(0.0, 1.0 - d2[inside]))
        view = np.stack([u, v, z], axis=1)

        return self._shade_and_write(buffers, params, view, rows, cols, half)

    def _surface_samples(self) -> NDArray[np.float64]:
        """Sphere-local sample points for the scan method, cached."""
        if self._surface is None:
            theta = np.arange(0.0, math.pi + self.sampling_step, self.sampling_step)
            phi = np.arange(0.0, 2 * math.pi, self.sampling_step)
            t, p = np.meshgrid(theta, phi, indexing="ij")
            t = t.ravel()
            p = p.ravel()
            self._surface = np.stack([
                np.sin(t) * np.cos(p),
                np.cos(t),
                np.sin(t) * np.sin(p),
            ], axis=1)
            logger.debug(f"Scan surface cached: {len(self._surface)} samples")
        return self._surface

    def _scan(
        self,
        buffers: FrameBuffers,
        params: SphereParams,
        center_y: float,
        half: Optional[str],
    ) -> int:
        radius_cols = params.radius * params.perspective_scale
        if radius_cols <= 0:
            return 0

        local = self._surface_samples()
        view = local @ rotation_matrix(params.rotation, params.tilt).T

        cols = np.rint(params.center_x + view[:, 0] * radius_cols).astype(np.int64)
        rows = np.rint(center_y - view[:, 1] * radius_cols / self.aspect_ratio).astype(np.int64)

        return self._shade_and_write(buffers, params, view, rows, cols, half, local=local)

    def _shade_and_write(
        self,
        buffers: FrameBuffers,
        params: SphereParams,
        view: NDArray[np.float64],
        rows: NDArray,
        cols: NDArray,
        half: Optional[str],
        local: Optional[NDArray[np.float64]] = None,
    ) -> int:
        # Undo spin and tilt so the texture stays fixed to the surface
        if local is None:
            local = view @ rotation_matrix(params.rotation, params.tilt)

        if half is not None:
            keep = local[:, 1] >= 0 if half == TOP else local[:, 1] < 0
            view, local, rows, cols = view[keep], local[keep], rows[keep], cols[keep]
            if len(view) == 0:
                return 0

        intensity = shade(view, params.light_direction)
        glyphs = self.glyphs_for(intensity)

        colors = texture(local).astype(np.float64)
        colors *= (0.55 + 0.45 * intensity)[:, None]
        colors = np.clip(colors, 0, 255).astype(np.uint8)

        depths = params.center_depth - view[:, 2]

        return buffers.write_many(rows, cols, glyphs, colors, depths)
