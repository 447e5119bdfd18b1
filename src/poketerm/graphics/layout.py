"""Scene layout shared by the sphere and the sprites.

Both the 2D sprite and the 3D ball stand on the same virtual floor row so
they look like they share a ground plane at any terminal size.
"""

from dataclasses import dataclass
import math

# Rows kept free under the floor for the input prompt
FLOOR_MARGIN = 3

# Horizontal placement as a fraction of the grid width
BALL_REST_FRACTION = 0.15
SPRITE_FRACTION = 0.68


@dataclass(frozen=True)
class SceneLayout:
    """Where things stand in a width x height grid."""

    width: int
    height: int
    floor_row: int
    ball_rest_x: float
    sprite_x: float

    @classmethod
    def for_size(cls, width: int, height: int) -> "SceneLayout":
        return cls(
            width=width,
            height=height,
            floor_row=height - 1 - FLOOR_MARGIN,
            ball_rest_x=float(round(width * BALL_REST_FRACTION)),
            sprite_x=float(round(width * SPRITE_FRACTION)),
        )

    def ball_center_y(self, radius: float, aspect_ratio: float) -> float:
        """Center row that puts the bottom of the ball on the floor."""
        return float(self.floor_row - math.ceil(radius / aspect_ratio))
