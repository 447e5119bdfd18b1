"""Graphics module for the POKETERM rendering pipeline."""

from poketerm.graphics.buffers import FrameBuffers
from poketerm.graphics.colors import ColorProfile, degrade, detect_color_profile
from poketerm.graphics.compositor import Compositor, Frame
from poketerm.graphics.sphere import SphereParams, SphereRenderer
from poketerm.graphics.sprite import Sprite, SpriteFrame, SpriteLayer

__all__ = [
    # Buffers
    "FrameBuffers",
    # Colors
    "ColorProfile",
    "degrade",
    "detect_color_profile",
    # Compositing
    "Compositor",
    "Frame",
    # Sphere
    "SphereParams",
    "SphereRenderer",
    # Sprites
    "Sprite",
    "SpriteFrame",
    "SpriteLayer",
]
