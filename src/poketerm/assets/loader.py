"""Convert images into colored character sprites.

Pipeline per image:
    1. Resize (nearest neighbour) to the target cell grid.
    2. Estimate the background from the four corners and flood-fill it
       from the border; those cells become transparent.
    3. Shade each remaining cell from its luminance, a soft diagonal light
       and an edge term, then boost saturation for the terminal.
    4. Pick a glyph from the charset by shaded luminance.
"""

from pathlib import Path
from typing import List, Optional
import logging

import numpy as np
from numpy.typing import NDArray
from PIL import Image, ImageSequence, UnidentifiedImageError

from poketerm.errors import AssetError
from poketerm.graphics.sprite import SpriteFrame

logger = logging.getLogger(__name__)

DEFAULT_CHARSET = "@%#*+=-:."

# Per-channel tolerance when matching the background color
BACKGROUND_THRESHOLD = 18
SATURATION_BOOST = 1.15

# Rec. 709 luma weights
_LUMA = np.array([0.2126, 0.7152, 0.0722])


def sprite_width_for(image: Image.Image, height: int, aspect_ratio: float = 1.5) -> int:
    """Cell width that keeps the image's proportions at a given cell height."""
    w, h = image.size
    return max(1, int(round(w / h * height * aspect_ratio)))


def background_mask(rgb: NDArray[np.uint8], threshold: int = BACKGROUND_THRESHOLD) -> NDArray[np.bool_]:
    """Flood-fill from the border every cell close to the corner color."""
    height, width = rgb.shape[:2]
    corners = np.array([
        rgb[0, 0], rgb[0, width - 1], rgb[height - 1, 0], rgb[height - 1, width - 1]
    ], dtype=np.int32)
    background = corners.sum(axis=0) // 4

    close = np.all(np.abs(rgb.astype(np.int32) - background) <= threshold, axis=2)
    mask = np.zeros((height, width), dtype=bool)

    stack = [(x, 0) for x in range(width)] + [(x, height - 1) for x in range(width)]
    stack += [(0, y) for y in range(height)] + [(width - 1, y) for y in range(height)]

    while stack:
        x, y = stack.pop()
        if mask[y, x] or not close[y, x]:
            continue
        mask[y, x] = True
        if x > 0:
            stack.append((x - 1, y))
        if x + 1 < width:
            stack.append((x + 1, y))
        if y > 0:
            stack.append((x, y - 1))
        if y + 1 < height:
            stack.append((x, y + 1))

    return mask


def _boost_colors(rgb: NDArray[np.uint8], shade: NDArray[np.float64]) -> NDArray[np.uint8]:
    """Push colors away from their luminance and scale by shade."""
    f = rgb.astype(np.float64) / 255.0
    lum = (f @ _LUMA)[..., None]
    boosted = (lum + (f - lum) * SATURATION_BOOST) * shade[..., None]
    return np.clip(boosted * 255.0, 0, 255).astype(np.uint8)


def image_to_sprite(image: Image.Image, charset: str = DEFAULT_CHARSET) -> SpriteFrame:
    """Convert an already-resized image into a SpriteFrame.

    Args:
        image: Source image; its pixel grid becomes the cell grid
        charset: Glyphs from brightest to darkest

    Returns:
        Sprite with background cells transparent
    """
    if len(charset) < 2:
        raise ValueError("charset needs at least two characters")

    rgb = np.asarray(image.convert("RGB"), dtype=np.uint8)
    height, width = rgb.shape[:2]
    if height == 0 or width == 0:
        raise AssetError("Cannot convert an empty image")

    lum = (rgb.astype(np.float64) / 255.0) @ _LUMA
    bg = background_mask(rgb)

    # Neighbour luminance, edges clamp to the cell itself
    padded = np.pad(lum, 1, mode="edge")
    left = padded[1:-1, :-2]
    right = padded[1:-1, 2:]
    up = padded[:-2, 1:-1]
    down = padded[2:, 1:-1]
    edge = (np.abs(right - left) + np.abs(down - up)) * 0.7

    # Soft light from the top-left
    xs = np.arange(width) / max(1, width - 1)
    ys = np.arange(height) / max(1, height - 1)
    light = np.clip(xs[None, :] * -0.6 + ys[:, None] * -0.4 + 1.0, 0.4, 1.2)

    shaded = np.clip(lum * light - edge * 0.45, 0.0, 1.0)
    shade = np.clip(0.55 + shaded * 0.7, 0.35, 1.15)

    ramp = np.array(list(charset), dtype="<U1")
    idx = np.rint((1.0 - shaded) * (len(ramp) - 1)).astype(np.int64)
    glyphs = np.where(bg, " ", ramp[idx]).astype("<U1")

    colors = _boost_colors(rgb, shade)
    colors[bg] = 0

    return SpriteFrame(glyphs=glyphs, colors=colors, opaque=~bg)


def _resize(image: Image.Image, width: Optional[int], height: int, aspect_ratio: float) -> Image.Image:
    if width is None:
        width = sprite_width_for(image, height, aspect_ratio)
    return image.convert("RGBA").resize((width, height), Image.Resampling.NEAREST)


def _flatten(image: Image.Image) -> Image.Image:
    """Composite transparency onto black so transparent pixels read as background."""
    if image.mode != "RGBA":
        return image.convert("RGB")
    background = Image.new("RGB", image.size, (0, 0, 0))
    background.paste(image, mask=image.getchannel("A"))
    return background


def load_sprite(
    path: Path,
    height: int,
    width: Optional[int] = None,
    charset: str = DEFAULT_CHARSET,
    aspect_ratio: float = 1.5,
) -> SpriteFrame:
    """Load a still image as one sprite frame.

    Raises:
        AssetError: If the file cannot be opened or decoded
    """
    try:
        with Image.open(path) as img:
            resized = _resize(img, width, height, aspect_ratio)
    except (OSError, UnidentifiedImageError) as e:
        raise AssetError(f"failed to load image: {path}: {e}") from e

    return image_to_sprite(_flatten(resized), charset)


def load_animation(
    path: Path,
    height: int,
    width: Optional[int] = None,
    charset: str = DEFAULT_CHARSET,
    aspect_ratio: float = 1.5,
) -> List[SpriteFrame]:
    """Load every frame of an animated image (GIF) as sprite frames.

    Raises:
        AssetError: If the file cannot be opened or has no frames
    """
    frames: List[SpriteFrame] = []
    try:
        with Image.open(path) as img:
            for frame in ImageSequence.Iterator(img):
                resized = _resize(frame, width, height, aspect_ratio)
                frames.append(image_to_sprite(_flatten(resized), charset))
    except (OSError, UnidentifiedImageError) as e:
        raise AssetError(f"failed to load animation: {path}: {e}") from e

    if not frames:
        raise AssetError(f"animation has no frames: {path}")
    logger.debug(f"Loaded {len(frames)} frames from {path}")
    return frames


def frame_duration_ms(path: Path, default: float = 100.0) -> float:
    """Per-frame delay stored in an animated image, if any."""
    try:
        with Image.open(path) as img:
            return float(img.info.get("duration", default)) or default
    except (OSError, UnidentifiedImageError):
        return default
