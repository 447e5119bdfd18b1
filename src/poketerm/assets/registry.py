"""
Sprite registry.

Scans <assets>/pokemon/ once at startup and converts every image whose
file name is one of the 151 Pokemon into a Sprite. Sprites are immutable
and shared by every session.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Optional
import logging

from poketerm.assets.loader import (
    DEFAULT_CHARSET,
    frame_duration_ms,
    load_animation,
    load_sprite,
)
from poketerm.assets.pokedex import id_for
from poketerm.errors import AssetError
from poketerm.graphics.sprite import Sprite

logger = logging.getLogger(__name__)

STILL_SUFFIXES = (".png", ".jpg", ".jpeg")
ANIMATED_SUFFIXES = (".gif",)


class SpriteRegistry:
    """Pokedex number -> Sprite for every entry that has artwork."""

    def __init__(self, sprites: Optional[Dict[int, Sprite]] = None):
        self._sprites: Dict[int, Sprite] = dict(sprites or {})

    @classmethod
    def load(
        cls,
        assets_path: Path,
        height: int = 24,
        charset: str = DEFAULT_CHARSET,
        aspect_ratio: float = 1.5,
    ) -> "SpriteRegistry":
        """Convert every recognised image under assets_path/pokemon.

        Files that fail to decode are logged and skipped. A missing
        directory yields an empty registry.
        """
        directory = Path(assets_path) / "pokemon"
        registry = cls()

        if not directory.is_dir():
            logger.warning(f"No sprite directory at {directory}, using placeholders")
            return registry

        for path in sorted(directory.iterdir()):
            dex_id = id_for(path.stem)
            suffix = path.suffix.lower()
            if dex_id is None or suffix not in STILL_SUFFIXES + ANIMATED_SUFFIXES:
                continue
            if dex_id in registry._sprites:
                logger.debug(f"Skipping duplicate artwork {path.name}")
                continue

            try:
                registry._sprites[dex_id] = _load_file(path, suffix, height, charset, aspect_ratio)
            except AssetError as e:
                logger.warning(f"Skipping sprite: {e}")

        logger.info(f"Loaded {len(registry)} sprites from {directory}")
        return registry

    @classmethod
    def from_settings(cls, settings) -> "SpriteRegistry":
        return cls.load(
            settings.assets.assets_path,
            height=settings.assets.sprite_height,
            charset=settings.assets.sprite_charset,
            aspect_ratio=settings.render.aspect_ratio,
        )

    def get(self, dex_id: int) -> Optional[Sprite]:
        return self._sprites.get(dex_id)

    def add(self, dex_id: int, sprite: Sprite) -> None:
        self._sprites[dex_id] = sprite

    def available_ids(self) -> List[int]:
        return sorted(self._sprites)

    def __contains__(self, dex_id: object) -> bool:
        return dex_id in self._sprites

    def __len__(self) -> int:
        return len(self._sprites)

    def __iter__(self) -> Iterable[int]:
        return iter(self.available_ids())


def _load_file(path: Path, suffix: str, height: int, charset: str, aspect_ratio: float) -> Sprite:
    if suffix in ANIMATED_SUFFIXES:
        frames = load_animation(path, height, charset=charset, aspect_ratio=aspect_ratio)
        return Sprite(frames=tuple(frames), frame_ms=frame_duration_ms(path))
    frame = load_sprite(path, height, charset=charset, aspect_ratio=aspect_ratio)
    return Sprite(frames=(frame,))
