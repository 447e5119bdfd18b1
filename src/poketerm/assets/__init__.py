"""Pokedex data and sprite assets."""

from poketerm.assets.loader import image_to_sprite, load_animation, load_sprite
from poketerm.assets.pokedex import (
    POKEDEX_SIZE,
    POKEMON_NAMES,
    display_name,
    id_for,
    is_valid_id,
    name_for,
)
from poketerm.assets.registry import SpriteRegistry

__all__ = [
    "image_to_sprite",
    "load_animation",
    "load_sprite",
    "POKEDEX_SIZE",
    "POKEMON_NAMES",
    "display_name",
    "id_for",
    "is_valid_id",
    "name_for",
    "SpriteRegistry",
]
