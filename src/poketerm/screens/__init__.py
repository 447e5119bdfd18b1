"""Session screens."""

from poketerm.screens.base import BaseScreen, SessionContext
from poketerm.screens.game import GameScreen
from poketerm.screens.manager import ScreenManager
from poketerm.screens.name_entry import NameEntryScreen
from poketerm.screens.pokedex import PokedexDetailScreen, PokedexGridScreen

__all__ = [
    "BaseScreen",
    "SessionContext",
    "GameScreen",
    "ScreenManager",
    "NameEntryScreen",
    "PokedexDetailScreen",
    "PokedexGridScreen",
]
