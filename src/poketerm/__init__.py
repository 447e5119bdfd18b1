"""POKETERM - a Poke Ball capture game rendered as colored text."""

__version__ = "0.1.0"
