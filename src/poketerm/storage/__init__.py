"""Persistent trainer records."""

from poketerm.storage.trainers import TrainerStore

__all__ = ["TrainerStore"]
