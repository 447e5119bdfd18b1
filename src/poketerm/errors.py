"""Exceptions raised at collaborator boundaries."""


class PoketermError(Exception):
    """Base class for POKETERM errors."""


class AssetError(PoketermError):
    """An image asset could not be read or decoded."""


class StorageError(PoketermError):
    """The trainer database could not be read or written."""
