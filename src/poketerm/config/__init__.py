"""Configuration for POKETERM."""

from poketerm.config.settings import (
    Settings,
    RenderSettings,
    AnimationSettings,
    ServerSettings,
    StorageSettings,
    AssetSettings,
    get_settings,
)

__all__ = [
    "Settings",
    "RenderSettings",
    "AnimationSettings",
    "ServerSettings",
    "StorageSettings",
    "AssetSettings",
    "get_settings",
]
