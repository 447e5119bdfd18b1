"""
Application settings using Pydantic.

Settings are loaded from environment variables with .env file support.
Every group has its own prefix, e.g. POKETERM_RENDER_WIDTH=100.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RenderSettings(BaseSettings):
    """Frame buffer and sphere rendering settings."""

    model_config = SettingsConfigDict(env_prefix="POKETERM_RENDER_", extra="ignore")

    # Terminal grid
    width: int = Field(default=120, ge=20)
    height: int = Field(default=40, ge=12)

    # Terminal glyphs are taller than wide
    aspect_ratio: float = Field(default=1.5, gt=0.0)

    # Shading ramp, lightest to most dense
    glyph_ramp: str = Field(default=".,-~:;=!*#$@", min_length=2)

    # Parametric scan step (radians) for the "scan" method
    sampling_step: float = Field(default=0.02, gt=0.0, le=0.5)
    sphere_method: Literal["raycast", "scan"] = "raycast"

    # Sphere and camera
    sphere_radius: float = Field(default=6.0, gt=0.0)
    # Keeps the sphere in front of the particle and sprite layers
    camera_distance: float = Field(default=4.0, ge=2.0, le=50.0)
    tilt: float = 0.35
    light_direction: Tuple[float, float, float] = (-0.45, 0.6, 0.65)


class AnimationSettings(BaseSettings):
    """Tick rate and capture phase timing."""

    model_config = SettingsConfigDict(env_prefix="POKETERM_ANIMATION_", extra="ignore")

    tick_rate: int = Field(default=10, ge=1, le=120)

    # Motion
    spin_speed: float = Field(default=2.4, gt=0.0)  # radians per second
    throw_speed: float = Field(default=45.0, gt=0.0)  # cells per second

    # Phase durations (milliseconds)
    opening_ms: float = Field(default=600.0, gt=0.0)
    absorbing_ms: float = Field(default=1500.0, gt=0.0)
    closing_ms: float = Field(default=500.0, gt=0.0)
    shaking_ms: float = Field(default=2400.0, gt=0.0)
    star_hold_ms: float = Field(default=1500.0, gt=0.0)

    # Effects
    absorb_particles: int = Field(default=24, ge=1)
    shake_amplitude: float = Field(default=3.0, ge=0.0)  # cells
    split_offset: float = Field(default=2.0, ge=0.0)  # rows


class ServerSettings(BaseSettings):
    """Network server settings."""

    model_config = SettingsConfigDict(env_prefix="POKETERM_SERVER_", extra="ignore")

    host: str = "0.0.0.0"
    port: int = Field(default=2323, ge=0, le=65535)
    max_sessions: int = Field(default=64, ge=1)

    # Frames are dropped while a client's pending output exceeds this
    write_buffer_limit: int = Field(default=256 * 1024, ge=1024)


class StorageSettings(BaseSettings):
    """Trainer record storage."""

    model_config = SettingsConfigDict(env_prefix="POKETERM_STORAGE_", extra="ignore")

    database_path: Path = Path("pokedex.db")


class AssetSettings(BaseSettings):
    """Sprite asset pipeline settings."""

    model_config = SettingsConfigDict(env_prefix="POKETERM_ASSETS_", extra="ignore")

    assets_path: Path = Field(default_factory=lambda: Path.cwd() / "assets")
    sprite_height: int = Field(default=24, ge=4)
    sprite_charset: str = Field(default="@%#*+=-:.", min_length=2)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="POKETERM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False
    color_profile: Literal["auto", "truecolor", "ansi256", "mono"] = "auto"

    # Nested settings
    render: RenderSettings = Field(default_factory=RenderSettings)
    animation: AnimationSettings = Field(default_factory=AnimationSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    assets: AssetSettings = Field(default_factory=AssetSettings)

    @property
    def tick_interval(self) -> float:
        """Seconds between animation ticks."""
        return 1.0 / self.animation.tick_rate


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
