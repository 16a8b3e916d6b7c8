"""Configuration settings for whalebuilder.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_build_args() -> list[str]:
    """Return the default dpkg-buildpackage options."""
    return ["-i", "-I", "-us", "-uc"]


def _default_bootstrap_packages() -> list[str]:
    """Return the Debian packages needed to run whalebuilder in a container."""
    return [
        "python3",
        "python3-typer",
        "python3-rich",
        "python3-pydantic-settings",
    ]


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the WHALEBUILDER_
    prefix. CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="WHALEBUILDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Container
    image: str = Field(
        default="debian:sid-slim",
        description="Image used to build when --image is not given",
    )
    engine: Literal["podman", "docker"] = Field(
        default="podman",
        description="Container engine (--docker forces docker)",
    )
    container_prefix: str = Field(
        default="whale",
        description="Prefix of container names, followed by the process id",
    )
    bootstrap_packages: list[str] = Field(
        default_factory=_default_bootstrap_packages,
        description="Packages installed in the image to run the entry point",
    )

    # Build
    build_args: list[str] = Field(
        default_factory=_default_build_args,
        description="dpkg-buildpackage options used when none follow '--'",
    )

    # Paths
    tmp_dir: Path | None = Field(
        default=None,
        description="Parent of session directories (uses system default if not set)",
    )

    # Logging
    follow_grace: float = Field(
        default=0.5,
        ge=0,
        description="Seconds the verbose log follower waits for output to settle",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
