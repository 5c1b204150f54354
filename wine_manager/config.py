"""Configuration settings for wine_manager.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_tools_dir() -> Path:
    """Return the default tools directory."""
    return Path.home() / ".config" / "heroic" / "tools"


def _default_db_url() -> str:
    """Return the default database URL (SQLite)."""
    db_path = Path.home() / ".local" / "share" / "wine-manager" / "store.sqlite"
    return f"sqlite:///{db_path}"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the WINE_MGR_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="WINE_MGR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    tools_dir: Path = Field(
        default_factory=_default_tools_dir,
        description="Root directory for installed Wine/Proton versions",
    )
    db_url: str = Field(
        default_factory=_default_db_url,
        description="Database connection URL for the release store",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Upstream
    release_count: int = Field(
        default=50,
        ge=1,
        le=100,
        description="Number of releases requested per upstream repository",
    )
    github_api_base: str = Field(
        default="https://api.github.com",
        description="Base URL of the GitHub REST API",
    )
    github_token: str | None = Field(
        default=None,
        description="Optional GitHub token to raise API rate limits",
    )

    # Timeouts (in seconds)
    request_timeout: int = Field(
        default=30,
        ge=1,
        description="Timeout for release metadata requests",
    )
    download_timeout: int = Field(
        default=3600,
        ge=60,
        description="Timeout for archive downloads",
    )

    @property
    def wine_dir(self) -> Path:
        """Install root for Wine-family versions."""
        return self.tools_dir / "wine"

    @property
    def proton_dir(self) -> Path:
        """Install root for every other version type."""
        return self.tools_dir / "proton"


def get_settings() -> Settings:
    """Get the application settings singleton.

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
    return settings.model_dump_json(indent=2, exclude={"github_token"})


__all__ = ["Settings", "get_settings", "print_settings_json"]
