"""Bot configuration loaded from environment variables and .env."""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent  # project root


class Settings(BaseSettings):
    """Bot settings with validation.

    Secrets are required and raise validation errors if missing.
    They must be provided via environment variables or the .env file.
    """

    # Discord
    discord_bot_token: str = Field(min_length=1, description="Discord bot token")
    sync_commands: bool = Field(default=True, description="Sync slash commands on startup")

    # Spotify OAuth
    spotify_client_id: str = Field(min_length=1, description="Spotify OAuth client ID")
    spotify_client_secret: str = Field(min_length=1, description="Spotify OAuth client secret")
    spotify_redirect_uri: str = Field(
        default="http://127.0.0.1:8888/callback",
        pattern=r"^https?://",
        description="Spotify OAuth redirect URI",
    )

    # OAuth callback listener
    callback_host: str = Field(default="127.0.0.1", min_length=1, description="Callback listener bind host")
    callback_port: int = Field(default=8888, ge=1, le=65535, description="Callback listener port")

    # Genius lyrics (empty disables /fetchlyrics)
    genius_api_token: str = Field(default="", description="Genius API access token")

    # Polling
    poll_interval_seconds: float = Field(default=5.0, gt=0, description="Seconds between Spotify polls")
    message_lookback: int = Field(default=20, ge=1, le=100, description="Recent messages scanned for cleanup")

    # Local files
    config_file: Path = Field(default=BASE_DIR / "config.json", description="Persisted bot config")
    lock_file: Path = Field(default=BASE_DIR / ".kozytrack.lock", description="Single-instance lock file")

    log_level: str = Field(default="INFO", description="Logging level")

    model_config = SettingsConfigDict(
        env_file=Path(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    @field_validator("discord_bot_token", "spotify_client_id", "spotify_client_secret", mode="after")
    @classmethod
    def validate_secret(cls, v: str) -> str:
        """Ensure secrets are not whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("value cannot be empty")
        return v

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log_level names a stdlib logging level."""
        v = v.strip().upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"log_level must be a logging level name, got {v!r}")
        return v

    @property
    def lyrics_enabled(self) -> bool:
        return bool(self.genius_api_token.strip())


# Singleton settings instance
_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get singleton Settings instance.

    Creates the instance on first use so the .env file is read only once.

    Returns:
        Cached Settings instance
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
