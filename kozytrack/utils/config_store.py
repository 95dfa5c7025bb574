"""Durable storage for the target channel id and Spotify refresh token."""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from kozytrack.exceptions import ConfigurationException
from kozytrack.logging_config import get_logger, log_with_context
from kozytrack.models.bot_config import BotConfig

logger = get_logger(__name__)

_FIELDS = set(BotConfig.model_fields)


class ConfigStore:
    """JSON-file backed BotConfig.

    A missing file is a first run, and an unreadable or corrupt file is
    treated the same way: defaults are written back and returned.
    """

    def __init__(self, path: Path):
        self.path = path
        self._config = BotConfig()

    @property
    def config(self) -> BotConfig:
        return self._config

    def load(self) -> BotConfig:
        """Load the record from disk, creating defaults when needed.

        Returns:
            Loaded (or default) BotConfig
        """
        if not self.path.exists():
            log_with_context(
                logger,
                "warning",
                "Config file not found, creating with defaults",
                file_path=str(self.path),
                event_type="config_created",
            )
            self._config = BotConfig()
            self._write()
            return self._config

        try:
            content = self.path.read_text(encoding="utf-8")
            self._config = BotConfig.model_validate_json(content)
        except (OSError, ValueError, ValidationError) as e:
            log_with_context(
                logger,
                "error",
                "Config file unreadable, recreating with defaults",
                file_path=str(self.path),
                error=str(e),
                event_type="config_invalid",
            )
            self._config = BotConfig()
            self._write()
            return self._config

        log_with_context(
            logger,
            "info",
            "Loaded config file",
            target_channel_id=self._config.target_channel_id or "not set",
            refresh_token_set=bool(self._config.spotify_refresh_token),
            event_type="config_loaded",
        )
        return self._config

    def save(self, **fields: Any) -> BotConfig:
        """Merge the given fields into the record and write it synchronously.

        Fields not mentioned keep their value. Passing None clears a field.

        Args:
            **fields: target_channel_id and/or spotify_refresh_token

        Raises:
            ConfigurationException: If an unknown field name is given
        """
        unknown = set(fields) - _FIELDS
        if unknown:
            raise ConfigurationException(
                f"Unknown config fields: {', '.join(sorted(unknown))}",
                details={"fields": sorted(unknown)},
            )

        self._config = self._config.model_copy(update=fields)
        self._write()
        return self._config

    def _write(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            payload = self._config.model_dump(by_alias=True)
            self.path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
            self.path.chmod(0o600)
        except OSError as e:
            log_with_context(
                logger,
                "error",
                "Failed to save config file",
                file_path=str(self.path),
                error=str(e),
                event_type="config_save_failed",
            )
            return
        logger.debug("Config saved")
