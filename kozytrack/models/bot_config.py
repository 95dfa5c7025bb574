"""Persisted bot configuration record."""

from pydantic import BaseModel, ConfigDict, Field


class BotConfig(BaseModel):
    """Durable key-value record stored in config.json.

    Field aliases match the on-disk camelCase keys.
    """

    model_config = ConfigDict(populate_by_name=True)

    target_channel_id: str | None = Field(default=None, alias="targetChannelId")
    spotify_refresh_token: str | None = Field(default=None, alias="spotifyRefreshToken")
