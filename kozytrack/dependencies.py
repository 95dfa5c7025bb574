"""Accessors for the services stored on the bot state."""

from typing import Any

from kozytrack.services.lyrics_service import LyricsService
from kozytrack.services.poll_loop import PollLoop
from kozytrack.services.spotify_service import SpotifySession
from kozytrack.state_managers import TargetChannelState
from kozytrack.utils.config_store import ConfigStore


def _get_state_attr(client: Any, name: str) -> Any:
    state = getattr(client, "state", None)
    value = getattr(state, name, None)
    if value is None:
        raise RuntimeError(f"{name} not initialized. This should never happen.")
    return value


def get_spotify_session(client: Any) -> SpotifySession:
    """Get the shared SpotifySession from bot state.

    Raises:
        RuntimeError: If the bot lifespan has not run
    """
    return _get_state_attr(client, "spotify_session")


def get_poll_loop(client: Any) -> PollLoop:
    return _get_state_attr(client, "poll_loop")


def get_config_store(client: Any) -> ConfigStore:
    return _get_state_attr(client, "config_store")


def get_target_channel_state(client: Any) -> TargetChannelState:
    return _get_state_attr(client, "target_channel_state")


def get_lyrics_service(client: Any) -> LyricsService | None:
    """Get the lyrics service, or None when no Genius token is configured."""
    state = getattr(client, "state", None)
    return getattr(state, "lyrics_service", None)
