"""Pytest configuration and shared fixtures."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from kozytrack.config import Settings
from kozytrack.services.spotify_service import SpotifySession
from kozytrack.state_managers import SpotifySessionState, TargetChannelState
from kozytrack.utils.config_store import ConfigStore


@pytest.fixture
def mock_http_client():
    """Mock httpx.AsyncClient for external API calls."""
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    mock_client.get = AsyncMock()
    mock_client.post = AsyncMock()
    mock_client.aclose = AsyncMock()
    return mock_client


@pytest.fixture
def mock_settings(tmp_path):
    """Settings instance with test values and files under tmp_path."""
    return Settings(
        _env_file=None,
        discord_bot_token="test-discord-token",
        sync_commands=False,
        spotify_client_id="test-spotify-client-id",
        spotify_client_secret="test-spotify-client-secret",
        spotify_redirect_uri="http://127.0.0.1:8888/callback",
        callback_host="127.0.0.1",
        callback_port=8888,
        genius_api_token="",
        poll_interval_seconds=5.0,
        config_file=tmp_path / "config.json",
        lock_file=tmp_path / ".kozytrack.lock",
    )


@pytest.fixture
def config_store(mock_settings):
    """ConfigStore loaded from a fresh file with a stored refresh token."""
    store = ConfigStore(mock_settings.config_file)
    store.load()
    store.save(spotify_refresh_token="stored-refresh-token")
    return store


@pytest.fixture
def session_state():
    return SpotifySessionState()


@pytest.fixture
def channel_state():
    return TargetChannelState()


@pytest.fixture
def mock_callback_server():
    """Mock OAuthCallbackServer."""
    server = MagicMock()
    server.start = AsyncMock(return_value=True)
    server.stop = AsyncMock()
    return server


@pytest.fixture
def spotify_session(mock_http_client, mock_settings, session_state, config_store, mock_callback_server):
    """SpotifySession wired to mocks."""
    return SpotifySession(
        mock_http_client,
        mock_settings,
        session_state,
        config_store,
        callback_server=mock_callback_server,
    )


@pytest.fixture
def make_response():
    """Factory for mock httpx responses."""

    def _make(status_code: int = 200, json_data=None, headers=None):
        response = MagicMock()
        response.status_code = status_code
        response.json = MagicMock(return_value=json_data)
        response.content = json.dumps(json_data).encode() if json_data is not None else b""
        response.headers = headers or {}
        return response

    return _make


@pytest.fixture
def make_playback_response():
    """Factory for Spotify currently-playing payloads."""

    def _make(track_id: str = "track-a", is_playing: bool = True, progress_ms: int = 60000):
        return {
            "is_playing": is_playing,
            "progress_ms": progress_ms,
            "item": {
                "id": track_id,
                "name": "Test Song",
                "artists": [{"name": "Test Artist"}, {"name": "Guest Artist"}],
                "album": {"name": "Test Album", "images": [{"url": "https://example.com/image.jpg"}]},
                "duration_ms": 240000,
                "external_urls": {"spotify": f"https://open.spotify.com/track/{track_id}"},
            },
        }

    return _make


@pytest.fixture
def mock_spotify_token_response():
    """Mock Spotify token endpoint response without a rotated refresh token."""
    return {
        "access_token": "new-access-token",
        "token_type": "Bearer",
        "expires_in": 3600,
        "scope": "user-read-currently-playing user-read-playback-state",
    }
