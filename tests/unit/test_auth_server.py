"""Unit tests for the OAuth callback listener."""

import asyncio
import socket
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from kozytrack.models.results import Result
from kozytrack.services.auth_server import (
    EXCHANGE_FAILED_BODY,
    PLACEHOLDER_BODY,
    SUCCESS_BODY,
    OAuthCallbackServer,
    create_callback_app,
)


@pytest.fixture
def mock_server():
    """Mock OAuthCallbackServer as seen by the callback app."""
    server = MagicMock()
    server.callback_path = "/callback"
    server.session.exchange_code = AsyncMock(return_value=Result.ok("new-access-token"))
    return server


@pytest.fixture
def asgi_client(mock_server):
    app = create_callback_app(mock_server)
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://127.0.0.1:8888")


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.mark.asyncio
async def test_callback_with_code_exchanges_and_notifies(asgi_client, mock_server):
    """Test a redirect with a code completes authorization."""
    async with asgi_client as client:
        response = await client.get("/callback", params={"code": "auth-code", "state": "kozytrack-state"})

    assert response.status_code == 200
    assert response.text == SUCCESS_BODY
    mock_server.session.exchange_code.assert_awaited_once_with("auth-code")
    mock_server.request_shutdown.assert_called_once()
    mock_server.notify_authorized.assert_called_once()


@pytest.mark.asyncio
async def test_callback_with_error(asgi_client, mock_server):
    """Test an authorization error from Spotify returns 400 and shuts down."""
    async with asgi_client as client:
        response = await client.get("/callback", params={"error": "access_denied"})

    assert response.status_code == 400
    assert "access_denied" in response.text
    mock_server.session.exchange_code.assert_not_called()
    mock_server.request_shutdown.assert_called_once()
    mock_server.notify_authorized.assert_not_called()


@pytest.mark.asyncio
async def test_callback_exchange_failure(asgi_client, mock_server):
    """Test a failed code exchange returns 500 and does not notify."""
    mock_server.session.exchange_code.return_value = Result.fatal("Spotify rejected the authorization_code grant")

    async with asgi_client as client:
        response = await client.get("/callback", params={"code": "bad-code"})

    assert response.status_code == 500
    assert response.text == EXCHANGE_FAILED_BODY
    mock_server.request_shutdown.assert_called_once()
    mock_server.notify_authorized.assert_not_called()


@pytest.mark.asyncio
async def test_callback_without_code_keeps_listening(asgi_client, mock_server):
    """Test a bare callback request gets the placeholder and does not shut down."""
    async with asgi_client as client:
        response = await client.get("/callback")

    assert response.status_code == 200
    assert response.text == PLACEHOLDER_BODY
    mock_server.request_shutdown.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/", "/favicon.ico", "/some/other/path"])
async def test_other_paths_get_placeholder(asgi_client, mock_server, path):
    """Test requests to other paths are answered with the placeholder."""
    async with asgi_client as client:
        response = await client.get(path)

    assert response.status_code == 200
    assert response.text == PLACEHOLDER_BODY
    mock_server.request_shutdown.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["HEAD", "POST", "PUT", "DELETE", "OPTIONS"])
async def test_other_methods_get_placeholder(asgi_client, mock_server, method):
    """Test non-GET requests, including ones to the callback path, get a 200 placeholder."""
    async with asgi_client as client:
        root = await client.request(method, "/")
        callback = await client.request(method, "/callback")

    assert root.status_code == 200
    assert callback.status_code == 200
    if method != "HEAD":
        assert root.text == PLACEHOLDER_BODY
    mock_server.session.exchange_code.assert_not_called()
    mock_server.request_shutdown.assert_not_called()


def test_callback_path_from_redirect_uri(mock_settings):
    mock_settings.spotify_redirect_uri = "http://localhost:9000/spotify/callback"

    server = OAuthCallbackServer(mock_settings, MagicMock())

    assert server.callback_path == "/spotify/callback"


@pytest.mark.asyncio
async def test_start_fails_when_port_in_use(mock_settings):
    """Test start reports failure instead of raising when the port is taken."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
        blocker.bind(("127.0.0.1", 0))
        blocker.listen()
        mock_settings.callback_port = blocker.getsockname()[1]
        server = OAuthCallbackServer(mock_settings, MagicMock())

        assert await server.start() is False
        assert server.is_running is False


@pytest.mark.asyncio
async def test_start_serves_and_stops(mock_settings):
    """Test the listener serves requests, ignores repeated starts and stops cleanly."""
    mock_settings.callback_port = _free_port()
    server = OAuthCallbackServer(mock_settings, MagicMock())

    assert await server.start() is True
    try:
        assert server.is_running
        assert await server.start() is True

        for _ in range(100):
            if server._server is not None and server._server.started:
                break
            await asyncio.sleep(0.01)

        async with httpx.AsyncClient(trust_env=False) as client:
            response = await client.get(f"http://127.0.0.1:{mock_settings.callback_port}/favicon.ico")
        assert response.status_code == 200
        assert response.text == PLACEHOLDER_BODY
    finally:
        await server.stop()

    assert server.is_running is False


@pytest.mark.asyncio
async def test_notify_authorized_runs_hook():
    """Test the authorized hook runs in the background."""
    hook = AsyncMock()
    settings = MagicMock()
    settings.spotify_redirect_uri = "http://127.0.0.1:8888/callback"
    server = OAuthCallbackServer(settings, MagicMock(), on_authorized=hook)

    server.notify_authorized()
    await server._notify_task

    hook.assert_awaited_once()
