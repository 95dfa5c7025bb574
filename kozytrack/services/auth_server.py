"""Short-lived local HTTP listener for the Spotify OAuth redirect."""

import asyncio
import contextlib
import socket
import sys
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING
from urllib.parse import urlparse

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from kozytrack.config import Settings
from kozytrack.logging_config import get_logger, log_with_context

if TYPE_CHECKING:
    from kozytrack.services.spotify_service import SpotifySession

logger = get_logger(__name__)

PLACEHOLDER_BODY = "KozyTrack callback server running. Waiting for Spotify redirect..."
# Anything other than the callback redirect gets the placeholder
PLACEHOLDER_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
SUCCESS_BODY = "Authorization successful! You can close this window. The bot will now start updating your status."
EXCHANGE_FAILED_BODY = "Error during Spotify authorization. Check bot console."


def create_callback_app(server: "OAuthCallbackServer") -> FastAPI:
    """Create the FastAPI app that handles the OAuth redirect.

    Args:
        server: Listener that owns the Spotify session and shutdown

    Returns:
        FastAPI application with the callback route and a catch-all route
    """
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

    @app.get(server.callback_path)
    async def auth_callback(code: str | None = None, error: str | None = None, state: str | None = None):
        """Handle the Spotify OAuth callback."""
        if error:
            log_with_context(
                logger,
                "error",
                "Authorization error from Spotify redirect",
                error=error,
                event_type="spotify_auth_denied",
            )
            server.request_shutdown()
            return PlainTextResponse(
                f"Spotify authorization failed: {error}. Please try again or check bot console.",
                status_code=400,
            )

        if not code:
            return PlainTextResponse(PLACEHOLDER_BODY)

        logger.info("Received Spotify authorization code, exchanging for tokens")
        result = await server.session.exchange_code(code)
        server.request_shutdown()

        if not result.is_ok:
            log_with_context(
                logger,
                "error",
                "Error exchanging Spotify code for tokens",
                error=result.error,
                event_type="spotify_code_exchange_failed",
            )
            return PlainTextResponse(EXCHANGE_FAILED_BODY, status_code=500)

        server.notify_authorized()
        return PlainTextResponse(SUCCESS_BODY)

    @app.api_route("/{path:path}", methods=PLACEHOLDER_METHODS)
    async def placeholder(request: Request):
        """Answer favicon and root requests while waiting for the redirect."""
        logger.debug(f"Callback server received {request.method} {request.url.path}")
        return PlainTextResponse(PLACEHOLDER_BODY)

    return app


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves process signal handling to the bot."""

    @contextlib.contextmanager
    def capture_signals(self):
        yield

    def install_signal_handlers(self) -> None:
        pass


class OAuthCallbackServer:
    """Loopback HTTP listener that receives one OAuth redirect and shuts down.

    At most one instance serves at a time: start() is a no-op while
    already running.
    """

    def __init__(
        self,
        settings: Settings,
        session: "SpotifySession",
        on_authorized: Callable[[], Awaitable[None]] | None = None,
    ):
        self.settings = settings
        self.session = session
        self.on_authorized = on_authorized
        self.callback_path = urlparse(settings.spotify_redirect_uri).path or "/callback"
        self.app = create_callback_app(self)
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task | None = None
        self._notify_task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> bool:
        """Bind the listener and serve in the background.

        Returns:
            True if the listener is running, False if the port could not be bound
        """
        if self.is_running:
            logger.debug("Callback server is already running")
            return True

        host, port = self.settings.callback_host, self.settings.callback_port
        try:
            sock = self._bind(host, port)
        except OSError as e:
            log_with_context(
                logger,
                "error",
                f"Could not bind callback server on {host}:{port}. Is another process using the port?",
                host=host,
                port=port,
                error=str(e),
                event_type="callback_server_bind_failed",
            )
            return False

        config = uvicorn.Config(self.app, log_config=None, access_log=False, lifespan="off")
        self._server = _EmbeddedServer(config)
        self._task = asyncio.create_task(self._serve(self._server, sock))
        log_with_context(
            logger,
            "info",
            f"Callback server listening on http://{host}:{port}{self.callback_path}",
            host=host,
            port=port,
            event_type="callback_server_started",
        )
        return True

    def notify_authorized(self) -> None:
        """Run the on_authorized hook in the background."""
        if self.on_authorized is not None:
            self._notify_task = asyncio.get_running_loop().create_task(self.on_authorized())

    def request_shutdown(self) -> None:
        """Ask the listener to exit once the in-flight response is sent."""
        if self._server is not None:
            self._server.should_exit = True

    async def stop(self) -> None:
        """Shut the listener down and wait for it to finish."""
        if self._task is None:
            return
        self.request_shutdown()
        task = self._task
        try:
            await task
        finally:
            self._task = None
            self._server = None

    async def _serve(self, server: uvicorn.Server, sock: socket.socket) -> None:
        try:
            await server.serve(sockets=[sock])
        finally:
            sock.close()
            logger.info("Callback server closed")

    @staticmethod
    def _bind(host: str, port: int) -> socket.socket:
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        if sys.platform != "win32":
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
        except OSError:
            sock.close()
            raise
        sock.setblocking(False)
        return sock
