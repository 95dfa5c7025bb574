"""Bot lifespan management."""

import os
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import httpx

from kozytrack import __version__
from kozytrack.logging_config import get_logger, log_with_context, redact_sensitive_data
from kozytrack.services.auth_server import OAuthCallbackServer
from kozytrack.services.discord_service import ChannelReconciler
from kozytrack.services.lyrics_service import LyricsService
from kozytrack.services.poll_loop import PollLoop
from kozytrack.services.spotify_service import SpotifySession
from kozytrack.state_managers import PollLoopState, SpotifySessionState, TargetChannelState
from kozytrack.utils.config_store import ConfigStore

if TYPE_CHECKING:
    from kozytrack.core.bot import KozyTrackBot

logger = get_logger(__name__)


async def log_request(request: httpx.Request) -> None:
    """Event hook to log requests with redacted sensitive data."""
    log_with_context(
        logger,
        "debug",
        "HTTP Request",
        method=request.method,
        url=redact_sensitive_data(str(request.url)),
        event_type="http_request",
    )


async def log_response(response: httpx.Response) -> None:
    """Event hook to log responses with redacted sensitive data."""
    log_with_context(
        logger,
        "debug",
        "HTTP Response",
        status_code=response.status_code,
        url=redact_sensitive_data(str(response.request.url)),
        event_type="http_response",
    )


def create_http_client() -> httpx.AsyncClient:
    """Create the shared HTTP client with granular timeouts."""
    event_hooks: dict[str, list[Callable[..., Any]]] = {
        "request": [log_request],
        "response": [log_response],
    }
    proxy = os.getenv("HTTPS_PROXY") or os.getenv("HTTP_PROXY")
    if proxy:
        log_with_context(logger, "info", "Using HTTP proxy", proxy=redact_sensitive_data(proxy), event_type="proxy_config")

    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=5.0,  # Connection establishment timeout
            read=10.0,  # Read response timeout
            write=5.0,  # Write operation timeout
            pool=5.0,  # Pool checkout timeout
        ),
        limits=httpx.Limits(
            max_keepalive_connections=5,
            max_connections=10,
            keepalive_expiry=30.0,
        ),
        proxy=proxy or None,
        event_hooks=event_hooks,
    )


@asynccontextmanager
async def lifespan(bot: "KozyTrackBot") -> AsyncIterator[None]:
    """Build the bot services on startup and tear them down on shutdown.

    Everything is stored on bot.state instead of module globals.
    """
    settings = bot.settings
    log_with_context(
        logger,
        "info",
        "Starting KozyTrack bot",
        version=__version__,
        event_type="bot_startup",
    )

    client = create_http_client()

    config_store = ConfigStore(settings.config_file)
    config_store.load()

    session_state = SpotifySessionState()
    poll_state = PollLoopState()
    channel_state = TargetChannelState()
    state_managers = [session_state, poll_state, channel_state]
    for manager in state_managers:
        await manager.initialize()

    spotify_session = SpotifySession(client, settings, session_state, config_store)
    callback_server = OAuthCallbackServer(settings, spotify_session, on_authorized=bot.on_spotify_authorized)
    spotify_session.callback_server = callback_server

    reconciler = ChannelReconciler(bot, channel_state, lookback=settings.message_lookback)
    lyrics_service = LyricsService(settings.genius_api_token) if settings.lyrics_enabled else None
    poll_loop = PollLoop(
        spotify_session,
        reconciler,
        channel_state,
        state=poll_state,
        interval=settings.poll_interval_seconds,
        lyrics_button=lyrics_service is not None,
    )

    bot.state.http_client = client
    bot.state.config_store = config_store
    bot.state.spotify_session_state = session_state
    bot.state.target_channel_state = channel_state
    bot.state.spotify_session = spotify_session
    bot.state.callback_server = callback_server
    bot.state.reconciler = reconciler
    bot.state.lyrics_service = lyrics_service
    bot.state.poll_loop = poll_loop
    log_with_context(logger, "info", "Bot services initialized", event_type="services_ready")

    try:
        yield
    except Exception as e:
        log_with_context(
            logger,
            "error",
            "Bot error during lifespan",
            error=str(e),
            error_type=type(e).__name__,
            event_type="bot_error",
        )
        raise
    finally:
        log_with_context(logger, "info", "Shutting down KozyTrack bot", event_type="bot_shutdown")

        poll_loop.stop()
        await callback_server.stop()

        for manager in state_managers:
            await manager.cleanup()
        logger.info("State managers cleaned up")

        await client.aclose()
        logger.info("HTTP client closed")
