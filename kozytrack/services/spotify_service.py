"""Spotify Web API session: token lifecycle and playback lookups."""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from kozytrack.config import Settings
from kozytrack.exceptions import SpotifyAPIException, SpotifyAuthException, SpotifyNotAuthenticatedException
from kozytrack.logging_config import get_logger, log_with_context
from kozytrack.models.results import Result
from kozytrack.models.spotify import PlaybackState, Track
from kozytrack.state_managers import SpotifySessionState
from kozytrack.utils.config_store import ConfigStore

if TYPE_CHECKING:
    from kozytrack.services.auth_server import OAuthCallbackServer

logger = get_logger(__name__)

T = TypeVar("T")

SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_CURRENTLY_PLAYING_URL = "https://api.spotify.com/v1/me/player/currently-playing"
SPOTIFY_TRACK_URL = "https://api.spotify.com/v1/tracks/{track_id}"

SPOTIFY_SCOPES = [
    "user-read-currently-playing",
    "user-read-playback-state",
]
# Static opaque state value echoed back by the authorize redirect
SPOTIFY_AUTH_STATE = "kozytrack-state"


class SpotifySession:
    """Owns the Spotify access token and hides token refresh from callers.

    Public lookups never raise. Failures are returned as tagged results
    (fetch_playback) or collapse to None (get_current_playback, get_track).
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Settings,
        state: SpotifySessionState,
        store: ConfigStore,
        callback_server: "OAuthCallbackServer | None" = None,
    ):
        """Initialize the session.

        Args:
            client: Shared HTTP client from the bot lifespan
            settings: Bot settings (client id/secret, redirect URI)
            state: Token holder
            store: Credential store for the refresh token
            callback_server: OAuth listener started by request_authorization
        """
        self.client = client
        self.settings = settings
        self.state = state
        self.store = store
        self.callback_server = callback_server

    @property
    def has_access_token(self) -> bool:
        return self.state.has_access_token

    async def initialize(self) -> bool:
        """Mint an access token from the persisted refresh token.

        Returns:
            True when a usable access token is held afterwards
        """
        refresh_token = self.store.config.spotify_refresh_token
        if not refresh_token:
            log_with_context(logger, "warning", "No Spotify refresh token found", event_type="spotify_no_token")
            await self.request_authorization()
            return False

        log_with_context(
            logger,
            "info",
            "Found refresh token, refreshing access token",
            event_type="spotify_init",
        )
        await self.state.set_refresh_token(refresh_token)
        result = await self.refresh_access_token()
        if result.is_ok:
            return True

        if result.is_fatal:
            log_with_context(
                logger,
                "warning",
                "Refresh token rejected, re-authorization required",
                error=result.error,
                event_type="spotify_token_rejected",
            )
            await self._forget_credentials()
        else:
            log_with_context(
                logger,
                "warning",
                "Could not reach Spotify to refresh the access token",
                error=result.error,
                event_type="spotify_init_failed",
            )
        await self.request_authorization()
        return False

    def build_authorize_url(self) -> str:
        """Build the Spotify authorization URL for the operator to visit."""
        params = {
            "client_id": self.settings.spotify_client_id,
            "response_type": "code",
            "redirect_uri": self.settings.spotify_redirect_uri,
            "scope": " ".join(SPOTIFY_SCOPES),
            "state": SPOTIFY_AUTH_STATE,
        }
        return f"{SPOTIFY_AUTHORIZE_URL}?{urlencode(params)}"

    async def request_authorization(self) -> bool:
        """Show the authorization URL and start the OAuth callback listener.

        Returns:
            True if the callback listener is running afterwards
        """
        authorize_url = self.build_authorize_url()
        banner = "!" * 72
        logger.warning(banner)
        logger.warning("!!! SPOTIFY AUTHORIZATION NEEDED !!!")
        logger.warning("!!! Please visit this URL in your browser to authorize the bot:")
        logger.warning(f"!!! {authorize_url}")
        logger.warning(banner)
        log_with_context(
            logger,
            "info",
            "Spotify authorization requested",
            event_type="spotify_auth_requested",
        )

        if self.callback_server is None:
            return False
        return await self.callback_server.start()

    async def refresh_access_token(self) -> Result[str]:
        """Exchange the refresh token for a new access token.

        A rotated refresh token in the response is persisted immediately.

        Returns:
            OK with the new access token, FATAL if the provider rejected the
            refresh token (or none is held), SOFT_FAILURE on transport errors
        """
        refresh_token = self.state.refresh_token or self.store.config.spotify_refresh_token
        if not refresh_token:
            return Result.fatal("No refresh token available. Please authenticate first.")

        try:
            data = await self._token_request({"grant_type": "refresh_token", "refresh_token": refresh_token})
            access_token = data["access_token"]
        except SpotifyAuthException as e:
            return Result.fatal(e.message)
        except (SpotifyAPIException, httpx.HTTPError, KeyError, ValueError) as e:
            return Result.soft(f"Spotify token refresh failed: {e}")

        rotated = data.get("refresh_token")
        await self.state.set_tokens(access_token, rotated or refresh_token)
        if rotated:
            log_with_context(logger, "info", "Received a new refresh token", event_type="spotify_token_rotated")
            self.store.save(spotify_refresh_token=rotated)

        log_with_context(logger, "info", "Access token refreshed", event_type="spotify_token_refreshed")
        return Result.ok(access_token)

    async def exchange_code(self, code: str) -> Result[str]:
        """Exchange an authorization code for access and refresh tokens.

        Keeps the previously stored refresh token when the provider omits one.

        Returns:
            OK with the new access token, FATAL if the code was rejected,
            SOFT_FAILURE on transport errors
        """
        try:
            data = await self._token_request(
                {
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.settings.spotify_redirect_uri,
                }
            )
            access_token = data["access_token"]
        except SpotifyAuthException as e:
            return Result.fatal(e.message)
        except (SpotifyAPIException, httpx.HTTPError, KeyError, ValueError) as e:
            return Result.soft(f"Token exchange failed: {e}")

        refresh_token = data.get("refresh_token") or self.store.config.spotify_refresh_token
        if not data.get("refresh_token"):
            logger.info("No new refresh token in code exchange, keeping the stored one")

        await self.state.set_tokens(access_token, refresh_token)
        if refresh_token:
            self.store.save(spotify_refresh_token=refresh_token)

        log_with_context(logger, "info", "Spotify authorization successful", event_type="spotify_auth_success")
        return Result.ok(access_token)

    async def fetch_playback(self) -> Result[PlaybackState]:
        """Fetch the currently playing state.

        Returns:
            OK with a PlaybackState (or None when nothing is playing),
            FATAL when authentication is lost, SOFT_FAILURE otherwise
        """
        return await self._call_with_refresh(self._get_currently_playing, "playback")

    async def get_current_playback(self) -> PlaybackState | None:
        """Fail-soft playback lookup. Any failure yields None."""
        result = await self.fetch_playback()
        return result.value if result.is_ok else None

    async def get_track(self, track_id: str) -> Track | None:
        """Look up a track by id. Any failure yields None."""

        async def request(token: str) -> Track | None:
            return await self._get_track(token, track_id)

        result = await self._call_with_refresh(request, "track")
        return result.value if result.is_ok else None

    async def _call_with_refresh(
        self,
        request: Callable[[str], Awaitable[T]],
        what: str,
    ) -> Result[T]:
        """Run an authorized request, refreshing and retrying once on 401."""
        token = self.state.access_token
        if not token:
            logger.debug(f"Cannot get {what}: not authenticated")
            return Result.fatal("Not authenticated with Spotify")

        try:
            return Result.ok(await request(token))
        except SpotifyNotAuthenticatedException:
            log_with_context(
                logger,
                "info",
                "Access token expired, refreshing",
                request=what,
                event_type="spotify_token_expired",
            )
        except (SpotifyAPIException, httpx.HTTPError, ValidationError, ValueError) as e:
            return self._soft_failure(what, e)

        refreshed = await self._refresh_after_401(token)
        if not refreshed.is_ok:
            if not refreshed.is_fatal:
                log_with_context(logger, "warning", refreshed.error, request=what, event_type="spotify_refresh_failed")
            return refreshed

        try:
            return Result.ok(await request(refreshed.value))
        except SpotifyNotAuthenticatedException as e:
            await self._authentication_lost(e.message)
            return Result.fatal(e.message)
        except (SpotifyAPIException, httpx.HTTPError, ValidationError, ValueError) as e:
            return self._soft_failure(what, e)

    async def _refresh_after_401(self, stale_token: str) -> Result[str]:
        """Refresh once per expired access token.

        Callers that hit a 401 with the same stale token wait for the first
        refresh and reuse its result instead of spending the refresh token again.
        """
        async with self.state.refresh_lock:
            current = self.state.access_token
            if current != stale_token:
                if not current:
                    return Result.fatal("Not authenticated with Spotify")
                logger.debug("Access token already refreshed by a concurrent request")
                return Result.ok(current)

            refreshed = await self.refresh_access_token()
            if refreshed.is_fatal:
                await self._authentication_lost(refreshed.error)
            return refreshed

    def _soft_failure(self, what: str, error: Exception) -> Result:
        fields = {"request": what, "error": str(error), "event_type": "spotify_request_failed"}
        if isinstance(error, SpotifyAPIException):
            fields.update(status_code=error.status_code, **error.details)
        log_with_context(logger, "warning", f"Error fetching Spotify {what}", **fields)
        return Result.soft(str(error))

    async def _authentication_lost(self, reason: str | None) -> None:
        log_with_context(
            logger,
            "error",
            "Spotify authentication lost",
            error=reason,
            event_type="spotify_auth_lost",
        )
        await self._forget_credentials()
        await self.request_authorization()

    async def _forget_credentials(self) -> None:
        await self.state.clear()
        self.store.save(spotify_refresh_token=None)

    async def _token_request(self, data: dict[str, str]) -> dict:
        """POST to the token endpoint.

        Raises:
            SpotifyAuthException: If the grant was rejected (400/401)
            SpotifyAPIException: For other error statuses
            httpx.HTTPError: For transport failures
        """
        response = await self.client.post(
            SPOTIFY_TOKEN_URL,
            auth=(self.settings.spotify_client_id, self.settings.spotify_client_secret),
            data=data,
        )
        if response.status_code in (400, 401):
            raise SpotifyAuthException(
                f"Spotify rejected the {data['grant_type']} grant",
                details={"status_code": response.status_code},
            )
        if response.status_code >= 400:
            raise SpotifyAPIException("Spotify token endpoint error", status_code=response.status_code)
        return response.json()

    async def _get_currently_playing(self, token: str) -> PlaybackState | None:
        response = await self.client.get(
            SPOTIFY_CURRENTLY_PLAYING_URL,
            headers={"Authorization": f"Bearer {token}"},
        )
        self._check_status(response)
        if response.status_code == 204 or not response.content:
            return None
        return PlaybackState.from_api(response.json() or {})

    async def _get_track(self, token: str, track_id: str) -> Track | None:
        response = await self.client.get(
            SPOTIFY_TRACK_URL.format(track_id=track_id),
            headers={"Authorization": f"Bearer {token}"},
        )
        self._check_status(response)
        if response.status_code == 404:
            return None
        return Track.from_api(response.json())

    @staticmethod
    def _check_status(response: httpx.Response) -> None:
        if response.status_code == 401:
            raise SpotifyNotAuthenticatedException("Spotify access token expired")
        if response.status_code == 429:
            raise SpotifyAPIException(
                "Spotify rate limit reached",
                status_code=429,
                details={"retry_after": response.headers.get("Retry-After")},
            )
        if response.status_code >= 400 and response.status_code != 404:
            raise SpotifyAPIException("Spotify API error", status_code=response.status_code)
