"""Custom exceptions for KozyTrack."""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error logging."""

    # Generic errors
    KOZYTRACK_ERROR = "KOZYTRACK_ERROR"

    # Spotify errors
    SPOTIFY_ERROR = "SPOTIFY_ERROR"
    SPOTIFY_AUTH_ERROR = "SPOTIFY_AUTH_ERROR"
    SPOTIFY_NOT_AUTHENTICATED = "SPOTIFY_NOT_AUTHENTICATED"
    SPOTIFY_API_ERROR = "SPOTIFY_API_ERROR"
    SPOTIFY_RATE_LIMIT = "SPOTIFY_RATE_LIMIT"

    # Discord errors
    DISCORD_PERMISSION_ERROR = "DISCORD_PERMISSION_ERROR"

    # Lyrics errors
    LYRICS_ERROR = "LYRICS_ERROR"

    # Configuration errors
    CONFIG_ERROR = "CONFIG_ERROR"


class KozyTrackException(Exception):
    """Base exception for bot errors.

    All custom exceptions inherit from this class so callers can
    catch bot failures separately from library errors.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.KOZYTRACK_ERROR,
        details: dict[str, Any] | None = None,
    ):
        """Initialize bot exception.

        Args:
            message: Human-readable error message
            code: Error code from ErrorCode enum
            details: Additional error context/details
        """
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class SpotifyException(KozyTrackException):
    """Spotify-related errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SPOTIFY_ERROR,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)


class SpotifyAuthException(SpotifyException):
    """Spotify rejected a token grant (bad or revoked refresh token, bad code)."""

    def __init__(self, message: str = "Spotify authentication failed", details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.SPOTIFY_AUTH_ERROR, details=details)


class SpotifyNotAuthenticatedException(SpotifyException):
    """No usable Spotify credentials are held."""

    def __init__(self, message: str = "Not authenticated with Spotify", details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.SPOTIFY_NOT_AUTHENTICATED, details=details)


class SpotifyAPIException(SpotifyException):
    """Spotify Web API request failed."""

    def __init__(self, message: str, status_code: int | None = None, details: dict[str, Any] | None = None):
        code = ErrorCode.SPOTIFY_RATE_LIMIT if status_code == 429 else ErrorCode.SPOTIFY_API_ERROR
        super().__init__(message, code=code, details=details)
        self.status_code = status_code


class LyricsException(KozyTrackException):
    """Lyrics provider errors."""

    def __init__(self, message: str = "Lyrics lookup failed", details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.LYRICS_ERROR, details=details)


class ConfigurationException(KozyTrackException):
    """Configuration errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_ERROR,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)
