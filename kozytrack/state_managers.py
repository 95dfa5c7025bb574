"""State managers for bot-wide mutable state.

Each piece of mutable state has exactly one owner object, constructed once
in the bot lifespan and passed to the components that need it.
"""

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any


class StateManager(ABC):
    """Base class for all state managers.

    All subclasses must implement lifecycle methods.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the state manager (called during bot startup)."""
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Cleanup resources (called during bot shutdown)."""
        pass


class SpotifySessionState(StateManager):
    """Holds the live Spotify access token and the current refresh token.

    The access token lives in memory only. Setting a new one replaces the
    old one for every subsequent call.
    """

    def __init__(self):
        self._access_token: str | None = None
        self._refresh_token: str | None = None
        self._lock = asyncio.Lock()
        self._refresh_lock = asyncio.Lock()

    async def initialize(self) -> None:
        pass

    async def cleanup(self) -> None:
        async with self._lock:
            self._access_token = None
            self._refresh_token = None

    @property
    def refresh_lock(self) -> asyncio.Lock:
        """Held while a refresh grant is in flight; one refresh token is spent at a time."""
        return self._refresh_lock

    @property
    def access_token(self) -> str | None:
        return self._access_token

    @property
    def refresh_token(self) -> str | None:
        return self._refresh_token

    @property
    def has_access_token(self) -> bool:
        return bool(self._access_token)

    async def set_tokens(self, access_token: str | None, refresh_token: str | None = None) -> None:
        """Replace the live access token, and the refresh token when one is given.

        Args:
            access_token: New access token (None clears it)
            refresh_token: Rotated refresh token, kept unchanged when None
        """
        async with self._lock:
            self._access_token = access_token
            if refresh_token:
                self._refresh_token = refresh_token

    async def set_refresh_token(self, refresh_token: str | None) -> None:
        async with self._lock:
            self._refresh_token = refresh_token

    async def clear(self) -> None:
        """Forget both tokens (authentication lost)."""
        async with self._lock:
            self._access_token = None
            self._refresh_token = None


class PollPhase(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"


class PollLoopState(StateManager):
    """State owned by the poll loop.

    Only the poll loop writes these fields. All access happens on the
    event loop thread so no lock is needed.
    """

    def __init__(self):
        self.phase: PollPhase = PollPhase.STOPPED
        self.current_track_id: str | None = None
        self.timer_task: asyncio.Task | None = None
        self.cycle_in_flight: bool = False

    async def initialize(self) -> None:
        pass

    async def cleanup(self) -> None:
        self.reset()

    @property
    def is_running(self) -> bool:
        return self.phase is not PollPhase.STOPPED

    def reset(self) -> None:
        """Return to STOPPED without a timer and without a displayed track."""
        self.phase = PollPhase.STOPPED
        self.current_track_id = None
        self.timer_task = None


class TargetChannelState(StateManager):
    """Cached reference to the status channel.

    Written by the /channelset command and cleared by the reconciler on
    permission loss. Last writer wins.
    """

    def __init__(self):
        self._channel: Any | None = None

    async def initialize(self) -> None:
        pass

    async def cleanup(self) -> None:
        self._channel = None

    @property
    def channel(self) -> Any | None:
        return self._channel

    def set(self, channel: Any | None) -> None:
        self._channel = channel

    def clear(self) -> None:
        self._channel = None
