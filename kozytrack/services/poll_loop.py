"""Timer-driven loop that mirrors Spotify playback into the status channel."""

import asyncio

import discord

from kozytrack.logging_config import get_logger, log_with_context
from kozytrack.services.discord_service import ChannelReconciler
from kozytrack.services.spotify_service import SpotifySession
from kozytrack.state_managers import PollLoopState, PollPhase, TargetChannelState
from kozytrack.views.embeds import StatusPayload, nothing_playing_payload, now_playing_payload

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


class PollLoop:
    """Polls Spotify on a fixed interval and reconciles the channel on change.

    Phases: STOPPED -> STARTING (one awaited cycle) -> RUNNING (timer armed).
    Any cycle that finds authentication lost, the channel gone, or a fatal
    reconciliation stops the loop. stop() is idempotent and safe to call
    from inside a cycle.
    """

    def __init__(
        self,
        session: SpotifySession,
        reconciler: ChannelReconciler,
        channel_state: TargetChannelState,
        state: PollLoopState | None = None,
        interval: float = DEFAULT_POLL_INTERVAL,
        lyrics_button: bool = False,
    ):
        """Initialize the poll loop.

        Args:
            session: Spotify session used to fetch playback
            reconciler: Channel reconciler used to post status messages
            channel_state: Cached target channel
            state: Poll loop state (created if not given)
            interval: Seconds between timer ticks
            lyrics_button: Attach a lyrics button to "now playing" messages
        """
        self.session = session
        self.reconciler = reconciler
        self.channel_state = channel_state
        self.state = state or PollLoopState()
        self.interval = interval
        self.lyrics_button = lyrics_button
        # Bumped on every start and stop so stale cycles and timers can tell
        self._generation = 0

    @property
    def phase(self) -> PollPhase:
        return self.state.phase

    @property
    def is_running(self) -> bool:
        return self.state.is_running

    async def start_if_needed(self, channel: discord.abc.Messageable | None = None) -> bool:
        """Start polling when authenticated, a channel is set, and not already polling.

        Runs one cycle before arming the timer so the channel shows the
        current status right away.

        Args:
            channel: Target channel, stored as the cached channel when given

        Returns:
            True if the timer was armed by this call
        """
        if channel is not None:
            self.channel_state.set(channel)
        channel = self.channel_state.channel

        if not (self.session.has_access_token and channel is not None and not self.state.is_running):
            log_with_context(
                logger,
                "debug",
                "Conditions not met for polling",
                has_token=self.session.has_access_token,
                has_channel=channel is not None,
                is_polling=self.state.is_running,
                event_type="poll_not_started",
            )
            return False

        logger.info("Conditions met: starting Spotify status polling")
        self._generation += 1
        generation = self._generation
        self.state.phase = PollPhase.STARTING
        self.state.current_track_id = None

        await self.poll_once()

        if generation != self._generation or self.state.phase is not PollPhase.STARTING:
            logger.info("Polling stopped during the initial check, timer not armed")
            return False

        self.state.phase = PollPhase.RUNNING
        self.state.timer_task = asyncio.create_task(self._run_timer(generation), name="kozytrack-poll-timer")
        log_with_context(
            logger,
            "info",
            f"Polling interval set ({self.interval}s)",
            interval_seconds=self.interval,
            event_type="poll_started",
        )
        return True

    def stop(self) -> None:
        """Stop polling and forget the displayed track. No-op when already stopped."""
        if self.state.phase is PollPhase.STOPPED and self.state.timer_task is None:
            return

        logger.info("Stopping Spotify status polling")
        task = self.state.timer_task
        self._generation += 1
        self.state.reset()
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def poll_once(self) -> None:
        """Run one poll cycle. Never raises."""
        self.state.cycle_in_flight = True
        try:
            await self._poll_cycle()
        except Exception as e:
            log_with_context(
                logger,
                "error",
                "Unhandled error during poll check cycle",
                error=str(e),
                error_type=type(e).__name__,
                event_type="poll_cycle_error",
            )
        finally:
            self.state.cycle_in_flight = False

    async def _run_timer(self, generation: int) -> None:
        while generation == self._generation:
            await asyncio.sleep(self.interval)
            if generation != self._generation:
                break
            await self._tick()

    async def _tick(self) -> None:
        if not self.state.is_running:
            return
        if self.state.cycle_in_flight:
            logger.debug("Previous poll cycle still in flight, skipping tick")
            return
        await self.poll_once()

    async def _poll_cycle(self) -> None:
        if not self.session.has_access_token:
            logger.debug("Poll skipped: Spotify not authenticated")
            self.stop()
            return

        channel = self.channel_state.channel
        if channel is None:
            logger.debug("Poll skipped: target channel not set")
            self.stop()
            return

        generation = self._generation
        result = await self.session.fetch_playback()
        if generation != self._generation:
            return
        if result.is_fatal:
            logger.warning("Spotify authentication lost, stopping polling")
            self.stop()
            return
        if not result.is_ok:
            # Transient failure, the next tick retries
            return

        playback = result.value
        if playback is not None and playback.is_playing and playback.track is not None:
            track = playback.track
            if track.id == self.state.current_track_id:
                return
            log_with_context(
                logger,
                "info",
                f"Now Playing: {track.name} by {track.artist_names}",
                track_id=track.id,
                event_type="spotify_now_playing",
            )
            payload = now_playing_payload(track, playback.progress_ms, with_lyrics_button=self.lyrics_button)
            await self._reconcile(channel, payload, track.id, generation)
        elif self.state.current_track_id is not None:
            logger.info("Playback stopped or paused")
            await self._reconcile(channel, nothing_playing_payload(), None, generation)

    async def _reconcile(
        self,
        channel: discord.abc.Messageable,
        payload: StatusPayload,
        track_id: str | None,
        generation: int,
    ) -> None:
        result = await self.reconciler.reconcile(channel, payload)
        if generation != self._generation:
            return

        if result.is_ok:
            self.state.current_track_id = track_id
        elif result.is_fatal:
            logger.warning("Critical error updating Discord message, stopping polling")
            self.stop()
        else:
            log_with_context(
                logger,
                "warning",
                "Status update failed, retrying on the next poll",
                error=result.error,
                event_type="poll_update_retry",
            )
