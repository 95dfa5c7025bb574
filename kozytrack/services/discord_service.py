"""Discord channel reconciliation: keep exactly one status message in the target channel."""

import discord

from kozytrack.exceptions import ErrorCode
from kozytrack.logging_config import get_logger, log_with_context
from kozytrack.models.results import Result
from kozytrack.state_managers import TargetChannelState
from kozytrack.utils.config_store import ConfigStore
from kozytrack.views.embeds import StatusPayload

logger = get_logger(__name__)

# Discord JSON error codes
UNKNOWN_MESSAGE = 10008
MISSING_ACCESS = 50001
MISSING_PERMISSIONS = 50013
PERMISSION_ERROR_CODES = frozenset({MISSING_ACCESS, MISSING_PERMISSIONS})


def is_permission_error(error: discord.HTTPException) -> bool:
    """True if the error means the bot lacks access or permissions in the channel."""
    return error.code in PERMISSION_ERROR_CODES


class ChannelReconciler:
    """Makes the target channel show exactly one current status message.

    Uses delete-then-send rather than editing in place so it recovers when
    the channel was cleared or the previous status message was deleted.
    """

    def __init__(self, client: discord.Client, channel_state: TargetChannelState, lookback: int = 20):
        """Initialize the reconciler.

        Args:
            client: Logged-in Discord client (its user identifies our messages)
            channel_state: Cached target channel, cleared on permission loss
            lookback: Number of recent messages scanned for cleanup
        """
        self.client = client
        self.channel_state = channel_state
        self.lookback = lookback

    async def reconcile(self, channel: discord.abc.Messageable | None, payload: StatusPayload) -> Result[discord.Message]:
        """Delete previous bot messages in the channel, then send the payload.

        Returns:
            OK with the sent message (or no value when there is no channel),
            FATAL when the bot lacks permissions in the channel,
            SOFT_FAILURE for any other send failure
        """
        if channel is None:
            logger.debug("Message update skipped: no target channel")
            return Result.ok()

        await self.cleanup_old_messages(channel)

        try:
            message = await channel.send(**payload.send_kwargs())
        except discord.HTTPException as e:
            if is_permission_error(e):
                log_with_context(
                    logger,
                    "error",
                    "Missing permissions in target channel (View Channel, Send Messages, "
                    "Manage Messages, Embed Links). Please check bot permissions.",
                    channel_id=getattr(channel, "id", None),
                    discord_code=e.code,
                    error=str(e),
                    error_code=ErrorCode.DISCORD_PERMISSION_ERROR.value,
                    event_type="discord_permission_lost",
                )
                self.channel_state.clear()
                return Result.fatal(str(e))

            log_with_context(
                logger,
                "warning",
                "Error sending status message",
                channel_id=getattr(channel, "id", None),
                discord_code=e.code,
                error=str(e),
                event_type="discord_send_failed",
            )
            return Result.soft(str(e))

        # Button clicks are routed by custom id, so drop the view from the view store
        if payload.view is not None:
            payload.view.stop()

        log_with_context(
            logger,
            "info",
            f"Sent new status message: {payload.label}",
            channel_id=getattr(channel, "id", None),
            message_id=message.id,
            event_type="discord_status_sent",
        )
        return Result.ok(message)

    async def cleanup_old_messages(self, channel: discord.abc.Messageable) -> int:
        """Delete recent messages authored by the bot.

        Each deletion is independent. Already-deleted messages are ignored
        and other failures are logged.

        Returns:
            Number of messages deleted
        """
        bot_user = self.client.user
        if bot_user is None:
            return 0

        try:
            old_messages = [
                message async for message in channel.history(limit=self.lookback) if message.author.id == bot_user.id
            ]
        except discord.HTTPException as e:
            log_with_context(
                logger,
                "error",
                "Error listing messages for cleanup",
                channel_id=getattr(channel, "id", None),
                error=str(e),
                event_type="discord_cleanup_failed",
            )
            return 0

        if not old_messages:
            logger.debug("No old bot messages found to clean up")
            return 0

        deleted = 0
        for message in old_messages:
            try:
                await message.delete()
                deleted += 1
            except discord.NotFound:
                pass
            except discord.HTTPException as e:
                if e.code == UNKNOWN_MESSAGE:
                    continue
                log_with_context(
                    logger,
                    "warning",
                    "Failed to delete old status message",
                    message_id=message.id,
                    error=str(e),
                    event_type="discord_delete_failed",
                )
        logger.debug(f"Cleanup finished, deleted {deleted} of {len(old_messages)} message(s)")
        return deleted


async def fetch_target_channel(
    client: discord.Client,
    store: ConfigStore,
    channel_state: TargetChannelState,
) -> discord.TextChannel | None:
    """Resolve the configured channel id into a text channel and cache it.

    Returns:
        The text channel, or None when unset, missing or inaccessible
    """
    channel_id = store.config.target_channel_id
    if not channel_id:
        logger.warning("Target channel not set in config. Use /channelset.")
        channel_state.clear()
        return None

    try:
        channel = client.get_channel(int(channel_id)) or await client.fetch_channel(int(channel_id))
    except (ValueError, discord.HTTPException, discord.InvalidData) as e:
        log_with_context(
            logger,
            "error",
            "Error fetching configured channel. The bot may lack access or the id is invalid. Use /channelset.",
            channel_id=channel_id,
            error=str(e),
            event_type="discord_channel_fetch_failed",
        )
        channel_state.clear()
        return None

    if not isinstance(channel, discord.TextChannel):
        log_with_context(
            logger,
            "error",
            "Configured channel is not a text channel. Use /channelset.",
            channel_id=channel_id,
            event_type="discord_channel_invalid",
        )
        channel_state.clear()
        return None

    log_with_context(
        logger,
        "info",
        f"Target channel set to #{channel.name}",
        channel_id=channel_id,
        event_type="discord_channel_ready",
    )
    channel_state.set(channel)
    return channel
