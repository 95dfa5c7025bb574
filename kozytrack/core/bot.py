"""Discord client for KozyTrack."""

from types import SimpleNamespace

import discord
from discord import app_commands

from kozytrack.commands import handle_lyrics_button, register_commands
from kozytrack.config import Settings
from kozytrack.dependencies import get_config_store, get_poll_loop, get_spotify_session, get_target_channel_state
from kozytrack.logging_config import get_logger, log_with_context
from kozytrack.services.discord_service import fetch_target_channel
from kozytrack.views.embeds import LYRICS_BUTTON_PREFIX, create_error_embed

logger = get_logger(__name__)

GENERIC_COMMAND_ERROR = "An error occurred while processing the command."


async def send_error_reply(interaction: discord.Interaction, message: str) -> None:
    """Answer an interaction with an error embed, whether or not it was already acknowledged."""
    embed = create_error_embed(message, title="Something went wrong")
    try:
        if interaction.response.is_done():
            await interaction.edit_original_response(content=None, embed=embed)
        else:
            await interaction.response.send_message(embed=embed, ephemeral=True)
    except discord.HTTPException as e:
        log_with_context(logger, "error", "Failed to send error reply", error=str(e), event_type="reply_failed")


class KozyTrackTree(app_commands.CommandTree):
    async def on_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
        command = interaction.command.name if interaction.command else "unknown"
        log_with_context(
            logger,
            "error",
            f"Error handling slash command /{command}",
            error=str(getattr(error, "original", error)),
            error_type=type(getattr(error, "original", error)).__name__,
            event_type="command_error",
        )
        await send_error_reply(interaction, GENERIC_COMMAND_ERROR)


class KozyTrackBot(discord.Client):
    """Discord client that wires commands, startup checks and Spotify auth to the poll loop.

    Services are attached to ``state`` by the lifespan before login.
    """

    def __init__(self, settings: Settings):
        intents = discord.Intents.none()
        intents.guilds = True
        intents.guild_messages = True
        super().__init__(intents=intents)
        self.settings = settings
        self.state = SimpleNamespace()
        self.tree = KozyTrackTree(self)
        self._startup_done = False

    async def setup_hook(self) -> None:
        register_commands(self.tree)
        if self.settings.sync_commands:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash command(s)")

    async def on_ready(self) -> None:
        logger.info(f"Logged in as {self.user}")
        # on_ready fires again after reconnects
        if self._startup_done:
            return
        self._startup_done = True
        await self.start_status_updates()

    async def start_status_updates(self) -> bool:
        """Authenticate with Spotify, resolve the target channel and start polling."""
        logger.info("Initializing Spotify connection")
        spotify_ready = await get_spotify_session(self).initialize()
        target_channel = await fetch_target_channel(self, get_config_store(self), get_target_channel_state(self))

        poll_loop = get_poll_loop(self)
        if spotify_ready and target_channel is not None:
            await poll_loop.start_if_needed(target_channel)
        else:
            if not spotify_ready:
                logger.warning("Bot ready, but Spotify auth needed/failed. See the authorization URL above.")
            if target_channel is None:
                logger.warning("Bot ready, but target channel not set/found. Use /channelset.")

        if poll_loop.is_running:
            logger.info("Bot ready and polling started")
        return poll_loop.is_running

    async def on_spotify_authorized(self) -> None:
        """Called by the OAuth callback listener once tokens are stored."""
        logger.info("Spotify authorized, checking whether polling can start")
        await get_poll_loop(self).start_if_needed()

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        if interaction.type is not discord.InteractionType.component:
            return

        custom_id = (interaction.data or {}).get("custom_id", "")
        logger.info(f"Processing button interaction: {custom_id} by {interaction.user}")
        if not custom_id.startswith(LYRICS_BUTTON_PREFIX):
            logger.warning(f"Unknown button id: {custom_id}")
            await interaction.response.send_message("This button is not recognized.", ephemeral=True)
            return

        try:
            await handle_lyrics_button(interaction)
        except Exception as e:
            log_with_context(
                logger,
                "error",
                "Error handling lyrics button",
                custom_id=custom_id,
                error=str(e),
                event_type="button_error",
            )
            await send_error_reply(interaction, "An error occurred while fetching lyrics for this song.")

    async def close(self) -> None:
        poll_loop = getattr(self.state, "poll_loop", None)
        if poll_loop is not None:
            poll_loop.stop()
        await super().close()


def create_bot(settings: Settings) -> KozyTrackBot:
    """Create the Discord client.

    Returns:
        Configured KozyTrackBot (services are attached by the lifespan)
    """
    return KozyTrackBot(settings)
