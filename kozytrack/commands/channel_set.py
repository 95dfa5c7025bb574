"""/channelset: choose the channel that shows the Spotify status."""

import discord
from discord import app_commands

from kozytrack.dependencies import get_config_store, get_poll_loop, get_target_channel_state
from kozytrack.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

REQUIRED_PERMISSIONS = {
    "view_channel": "View Channel",
    "send_messages": "Send Messages",
    "manage_messages": "Manage Messages",
    "embed_links": "Embed Links",
}


def missing_permissions(channel: discord.TextChannel, member: discord.abc.Snowflake) -> list[str]:
    """Names of the required permissions the member lacks in the channel."""
    permissions = channel.permissions_for(member)
    return [label for flag, label in REQUIRED_PERMISSIONS.items() if not getattr(permissions, flag, False)]


async def handle_channel_set(interaction: discord.Interaction, channel: discord.abc.GuildChannel) -> None:
    """Validate the channel, persist it, and restart polling there."""
    if not isinstance(channel, discord.TextChannel):
        logger.info(f"/channelset failed: invalid channel type selected by {interaction.user}")
        await interaction.response.send_message("Please select a valid text channel.", ephemeral=True)
        return

    me = channel.guild.me if channel.guild is not None else None
    missing = missing_permissions(channel, me) if me is not None else list(REQUIRED_PERMISSIONS.values())
    if missing:
        log_with_context(
            logger,
            "warning",
            f"/channelset failed: missing permissions in #{channel.name}",
            channel_id=str(channel.id),
            missing=missing,
            event_type="channelset_missing_permissions",
        )
        await interaction.response.send_message(
            f"I don't have the necessary permissions ({', '.join(REQUIRED_PERMISSIONS.values())}) "
            f"in {channel.mention}. Please grant them and try again.",
            ephemeral=True,
        )
        return

    poll_loop = get_poll_loop(interaction.client)
    poll_loop.stop()

    get_config_store(interaction.client).save(target_channel_id=str(channel.id))
    get_target_channel_state(interaction.client).set(channel)

    log_with_context(
        logger,
        "info",
        f"Target channel set to #{channel.name} by {interaction.user}",
        channel_id=str(channel.id),
        event_type="channelset_success",
    )
    await interaction.response.send_message(
        f"Spotify status updates will now be sent to {channel.mention}.",
        ephemeral=True,
    )

    await poll_loop.start_if_needed(channel)


@app_commands.command(name="channelset", description="Sets the channel where the Spotify status will be displayed.")
@app_commands.describe(channel="The text channel to use for status updates")
@app_commands.guild_only()
async def channel_set_command(interaction: discord.Interaction, channel: discord.TextChannel) -> None:
    await handle_channel_set(interaction, channel)
