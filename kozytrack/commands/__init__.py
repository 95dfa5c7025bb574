"""Slash commands and component handlers"""

from discord import app_commands

from kozytrack.commands.channel_set import channel_set_command
from kozytrack.commands.fetch_lyrics import fetch_lyrics_command, handle_lyrics_button


def register_commands(tree: app_commands.CommandTree) -> None:
    """Add all slash commands to the command tree."""
    tree.add_command(channel_set_command)
    tree.add_command(fetch_lyrics_command)


__all__ = ["handle_lyrics_button", "register_commands"]
