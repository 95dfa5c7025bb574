"""/fetchlyrics and the lyrics button on status messages."""

import discord
from discord import app_commands

from kozytrack.dependencies import get_lyrics_service, get_spotify_session
from kozytrack.exceptions import LyricsException
from kozytrack.logging_config import get_logger, log_with_context
from kozytrack.models.spotify import Track
from kozytrack.services.lyrics_service import truncate_lyrics
from kozytrack.views.embeds import LYRICS_BUTTON_PREFIX, create_lyrics_embed

logger = get_logger(__name__)


async def handle_fetch_lyrics(interaction: discord.Interaction, track_id: str | None = None) -> None:
    """Reply with lyrics for the current track, or for track_id when given."""
    # Button clicks get a new reply, not an edit of the status message
    await interaction.response.defer(thinking=True)

    session = get_spotify_session(interaction.client)
    if not session.has_access_token:
        logger.info("Lyrics failed: Spotify not authenticated")
        await interaction.edit_original_response(
            content="Spotify is not connected. Please ensure the bot owner has authorized Spotify."
        )
        return

    track = await _resolve_track(session, track_id)
    if track is None:
        await interaction.edit_original_response(
            content="Could not find that song on Spotify."
            if track_id
            else "You are not currently playing any track on Spotify."
        )
        return

    artist, title = track.primary_artist, track.name
    if not artist or not title:
        logger.info("Lyrics failed: could not extract artist/title from track")
        await interaction.edit_original_response(content="Could not get track details from Spotify.")
        return

    lyrics_service = get_lyrics_service(interaction.client)
    if lyrics_service is None:
        logger.error("Lyrics failed: GENIUS_API_TOKEN not configured")
        await interaction.edit_original_response(content="Genius API token is missing in the bot configuration.")
        return

    try:
        lyrics = await lyrics_service.fetch_lyrics(title, artist)
    except LyricsException as e:
        log_with_context(logger, "error", "Error during lyrics lookup", error=e.message, event_type="lyrics_failed")
        await interaction.edit_original_response(
            content="An error occurred while fetching lyrics. Please try again later."
        )
        return

    if not lyrics:
        await interaction.edit_original_response(content=f"Sorry, couldn't find lyrics for **{title}** by **{artist}**.")
        return

    text, truncated = truncate_lyrics(lyrics)
    embed = create_lyrics_embed(title, artist, text, track.external_url, track.album_art_url, truncated)
    await interaction.edit_original_response(embed=embed)


async def handle_lyrics_button(interaction: discord.Interaction) -> None:
    """Route a lyrics_<trackId> button click to the lyrics handler."""
    custom_id = (interaction.data or {}).get("custom_id", "")
    track_id = custom_id[len(LYRICS_BUTTON_PREFIX) :]
    if not track_id:
        logger.warning(f"Lyrics button with no track id: {custom_id!r}")
        await interaction.response.send_message("Could not determine the song for this action.", ephemeral=True)
        return
    await handle_fetch_lyrics(interaction, track_id)


async def _resolve_track(session, track_id: str | None) -> Track | None:
    if track_id:
        return await session.get_track(track_id)

    playback = await session.get_current_playback()
    if playback is None or not playback.is_playing or playback.track is None:
        logger.info("Lyrics failed: no track currently playing")
        return None
    return playback.track


@app_commands.command(name="fetchlyrics", description="Fetches lyrics for the currently playing Spotify song.")
async def fetch_lyrics_command(interaction: discord.Interaction) -> None:
    await handle_fetch_lyrics(interaction)
