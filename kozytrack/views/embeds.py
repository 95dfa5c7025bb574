"""Embed builders for status, lyrics and error messages."""

from dataclasses import dataclass, field

import discord

from kozytrack.models.spotify import Track
from kozytrack.utils.formatting import format_duration

SPOTIFY_GREEN = 0x1DB954
DISCORD_GREYPLE = 0x4F545C
ERROR_RED = 0xFF0000
SPOTIFY_ICON_URL = (
    "https://upload.wikimedia.org/wikipedia/commons/thumb/1/19/"
    "Spotify_logo_without_text.svg/100px-Spotify_logo_without_text.svg.png"
)

LYRICS_BUTTON_PREFIX = "lyrics_"


@dataclass
class StatusPayload:
    """Desired content of the status channel."""

    embed: discord.Embed
    view: discord.ui.View | None = None
    label: str = field(default="Update")

    def send_kwargs(self) -> dict:
        kwargs = {"embed": self.embed}
        if self.view is not None:
            kwargs["view"] = self.view
        return kwargs


class LyricsButtonView(discord.ui.View):
    """Single "Lyrics" button carrying the track id in its custom id.

    Clicks are routed by custom id prefix in the bot's interaction
    handler, so the view does not need to stay alive.
    """

    def __init__(self, track_id: str):
        super().__init__(timeout=None)
        self.add_item(
            discord.ui.Button(
                label="Lyrics",
                style=discord.ButtonStyle.secondary,
                custom_id=f"{LYRICS_BUTTON_PREFIX}{track_id}",
            )
        )


def create_song_embed(track: Track, progress_ms: int = 0) -> discord.Embed:
    """Create the "now playing" status embed."""
    embed = discord.Embed(
        title=track.name,
        url=track.external_url or None,
        description=f"**Album:** {track.album.name}",
        color=SPOTIFY_GREEN,
        timestamp=discord.utils.utcnow(),
    )
    embed.set_author(name=track.artist_names or "Unknown Artist")
    embed.add_field(
        name="Length",
        value=f"{format_duration(progress_ms)} / {format_duration(track.duration_ms)}",
    )
    embed.set_footer(text="Now Playing on Spotify", icon_url=SPOTIFY_ICON_URL)
    if track.album_art_url:
        embed.set_thumbnail(url=track.album_art_url)
    return embed


def create_nothing_playing_embed() -> discord.Embed:
    embed = discord.Embed(description="*Nothing playing on Spotify currently.*", color=DISCORD_GREYPLE)
    embed.set_footer(text="Spotify Status")
    return embed


def create_error_embed(message: str, title: str = "Error Fetching Spotify Status") -> discord.Embed:
    embed = discord.Embed(
        title=title,
        description=f"```{message or 'An unknown error occurred.'}```",
        color=ERROR_RED,
        timestamp=discord.utils.utcnow(),
    )
    embed.set_footer(text="Spotify Status Error")
    return embed


def create_lyrics_embed(
    title: str,
    artist: str,
    lyrics: str,
    track_url: str | None = None,
    album_art_url: str | None = None,
    truncated: bool = False,
) -> discord.Embed:
    """Create the embed for /fetchlyrics and the lyrics button."""
    embed = discord.Embed(
        title=title,
        url=track_url or None,
        description=lyrics or "*Lyrics found but were empty after cleanup.*",
        color=SPOTIFY_GREEN,
        timestamp=discord.utils.utcnow(),
    )
    embed.set_author(name=artist)
    if album_art_url:
        embed.set_thumbnail(url=album_art_url)
    if truncated:
        embed.set_footer(text="Lyrics truncated due to length limits.")
    return embed


def now_playing_payload(track: Track, progress_ms: int = 0, with_lyrics_button: bool = False) -> StatusPayload:
    view = LyricsButtonView(track.id) if with_lyrics_button else None
    return StatusPayload(embed=create_song_embed(track, progress_ms), view=view, label="Now Playing")


def nothing_playing_payload() -> StatusPayload:
    return StatusPayload(embed=create_nothing_playing_embed(), label="Playback Stopped")
