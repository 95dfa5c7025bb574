"""Genius lyrics lookup and cleanup."""

import asyncio
import re

import lyricsgenius
from requests.exceptions import RequestException

from kozytrack.exceptions import LyricsException
from kozytrack.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

# Discord embed description limit is 4096
MAX_LYRICS_LENGTH = 4000

_SECTION_HEADER = re.compile(r"\[.*?\]\r?\n")
_EXTRA_BLANK_LINES = re.compile(r"(\r?\n){3,}")


def clean_lyrics(lyrics: str, title: str) -> str:
    """Remove common Genius artifacts from lyrics text.

    Drops [Verse]/[Chorus] header lines, a leading "NN Contributors" or
    "<title> Lyrics" metadata line, and collapses runs of blank lines.
    """
    cleaned = _SECTION_HEADER.sub("", lyrics.strip())

    lines = cleaned.split("\n")
    if lines and ("Contributors" in lines[0] or f"{title.lower()} lyrics" in lines[0].lower()):
        logger.debug(f"Removing metadata line: {lines[0]!r}")
        cleaned = "\n".join(lines[1:]).strip()

    return _EXTRA_BLANK_LINES.sub("\n\n", cleaned)


def truncate_lyrics(lyrics: str, limit: int = MAX_LYRICS_LENGTH) -> tuple[str, bool]:
    """Cut lyrics to the embed limit.

    Returns:
        Tuple of (text, truncated)
    """
    if len(lyrics) <= limit:
        return lyrics, False
    return lyrics[:limit] + "...", True


class LyricsService:
    """Looks up song lyrics on Genius."""

    def __init__(self, api_token: str, timeout: int = 10, retries: int = 1):
        if not api_token:
            raise LyricsException("Genius API token not configured")
        self._genius = lyricsgenius.Genius(
            access_token=api_token,
            timeout=timeout,
            retries=retries,
            remove_section_headers=False,
            skip_non_songs=True,
        )

    async def fetch_lyrics(self, title: str, artist: str) -> str | None:
        """Search Genius for a song and return its cleaned lyrics.

        The Genius client is blocking, so the lookup runs in a worker thread.

        Returns:
            Cleaned lyrics, or None when no match was found

        Raises:
            LyricsException: If the Genius request failed
        """
        log_with_context(
            logger,
            "info",
            "Searching Genius lyrics",
            title=title,
            artist=artist,
            event_type="lyrics_search",
        )
        try:
            song = await asyncio.to_thread(self._genius.search_song, title, artist)
        except (RequestException, TimeoutError, ValueError) as e:
            raise LyricsException(f"Genius lookup failed: {e}", details={"title": title, "artist": artist}) from e

        if song is None or not getattr(song, "lyrics", None):
            logger.info(f"Genius lyrics not found for {title!r} by {artist!r}")
            return None

        logger.info(f"Found lyrics for {title!r} by {artist!r}")
        return clean_lyrics(song.lyrics, title)
