"""Unit tests for the lyrics service."""

from unittest.mock import MagicMock

import pytest
from requests.exceptions import ConnectionError as RequestsConnectionError

from kozytrack.exceptions import LyricsException
from kozytrack.services.lyrics_service import MAX_LYRICS_LENGTH, LyricsService, clean_lyrics, truncate_lyrics


def test_clean_lyrics_removes_section_headers_and_metadata():
    raw = "12 ContributorsTest Song Lyrics\n[Verse 1]\nFirst line\nSecond line\n\n\n\n[Chorus]\nChorus line\n"

    assert clean_lyrics(raw, "Test Song") == "First line\nSecond line\n\nChorus line"


def test_clean_lyrics_removes_title_line():
    raw = "Test Song Lyrics\nFirst line"

    assert clean_lyrics(raw, "Test Song") == "First line"


def test_clean_lyrics_keeps_plain_lyrics():
    assert clean_lyrics("  First line\nSecond line  ", "Test Song") == "First line\nSecond line"


def test_truncate_lyrics_short():
    assert truncate_lyrics("short lyrics") == ("short lyrics", False)


def test_truncate_lyrics_long():
    text, truncated = truncate_lyrics("a" * (MAX_LYRICS_LENGTH + 10))

    assert truncated is True
    assert text == "a" * MAX_LYRICS_LENGTH + "..."


def test_service_requires_token():
    with pytest.raises(LyricsException):
        LyricsService("")


def test_service_configures_genius_client():
    """Test the Genius client is built with the bot's search options."""
    service = LyricsService("test-genius-token", timeout=7, retries=2)

    assert service._genius.timeout == 7
    assert service._genius.retries == 2
    assert service._genius.skip_non_songs is True
    assert service._genius.remove_section_headers is False


@pytest.mark.asyncio
async def test_fetch_lyrics_found():
    service = LyricsService("test-genius-token")
    song = MagicMock()
    song.lyrics = "Test Song Lyrics\n[Intro]\nLa la la"
    service._genius = MagicMock()
    service._genius.search_song.return_value = song

    lyrics = await service.fetch_lyrics("Test Song", "Test Artist")

    assert lyrics == "La la la"
    service._genius.search_song.assert_called_once_with("Test Song", "Test Artist")


@pytest.mark.asyncio
async def test_fetch_lyrics_not_found():
    service = LyricsService("test-genius-token")
    service._genius = MagicMock()
    service._genius.search_song.return_value = None

    assert await service.fetch_lyrics("Unknown", "Nobody") is None


@pytest.mark.asyncio
async def test_fetch_lyrics_request_error():
    """Test provider failures are raised as LyricsException."""
    service = LyricsService("test-genius-token")
    service._genius = MagicMock()
    service._genius.search_song.side_effect = RequestsConnectionError("unreachable")

    with pytest.raises(LyricsException) as exc_info:
        await service.fetch_lyrics("Test Song", "Test Artist")

    assert exc_info.value.details == {"title": "Test Song", "artist": "Test Artist"}
