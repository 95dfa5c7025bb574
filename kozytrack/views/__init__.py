"""Discord message views"""

from kozytrack.views.embeds import (
    LyricsButtonView,
    StatusPayload,
    create_error_embed,
    create_lyrics_embed,
    create_nothing_playing_embed,
    create_song_embed,
    now_playing_payload,
    nothing_playing_payload,
)

__all__ = [
    "LyricsButtonView",
    "StatusPayload",
    "create_error_embed",
    "create_lyrics_embed",
    "create_nothing_playing_embed",
    "create_song_embed",
    "now_playing_payload",
    "nothing_playing_payload",
]
