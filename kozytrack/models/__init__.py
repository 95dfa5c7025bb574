"""KozyTrack models"""

from kozytrack.models.bot_config import BotConfig
from kozytrack.models.results import Outcome, Result
from kozytrack.models.spotify import Album, AlbumImage, Artist, PlaybackState, Track

__all__ = [
    "Album",
    "AlbumImage",
    "Artist",
    "BotConfig",
    "Outcome",
    "PlaybackState",
    "Result",
    "Track",
]
