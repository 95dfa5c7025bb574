"""Pydantic models for Spotify playback payloads."""

from typing import Any

from pydantic import BaseModel, Field


class Artist(BaseModel):
    name: str


class AlbumImage(BaseModel):
    url: str


class Album(BaseModel):
    name: str = ""
    # Spotify returns images largest-first
    images: list[AlbumImage] = Field(default_factory=list)


class Track(BaseModel):
    """A Spotify track as returned in the `item` field of playback responses."""

    id: str
    name: str
    artists: list[Artist] = Field(default_factory=list)
    album: Album = Field(default_factory=Album)
    duration_ms: int = Field(gt=0)
    external_url: str = ""

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "Track":
        """Build a Track from a raw Spotify track object."""
        return cls(
            id=item["id"],
            name=item.get("name") or "",
            artists=item.get("artists") or [],
            album=item.get("album") or {},
            duration_ms=item.get("duration_ms") or 1,
            external_url=(item.get("external_urls") or {}).get("spotify", ""),
        )

    @property
    def primary_artist(self) -> str | None:
        return self.artists[0].name if self.artists else None

    @property
    def artist_names(self) -> str:
        return ", ".join(artist.name for artist in self.artists)

    @property
    def album_art_url(self) -> str | None:
        return self.album.images[0].url if self.album.images else None


class PlaybackState(BaseModel):
    """Current Spotify playback status."""

    is_playing: bool
    track: Track | None = None
    progress_ms: int = Field(default=0, ge=0)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "PlaybackState | None":
        """Build a PlaybackState from a currently-playing response.

        Returns None when the response has no track item (ads, podcasts
        without a track object, stopped playback).
        """
        item = data.get("item")
        if not item or not item.get("id"):
            return None
        return cls(
            is_playing=bool(data.get("is_playing", False)),
            track=Track.from_api(item),
            progress_ms=max(int(data.get("progress_ms") or 0), 0),
        )
