"""Pydantic models for the Spotify Web API responses the live sync consumes.

Pure data models matching Spotify's JSON structure; no DB or auth dependencies.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class SpotifyArtistSimplified(BaseModel):
    """Simplified artist object (embedded in tracks)."""

    id: str | None = None
    name: str
    uri: str | None = None


class SpotifyAlbumSimplified(BaseModel):
    """Simplified album object (embedded in tracks)."""

    id: str | None = None
    name: str
    uri: str | None = None
    release_date: str | None = None


class SpotifyTrack(BaseModel):
    """Track object from Spotify."""

    id: str | None = None
    name: str
    uri: str | None = None
    duration_ms: int | None = None
    is_local: bool = False
    artists: list[SpotifyArtistSimplified] = Field(default_factory=list)
    album: SpotifyAlbumSimplified | None = None

    @property
    def primary_artist_name(self) -> str | None:
        return self.artists[0].name if self.artists else None


class SpotifyContext(BaseModel):
    """Playback context (playlist, album, artist, etc.)."""

    type: str | None = None
    uri: str | None = None


class SpotifyPlayHistoryItem(BaseModel):
    """Single item from /me/player/recently-played."""

    track: SpotifyTrack | None = None
    played_at: datetime | None = None
    context: SpotifyContext | None = None


class SpotifyCursors(BaseModel):
    """Cursors for cursor-based paging."""

    after: str | None = None
    before: str | None = None


class RecentlyPlayedResponse(BaseModel):
    """Response from GET /me/player/recently-played."""

    items: list[SpotifyPlayHistoryItem] = Field(default_factory=list)
    next: str | None = None
    cursors: SpotifyCursors | None = None
    limit: int | None = None
