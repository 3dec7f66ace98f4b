"""Spotify Web API access for the live sync path."""

from shared.spotify.client import SpotifyClient
from shared.spotify.exceptions import (
    SpotifyAuthError,
    SpotifyClientError,
    SpotifyRateLimitError,
    SpotifyRequestError,
    SpotifyServerError,
)
from shared.spotify.models import RecentlyPlayedResponse, SpotifyPlayHistoryItem, SpotifyTrack

__all__ = [
    # Client
    "SpotifyClient",
    # Errors
    "SpotifyAuthError",
    "SpotifyClientError",
    "SpotifyRateLimitError",
    "SpotifyRequestError",
    "SpotifyServerError",
    # Models
    "RecentlyPlayedResponse",
    "SpotifyPlayHistoryItem",
    "SpotifyTrack",
]
