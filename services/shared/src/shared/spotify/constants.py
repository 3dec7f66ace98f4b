"""Spotify API URLs and retry defaults."""

# Spotify Auth
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"

# Spotify Web API
SPOTIFY_API_BASE = "https://api.spotify.com/v1"
RECENTLY_PLAYED_URL = f"{SPOTIFY_API_BASE}/me/player/recently-played"

# recently-played accepts 1..50
RECENTLY_PLAYED_MAX_LIMIT = 50

# Retry defaults
DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_BASE_DELAY = 1.0  # seconds
DEFAULT_REQUEST_TIMEOUT = 15.0  # seconds
