"""Errors raised by the Spotify client during live sync."""


class SpotifyClientError(Exception):
    """Any failed Spotify Web API call.

    ``status_code`` is the last HTTP status seen, or None when no response
    arrived at all (timeouts).
    """

    def __init__(self, message: str, *, status_code: int | None = None, detail: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(message + (f" ({detail})" if detail else ""))


class SpotifyAuthError(SpotifyClientError):
    """401 that a single token refresh did not cure."""

    def __init__(self, detail: str = "") -> None:
        super().__init__("Spotify returned 401 Unauthorized", status_code=401, detail=detail)


class SpotifyRateLimitError(SpotifyClientError):
    """429 on every attempt."""

    def __init__(self, retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        suffix = f" (retry-after: {retry_after}s)" if retry_after is not None else ""
        super().__init__(f"Spotify rate limit exceeded{suffix}", status_code=429)


class SpotifyServerError(SpotifyClientError):
    """5xx or timeout on every attempt."""

    def __init__(self, status_code: int | None, detail: str = "") -> None:
        label = f"HTTP {status_code}" if status_code is not None else "no response"
        super().__init__(f"Spotify server error: {label}", status_code=status_code, detail=detail)


class SpotifyRequestError(SpotifyClientError):
    """Non-retryable 4xx (anything but 401 and 429)."""

    def __init__(self, status_code: int, detail: str = "") -> None:
        super().__init__(f"Spotify request error: HTTP {status_code}", status_code=status_code, detail=detail)
