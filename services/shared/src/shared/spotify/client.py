"""Spotify Web API async client with token-refresh, timeout and rate-limit handling."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from shared.spotify.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_BASE_DELAY,
    RECENTLY_PLAYED_MAX_LIMIT,
    RECENTLY_PLAYED_URL,
)
from shared.spotify.exceptions import (
    SpotifyAuthError,
    SpotifyRateLimitError,
    SpotifyRequestError,
    SpotifyServerError,
)
from shared.spotify.models import RecentlyPlayedResponse

logger = logging.getLogger(__name__)


class SpotifyClient:
    """Async Spotify Web API client for the live sync path.

    Takes an access token per instance. On 401 it asks ``on_token_expired``
    for a fresh token once; 429, 5xx and timeouts are retried up to
    ``max_retries`` times with Retry-After or exponential backoff.
    """

    def __init__(
        self,
        access_token: str,
        *,
        on_token_expired: Callable[[], Awaitable[str]] | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self._access_token = access_token
        self._on_token_expired = on_token_expired
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._request_timeout = request_timeout

    async def _get(self, url: str, params: dict[str, str | int] | None = None) -> httpx.Response:
        refreshed = False
        last_status: int | None = None
        last_retry_after: float | None = None

        for attempt in range(self._max_retries + 1):
            backoff = self._retry_base_delay * (2**attempt)
            try:
                async with httpx.AsyncClient(timeout=self._request_timeout) as client:
                    response = await client.get(
                        url,
                        params=params,
                        headers={"Authorization": f"Bearer {self._access_token}"},
                    )
            except httpx.TimeoutException:
                last_status = None
                logger.warning("Spotify request timed out (attempt %d/%d)", attempt + 1, self._max_retries + 1)
                continue

            last_status = response.status_code
            if response.is_success:
                return response

            if response.status_code == 401:
                if self._on_token_expired is None or refreshed:
                    raise SpotifyAuthError(_error_detail(response))
                refreshed = True
                logger.info("Spotify returned 401, refreshing access token")
                self._access_token = await self._on_token_expired()
                continue

            if response.status_code == 429:
                retry_after = response.headers.get("Retry-After")
                last_retry_after = float(retry_after) if retry_after else backoff
                if attempt < self._max_retries:
                    logger.warning("Spotify rate limited, sleeping %.1fs", last_retry_after)
                    await asyncio.sleep(last_retry_after)
                continue

            if response.status_code >= 500:
                if attempt < self._max_retries:
                    logger.warning("Spotify server error %d, sleeping %.1fs", response.status_code, backoff)
                    await asyncio.sleep(backoff)
                continue

            raise SpotifyRequestError(response.status_code, _error_detail(response))

        if last_status == 429:
            raise SpotifyRateLimitError(retry_after=last_retry_after)
        raise SpotifyServerError(last_status, "max retries exhausted")

    async def get_recently_played(self, *, limit: int = RECENTLY_PLAYED_MAX_LIMIT) -> RecentlyPlayedResponse:
        """GET /me/player/recently-played (1..50 items)."""
        if not 1 <= limit <= RECENTLY_PLAYED_MAX_LIMIT:
            raise ValueError(f"limit must be between 1 and {RECENTLY_PLAYED_MAX_LIMIT}")
        response = await self._get(RECENTLY_PLAYED_URL, params={"limit": limit})
        return RecentlyPlayedResponse.model_validate(response.json())


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message", ""))
    return str(body)[:200]
