"""Collector token management: cached Spotify access tokens with single-flight refresh."""

import asyncio
import logging
from collections import defaultdict
from datetime import UTC, datetime, timedelta

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from collector.settings import CollectorSettings
from shared.crypto import TokenEncryptor
from shared.db.models.user import SpotifyToken
from shared.spotify.constants import SPOTIFY_TOKEN_URL
from shared.timeline.timestamps import as_utc

logger = logging.getLogger(__name__)


class TokenRefreshError(RuntimeError):
    """The Spotify token endpoint refused or failed a refresh."""


class CollectorTokenManager:
    """Hands out valid Spotify access tokens per user.

    Access tokens are cached in memory until ``TOKEN_EXPIRY_BUFFER_SECONDS``
    before expiry. Refreshes are single-flight per user: concurrent callers
    wait on one lock and re-check the cache, so only the first performs the
    HTTP refresh.
    """

    def __init__(self, settings: CollectorSettings) -> None:
        self._settings = settings
        self._encryptor = TokenEncryptor(settings.TOKEN_ENCRYPTION_KEY)
        self._cache: dict[int, tuple[str, datetime]] = {}
        self._locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get_valid_token(self, user_id: int, session: AsyncSession) -> str:
        """Return a valid access token for the user, refreshing if needed.

        Raises:
            ValueError: If no token record exists for the user.
            TokenRefreshError: If the Spotify token endpoint returns an error.
        """
        cached = self._fresh_cached(user_id)
        if cached:
            return cached

        async with self._locks[user_id]:
            cached = self._fresh_cached(user_id)
            if cached:
                return cached

            token_record = await self._load_token(user_id, session)
            if token_record.access_token and token_record.token_expires_at:
                self._cache[user_id] = (token_record.access_token, as_utc(token_record.token_expires_at))
                cached = self._fresh_cached(user_id)
                if cached:
                    return cached

            return await self._refresh(user_id, token_record)

    async def refresh_access_token(self, user_id: int, session: AsyncSession) -> str:
        """Force a refresh (e.g. after a 401), still single-flight per user."""
        stale = self._cache.get(user_id)
        async with self._locks[user_id]:
            current = self._cache.get(user_id)
            if current is not None and current != stale:
                return current[0]
            token_record = await self._load_token(user_id, session)
            return await self._refresh(user_id, token_record)

    def invalidate(self, user_id: int) -> None:
        self._cache.pop(user_id, None)

    def _fresh_cached(self, user_id: int) -> str | None:
        entry = self._cache.get(user_id)
        if entry is None:
            return None
        access_token, expires_at = entry
        buffer = timedelta(seconds=self._settings.TOKEN_EXPIRY_BUFFER_SECONDS)
        if expires_at > datetime.now(UTC) + buffer:
            return access_token
        return None

    async def _refresh(self, user_id: int, token_record: SpotifyToken) -> str:
        refresh_token = self._encryptor.decrypt(token_record.encrypted_refresh_token)

        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(
                SPOTIFY_TOKEN_URL,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": refresh_token,
                    "client_id": self._settings.SPOTIFY_CLIENT_ID,
                    "client_secret": self._settings.SPOTIFY_CLIENT_SECRET,
                },
            )
        if response.status_code != 200:
            self.invalidate(user_id)
            raise TokenRefreshError(f"Token refresh failed for user {user_id}: HTTP {response.status_code}")

        data = response.json()
        access_token: str = data["access_token"]
        expires_at = datetime.now(UTC) + timedelta(seconds=data["expires_in"])

        token_record.access_token = access_token
        token_record.token_expires_at = expires_at
        if data.get("refresh_token"):
            token_record.encrypted_refresh_token = self._encryptor.encrypt(data["refresh_token"])

        self._cache[user_id] = (access_token, expires_at)
        logger.info("Refreshed Spotify access token for user %d", user_id)
        return access_token

    async def _load_token(self, user_id: int, session: AsyncSession) -> SpotifyToken:
        """Load the SpotifyToken record for a user or raise."""
        result = await session.execute(select(SpotifyToken).where(SpotifyToken.user_id == user_id))
        token_record = result.scalar_one_or_none()
        if token_record is None:
            raise ValueError(f"No token found for user_id={user_id}")
        return token_record
