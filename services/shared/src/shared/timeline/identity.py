"""Stable content identities for tracks and uploaded files."""

import hashlib

# Matches the length of a native Spotify track id
TRACK_IDENTITY_LENGTH = 22


def _normalize(value: str | None) -> str:
    return (value or "").strip().lower()


def track_identity(track_name: str | None, artist_name: str | None) -> str | None:
    """Derive a cross-source track identity from names alone.

    Both fields are trimmed and lower-cased, joined as ``track|artist`` and
    hashed with SHA-256, truncated to ``TRACK_IDENTITY_LENGTH`` hex chars.
    Returns None when either name is empty, in which case callers must
    match on the name pair directly.
    """
    track = _normalize(track_name)
    artist = _normalize(artist_name)
    if not track or not artist:
        return None
    digest = hashlib.sha256(f"{track}|{artist}".encode()).hexdigest()
    return digest[:TRACK_IDENTITY_LENGTH]


def content_fingerprint(raw: bytes) -> str:
    """Hex SHA-256 of an upload's raw bytes."""
    return hashlib.sha256(raw).hexdigest()
