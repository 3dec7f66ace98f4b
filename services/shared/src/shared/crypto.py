"""Symmetric encryption for stored Spotify refresh tokens."""

from cryptography.fernet import Fernet, InvalidToken


class TokenDecryptionError(ValueError):
    """A stored token could not be decrypted with the configured key."""


class TokenEncryptor:
    """Fernet wrapper: refresh tokens are only ever persisted encrypted.

    Fernet uses a random IV, so encrypting the same token twice yields
    different ciphertexts.
    """

    def __init__(self, key: str) -> None:
        self._fernet = Fernet(key.encode())

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken as exc:
            raise TokenDecryptionError("Stored token cannot be decrypted with the configured key") from exc
