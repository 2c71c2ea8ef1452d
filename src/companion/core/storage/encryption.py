"""Fernet-based encryption for record store payloads at rest.

The record store serialises each collection to compact JSON; when an
encryption key is configured the JSON text is wrapped in a Fernet token
before it reaches SQLite. Photos and reports live in the same store, so
this also covers blob payloads.
"""

from __future__ import annotations

import logging

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when encryption/decryption fails."""


class PayloadEncryptor:
    """Encrypts and decrypts serialised payload text with Fernet.

    Usage::

        encryptor = PayloadEncryptor(key=PayloadEncryptor.generate_key())
        token = encryptor.encrypt('[{"name": "Ana"}]')
        encryptor.decrypt(token)  # '[{"name": "Ana"}]'
    """

    def __init__(self, key: str) -> None:
        """Initialize with a Fernet key.

        Raises:
            EncryptionError: If the key is empty or invalid.
        """
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.encode("utf-8"))
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    def encrypt(self, payload: str) -> str:
        """Encrypt payload text to a Fernet token string."""
        return self._fernet.encrypt(payload.encode("utf-8")).decode("utf-8")

    def decrypt(self, token: str) -> str:
        """Decrypt a Fernet token string back to payload text.

        Raises:
            EncryptionError: If the token is invalid or was made with another key.
        """
        try:
            return self._fernet.decrypt(token.encode("utf-8")).decode("utf-8")
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc

    @staticmethod
    def generate_key() -> str:
        """Generate a new URL-safe base64-encoded 32-byte key."""
        return Fernet.generate_key().decode("utf-8")
