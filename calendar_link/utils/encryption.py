# calendar_link/utils/encryption.py
"""
AES-256-GCM encryption of OAuth tokens at rest.

Ciphertext and nonce are stored as base64 text next to each other; the key
lives only in process configuration (TOKEN_ENCRYPTION_KEY).
"""
import base64
import binascii
import os
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from calendar_link.config.settings import get_settings
from calendar_link.core.exceptions import DecryptError, EncryptionConfigError

KEY_LENGTH = 32  # 256 bits for AES-256
NONCE_LENGTH = 12  # 96 bits for GCM


class TokenCipher:
    """Encrypts and decrypts token strings with a fixed process-wide key."""

    def __init__(self, base64_key: str):
        self._aesgcm = AESGCM(self._load_key(base64_key))

    @staticmethod
    def _load_key(base64_key: str) -> bytes:
        if not base64_key:
            raise EncryptionConfigError("TOKEN_ENCRYPTION_KEY is not set")
        try:
            key = base64.b64decode(base64_key, validate=True)
        except (binascii.Error, ValueError):
            raise EncryptionConfigError("TOKEN_ENCRYPTION_KEY is not valid base64")
        if len(key) != KEY_LENGTH:
            raise EncryptionConfigError(
                f"TOKEN_ENCRYPTION_KEY must decode to {KEY_LENGTH} bytes, got {len(key)}"
            )
        return key

    def encrypt(self, plaintext: str) -> Tuple[str, str]:
        """Encrypt a token string. Returns (ciphertext, iv), both base64."""
        nonce = os.urandom(NONCE_LENGTH)
        ciphertext = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        return (
            base64.b64encode(ciphertext).decode("ascii"),
            base64.b64encode(nonce).decode("ascii"),
        )

    def decrypt(self, ciphertext: str, iv: str) -> str:
        """Decrypt a token. Raises DecryptError if it does not authenticate."""
        try:
            nonce = base64.b64decode(iv, validate=True)
            data = base64.b64decode(ciphertext, validate=True)
        except (binascii.Error, ValueError, TypeError):
            raise DecryptError()
        if len(nonce) != NONCE_LENGTH:
            raise DecryptError()

        try:
            plaintext = self._aesgcm.decrypt(nonce, data, None)
        except InvalidTag:
            raise DecryptError()

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise DecryptError()


def get_cipher() -> TokenCipher:
    """Get a cipher bound to the configured key"""
    settings = get_settings()
    return TokenCipher(settings.TOKEN_ENCRYPTION_KEY)


# ============================================================================
# Stored token representation
# ============================================================================

@dataclass(frozen=True)
class PlaintextToken:
    """Row written before encryption was introduced (no IV stored)."""
    value: str


@dataclass(frozen=True)
class EncryptedToken:
    ciphertext: str
    iv: str


StoredToken = Union[PlaintextToken, EncryptedToken]


def stored_token(value: Optional[str], iv: Optional[str]) -> Optional[StoredToken]:
    """Classify a (value, iv) column pair once, at read time."""
    if not value:
        return None
    if not iv:
        return PlaintextToken(value)
    return EncryptedToken(value, iv)


def reveal(token: StoredToken, cipher: TokenCipher) -> str:
    """Return the usable token string."""
    if isinstance(token, PlaintextToken):
        return token.value
    return cipher.decrypt(token.ciphertext, token.iv)
