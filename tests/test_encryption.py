"""
Unit tests for token encryption at rest.
"""
import base64

import pytest

from calendar_link.core.exceptions import DecryptError, EncryptionConfigError
from calendar_link.utils.encryption import (
    NONCE_LENGTH,
    EncryptedToken,
    PlaintextToken,
    TokenCipher,
    get_cipher,
    reveal,
    stored_token,
)


def _flip_bit(value: str, index: int = 0, mask: int = 0x01) -> str:
    raw = bytearray(base64.b64decode(value))
    raw[index] ^= mask
    return base64.b64encode(bytes(raw)).decode("ascii")


class TestTokenCipher:
    """AES-256-GCM encrypt/decrypt behaviour."""

    def test_round_trip(self, cipher):
        ciphertext, iv = cipher.encrypt("ya29.access-token")
        assert ciphertext != "ya29.access-token"
        assert cipher.decrypt(ciphertext, iv) == "ya29.access-token"

    def test_nonce_is_fresh_per_encryption(self, cipher):
        first = cipher.encrypt("same-token")
        second = cipher.encrypt("same-token")
        assert first[1] != second[1]
        assert first[0] != second[0]
        assert len(base64.b64decode(first[1])) == NONCE_LENGTH

    # "ya29.token" encrypts to 10 bytes of ciphertext followed by the 16 byte GCM tag
    @pytest.mark.parametrize("index", [0, 5, 9, 10, 17, -1])
    @pytest.mark.parametrize("mask", [0x01, 0x80])
    def test_tampered_ciphertext_is_rejected(self, cipher, index, mask):
        ciphertext, iv = cipher.encrypt("ya29.token")
        assert len(base64.b64decode(ciphertext)) == 26
        with pytest.raises(DecryptError):
            cipher.decrypt(_flip_bit(ciphertext, index, mask), iv)

    @pytest.mark.parametrize("index", range(NONCE_LENGTH))
    def test_tampered_iv_is_rejected(self, cipher, index):
        ciphertext, iv = cipher.encrypt("ya29.token")
        with pytest.raises(DecryptError):
            cipher.decrypt(ciphertext, _flip_bit(iv, index, 0x80))

    def test_truncated_tag_is_rejected(self, cipher):
        ciphertext, iv = cipher.encrypt("ya29.token")
        truncated = base64.b64encode(base64.b64decode(ciphertext)[:-1]).decode("ascii")
        with pytest.raises(DecryptError):
            cipher.decrypt(truncated, iv)

    def test_wrong_key_is_rejected(self, cipher):
        ciphertext, iv = cipher.encrypt("token")
        other = TokenCipher(base64.b64encode(b"f" * 32).decode("ascii"))
        with pytest.raises(DecryptError):
            other.decrypt(ciphertext, iv)

    def test_garbage_input_is_rejected(self, cipher):
        with pytest.raises(DecryptError):
            cipher.decrypt("not base64!!", "also not")

    def test_short_iv_is_rejected(self, cipher):
        ciphertext, _ = cipher.encrypt("token")
        with pytest.raises(DecryptError):
            cipher.decrypt(ciphertext, base64.b64encode(b"short").decode("ascii"))

    def test_decrypt_error_code(self, cipher):
        ciphertext, iv = cipher.encrypt("token")
        with pytest.raises(DecryptError) as exc_info:
            cipher.decrypt(_flip_bit(ciphertext), iv)
        assert exc_info.value.code == "DECRYPT_ERROR"


class TestKeyConfiguration:
    """Key loading failures are configuration errors, not decrypt errors."""

    @pytest.mark.parametrize("key", [
        "",
        "not-base64-at-all!",
        base64.b64encode(b"too-short").decode("ascii"),
    ])
    def test_invalid_key(self, key):
        with pytest.raises(EncryptionConfigError) as exc_info:
            TokenCipher(key)
        assert exc_info.value.code == "CONFIG_ERROR"
        assert exc_info.value.status_code == 500

    def test_get_cipher_uses_configured_key(self, cipher):
        ciphertext, iv = get_cipher().encrypt("token")
        assert cipher.decrypt(ciphertext, iv) == "token"


class TestStoredToken:
    """Classification of (value, iv) column pairs."""

    def test_missing_value(self):
        assert stored_token(None, None) is None
        assert stored_token("", "iv") is None

    def test_legacy_plaintext(self, cipher):
        token = stored_token("legacy-token", None)
        assert token == PlaintextToken("legacy-token")
        assert reveal(token, cipher) == "legacy-token"

    def test_encrypted(self, cipher):
        ciphertext, iv = cipher.encrypt("secret")
        token = stored_token(ciphertext, iv)
        assert token == EncryptedToken(ciphertext, iv)
        assert reveal(token, cipher) == "secret"

    def test_encrypted_with_bad_ciphertext_does_not_fall_back(self, cipher):
        _, iv = cipher.encrypt("secret")
        token = stored_token("plaintext-looking-value", iv)
        with pytest.raises(DecryptError):
            reveal(token, cipher)
