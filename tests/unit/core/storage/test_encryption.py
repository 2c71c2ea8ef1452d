"""Tests for PayloadEncryptor (Fernet encryption of stored payloads)."""

from __future__ import annotations

import pytest
from cryptography.fernet import Fernet

from companion.core.storage.encryption import EncryptionError, PayloadEncryptor


@pytest.fixture
def encryptor() -> PayloadEncryptor:
    return PayloadEncryptor(PayloadEncryptor.generate_key())


class TestRoundTrip:
    def test_json_text_round_trip(self, encryptor: PayloadEncryptor):
        payload = '[{"name":"Ana","relation":"Daughter"}]'
        token = encryptor.encrypt(payload)
        assert token != payload
        assert "Ana" not in token
        assert encryptor.decrypt(token) == payload

    def test_unicode_round_trip(self, encryptor: PayloadEncryptor):
        payload = '{"unit":"°F"}'
        assert encryptor.decrypt(encryptor.encrypt(payload)) == payload

    def test_tokens_differ_per_call(self, encryptor: PayloadEncryptor):
        assert encryptor.encrypt("x") != encryptor.encrypt("x")


class TestKeyValidation:
    def test_empty_key_raises(self):
        with pytest.raises(EncryptionError, match="must not be empty"):
            PayloadEncryptor("")

    def test_whitespace_key_raises(self):
        with pytest.raises(EncryptionError, match="must not be empty"):
            PayloadEncryptor("   ")

    def test_malformed_key_raises(self):
        with pytest.raises(EncryptionError, match="Invalid encryption key"):
            PayloadEncryptor("not-a-fernet-key")

    def test_generated_key_is_valid_fernet_key(self):
        Fernet(PayloadEncryptor.generate_key().encode())


class TestDecryptFailures:
    def test_wrong_key_raises(self, encryptor: PayloadEncryptor):
        token = encryptor.encrypt("secret")
        other = PayloadEncryptor(PayloadEncryptor.generate_key())
        with pytest.raises(EncryptionError, match="wrong key"):
            other.decrypt(token)

    def test_garbage_token_raises(self, encryptor: PayloadEncryptor):
        with pytest.raises(EncryptionError):
            encryptor.decrypt("definitely-not-a-token")
