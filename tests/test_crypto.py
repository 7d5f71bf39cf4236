import base64

import pytest

from repohub.crypto import (
    CryptoError,
    decrypt,
    decrypt_field,
    encrypt,
    encrypt_field,
    get_encryption_key,
)


@pytest.fixture
def secret_env(monkeypatch):
    monkeypatch.setenv("AUTH_SECRET", "secret")


def test_key_is_32_bytes_and_stable(secret_env):
    first = get_encryption_key()
    assert len(first) == 32
    assert get_encryption_key() == first


def test_key_depends_on_secret(monkeypatch):
    monkeypatch.setenv("AUTH_SECRET", "secret")
    first = get_encryption_key()
    monkeypatch.setenv("AUTH_SECRET", "token")
    assert get_encryption_key() != first
    assert len(get_encryption_key()) == 32


def test_missing_secret_raises(monkeypatch):
    monkeypatch.delenv("AUTH_SECRET", raising=False)
    with pytest.raises(RuntimeError):
        get_encryption_key()


def test_round_trip(secret_env):
    message = "hello, wörld"
    assert decrypt(encrypt(message)) == message


def test_empty_values_pass_through(monkeypatch):
    monkeypatch.delenv("AUTH_SECRET", raising=False)
    assert encrypt("") == ""
    assert decrypt("") == ""


def test_nonce_makes_ciphertexts_differ(secret_env):
    a = encrypt("same")
    b = encrypt("same")
    assert a != b
    assert decrypt(a) == decrypt(b) == "same"


def test_ciphertext_layout(secret_env):
    raw = base64.b64decode(encrypt("abc"))
    # 12-byte nonce, 3 bytes of payload, 16-byte tag
    assert len(raw) == 12 + 3 + 16


def test_bad_base64_raises(secret_env):
    with pytest.raises(CryptoError):
        decrypt("not base64!!")


def test_too_short_raises(secret_env):
    short = base64.b64encode(b"abc").decode()
    with pytest.raises(CryptoError, match="too short"):
        decrypt(short)


def test_wrong_key_raises(monkeypatch):
    monkeypatch.setenv("AUTH_SECRET", "secret")
    sealed = encrypt("data")
    monkeypatch.setenv("AUTH_SECRET", "password")
    with pytest.raises(CryptoError):
        decrypt(sealed)


def test_field_helpers_round_trip(secret_env):
    stored = encrypt_field("value")
    assert stored != "value"
    assert decrypt_field(stored) == "value"


def test_decrypt_field_returns_plain_value(secret_env):
    assert decrypt_field("plain text") == "plain text"