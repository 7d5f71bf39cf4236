"""Symmetric encryption of stored secrets with AES-GCM."""

from __future__ import annotations

import base64
import binascii
import hashlib
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

NONCE_SIZE = 12


class CryptoError(Exception):
    """Raised when a value cannot be encrypted or decrypted."""


def get_encryption_key() -> bytes:
    """Derive the 32-byte AES key from the AUTH_SECRET environment variable.

    Raises RuntimeError when AUTH_SECRET is not set, since no key can be made.
    """
    secret = os.environ.get("AUTH_SECRET", "")
    if not secret:
        raise RuntimeError("AUTH_SECRET environment variable is required for encryption")
    return hashlib.sha256(secret.encode("utf-8")).digest()


def encrypt(plaintext: str) -> str:
    """Encrypt text and return base64 of nonce followed by ciphertext."""
    if plaintext == "":
        return ""
    aead = AESGCM(get_encryption_key())
    nonce = os.urandom(NONCE_SIZE)
    sealed = aead.encrypt(nonce, plaintext.encode("utf-8"), None)
    return base64.b64encode(nonce + sealed).decode("ascii")


def decrypt(ciphertext: str) -> str:
    """Decrypt a value produced by :func:`encrypt`."""
    if ciphertext == "":
        return ""
    key = get_encryption_key()
    try:
        data = base64.b64decode(ciphertext, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CryptoError(f"failed to decode ciphertext: {exc}") from exc
    if len(data) < NONCE_SIZE:
        raise CryptoError("ciphertext too short")
    nonce, body = data[:NONCE_SIZE], data[NONCE_SIZE:]
    try:
        plain = AESGCM(key).decrypt(nonce, body, None)
    except InvalidTag as exc:
        raise CryptoError("failed to decrypt: message authentication failed") from exc
    try:
        return plain.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CryptoError(f"failed to decrypt: {exc}") from exc


def encrypt_field(value: str) -> str:
    """Encrypt a stored field, keeping the original value if encryption fails."""
    try:
        return encrypt(value)
    except CryptoError:
        return value


def decrypt_field(value: str) -> str:
    """Decrypt a stored field; values that do not decrypt are returned as they are."""
    try:
        return decrypt(value)
    except CryptoError:
        return value