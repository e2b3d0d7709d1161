# -*- coding: utf-8 -*-
"""Crypto helpers for MoodVault backups.

This module encapsulates *stateless* cryptographic helpers: passphrase key
derivation and AES-256-GCM sealing. It does **not** perform any I/O and never
generates nonces on its own inside ``aesgcm_seal``; callers pass them in.
"""
from __future__ import annotations

from typing import Callable, Dict, Optional, Tuple
import secrets

from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .errors import AuthenticationFailure

# ---------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------

KEY_LEN = 32
SALT_LEN = 16
NONCE_LEN = 12
TAG_LEN = 16

PBKDF2_ITERATIONS = 100_000

SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1

ARGON2_TIME_COST = 3
ARGON2_MEMORY_COST = 65_536  # KiB
ARGON2_PARALLELISM = 4


# ---------------------------------------------------------------------
# Random material
# ---------------------------------------------------------------------

def new_salt() -> bytes:
    """Return a fresh random salt."""
    return secrets.token_bytes(SALT_LEN)

def new_nonce() -> bytes:
    """Return a fresh random AES-GCM nonce."""
    return secrets.token_bytes(NONCE_LEN)


# ---------------------------------------------------------------------
# KDFs
# ---------------------------------------------------------------------

def pbkdf2_kdf(
    passphrase: str,
    salt: bytes,
    length: int = KEY_LEN,
    iterations: int = PBKDF2_ITERATIONS,
) -> bytes:
    """Derive a key from a passphrase using PBKDF2-HMAC-SHA256."""
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=length, salt=salt, iterations=iterations)
    return kdf.derive(passphrase.encode("utf-8"))

def scrypt_kdf(passphrase: str, salt: bytes, length: int = KEY_LEN) -> bytes:
    """Derive a key from a passphrase using scrypt."""
    kdf = Scrypt(salt=salt, length=length, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(passphrase.encode("utf-8"))

def argon2_kdf(passphrase: str, salt: bytes, length: int = KEY_LEN) -> bytes:
    """Derive a key from a passphrase using Argon2id."""
    return hash_secret_raw(
        secret=passphrase.encode("utf-8"),
        salt=salt,
        time_cost=ARGON2_TIME_COST,
        memory_cost=ARGON2_MEMORY_COST,
        parallelism=ARGON2_PARALLELISM,
        hash_len=length,
        type=Type.ID,
    )


KDFS: Dict[str, Callable[[str, bytes], bytes]] = {
    "pbkdf2": pbkdf2_kdf,
    "scrypt": scrypt_kdf,
    "argon2id": argon2_kdf,
}


def derive_key(passphrase: str, salt: bytes, kdf: str = "pbkdf2") -> bytes:
    """Stretch *passphrase* + *salt* into a KEY_LEN-byte key.

    Deterministic: the same passphrase, salt and KDF always give the same key.
    """
    if not salt:
        raise ValueError("Salt must not be empty")
    if not passphrase:
        raise ValueError("Passphrase required")
    try:
        fn = KDFS[kdf]
    except KeyError as exc:
        raise ValueError(f"Unknown KDF: {kdf!r}") from exc
    return fn(passphrase, salt)


# ---------------------------------------------------------------------
# AEAD helpers
# ---------------------------------------------------------------------

def _check_key_nonce(key: bytes, nonce: bytes) -> None:
    if len(key) != KEY_LEN:
        raise ValueError(f"Key must be {KEY_LEN} bytes, got {len(key)}")
    if len(nonce) != NONCE_LEN:
        raise ValueError(f"Nonce must be {NONCE_LEN} bytes, got {len(nonce)}")

def aesgcm_seal(
    plaintext: bytes,
    key: bytes,
    nonce: bytes,
    aad: Optional[bytes] = None,
) -> Tuple[bytes, bytes]:
    """Encrypt *plaintext* with AES-256-GCM; return (ciphertext, tag)."""
    _check_key_nonce(key, nonce)
    sealed = AESGCM(key).encrypt(nonce, plaintext, aad)
    return sealed[:-TAG_LEN], sealed[-TAG_LEN:]

def aesgcm_open(
    ciphertext: bytes,
    key: bytes,
    nonce: bytes,
    tag: bytes,
    aad: Optional[bytes] = None,
) -> bytes:
    """Verify *tag* and decrypt *ciphertext*; return plaintext.

    Raises AuthenticationFailure when the tag does not match. The comparison
    happens inside OpenSSL in constant time.
    """
    _check_key_nonce(key, nonce)
    if len(tag) != TAG_LEN:
        raise AuthenticationFailure(f"Tag must be {TAG_LEN} bytes, got {len(tag)}")
    try:
        return AESGCM(key).decrypt(nonce, ciphertext + tag, aad)
    except InvalidTag as exc:
        raise AuthenticationFailure("Authentication tag mismatch") from exc
