# -*- coding: utf-8 -*-
"""Backup container framing.

Wire format (base64 text)::

    version(1) | salt(16) | nonce(12) | tag(16) | ciphertext(N)

The version byte selects the KDF used to derive the key; every version shares
the same field lengths.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Union
import base64
import binascii
import logging

from .crypto import NONCE_LEN, SALT_LEN, TAG_LEN
from .errors import MalformedContainer

logger = logging.getLogger(__name__)

FORMAT_VERSION = 0x01

VERSION_KDFS: Dict[int, str] = {
    0x01: "pbkdf2",
    0x02: "scrypt",
    0x03: "argon2id",
}

HEADER_LEN = 1 + SALT_LEN + NONCE_LEN + TAG_LEN


def version_for_kdf(kdf: str) -> int:
    """Return the format version byte that uses *kdf*."""
    for version, name in VERSION_KDFS.items():
        if name == kdf:
            return version
    raise ValueError(f"Unknown KDF: {kdf!r}")


@dataclass(frozen=True)
class EncryptedContainer:
    """Parsed fields of a backup blob."""

    version: int
    salt: bytes
    nonce: bytes
    tag: bytes
    ciphertext: bytes

    @property
    def kdf(self) -> str:
        return VERSION_KDFS[self.version]

    @property
    def aad(self) -> bytes:
        """Header bytes bound to the ciphertext as associated data."""
        return header_aad(self.version, self.salt)


def header_aad(version: int, salt: bytes) -> bytes:
    return bytes([version]) + salt


def frame(
    salt: bytes,
    nonce: bytes,
    tag: bytes,
    ciphertext: bytes,
    version: int = FORMAT_VERSION,
) -> str:
    """Concatenate the fields in wire order and base64-encode them."""
    if version not in VERSION_KDFS:
        raise ValueError(f"Unknown format version: {version}")
    if len(salt) != SALT_LEN:
        raise ValueError(f"Salt must be {SALT_LEN} bytes, got {len(salt)}")
    if len(nonce) != NONCE_LEN:
        raise ValueError(f"Nonce must be {NONCE_LEN} bytes, got {len(nonce)}")
    if len(tag) != TAG_LEN:
        raise ValueError(f"Tag must be {TAG_LEN} bytes, got {len(tag)}")
    raw = bytes([version]) + salt + nonce + tag + ciphertext
    return base64.b64encode(raw).decode("ascii")


def unframe(blob: Union[str, bytes]) -> EncryptedContainer:
    """Decode *blob* and split it into its fields by their fixed lengths.

    Whitespace anywhere in the text is ignored, so line-wrapped copies of a
    backup still decode.
    """
    if isinstance(blob, str):
        try:
            blob = blob.encode("ascii")
        except UnicodeEncodeError as exc:
            raise MalformedContainer("Backup is not base64 text") from exc
    blob = b"".join(blob.split())

    try:
        raw = base64.b64decode(blob, validate=True)
    except binascii.Error as exc:
        raise MalformedContainer("Backup is not valid base64") from exc

    if len(raw) < HEADER_LEN:
        raise MalformedContainer(
            f"Backup too short: {len(raw)} bytes, need at least {HEADER_LEN}"
        )

    version = raw[0]
    if version not in VERSION_KDFS:
        raise MalformedContainer(f"Unsupported backup format version: {version}")

    pos = 1
    salt = raw[pos:pos + SALT_LEN]
    pos += SALT_LEN
    nonce = raw[pos:pos + NONCE_LEN]
    pos += NONCE_LEN
    tag = raw[pos:pos + TAG_LEN]
    pos += TAG_LEN
    ciphertext = raw[pos:]

    logger.debug("Unframed backup v%d with %d ciphertext bytes", version, len(ciphertext))
    return EncryptedContainer(version, salt, nonce, tag, ciphertext)
