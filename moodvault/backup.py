# -*- coding: utf-8 -*-
"""Export and import of encrypted backups.

Composes the snapshot serializer, the KDF, AES-GCM and the container codec.
Both entry points are synchronous and CPU-bound; the application runs them in
a worker thread.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Union
import logging

from .container import FORMAT_VERSION, VERSION_KDFS, frame, header_aad, unframe
from .crypto import aesgcm_open, aesgcm_seal, derive_key, new_nonce, new_salt
from .errors import BackupError, EncryptionFailure
from .snapshot import Association, Snapshot, load_snapshot, serialize

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Restored snapshot plus what the UI reports back to the user."""

    snapshot: Snapshot
    imported_count: int
    dropped_associations: List[Association] = field(default_factory=list)


@contextmanager
def _phase(name: str, wrap: bool = False) -> Iterator[None]:
    """Tag BackupErrors raised inside the block with the failing phase.

    With *wrap*, any other exception becomes an EncryptionFailure.
    """
    try:
        yield
    except BackupError as exc:
        if exc.phase is None:
            exc.phase = name
        raise
    except Exception as exc:
        if not wrap:
            raise
        raise EncryptionFailure(f"{type(exc).__name__}: {exc}", phase=name) from exc


def export_snapshot(snapshot: Snapshot, passphrase: str, *, version: int = FORMAT_VERSION) -> str:
    """Serialize, encrypt and frame *snapshot*; return the base64 blob."""
    with _phase("validate", wrap=True):
        if not passphrase:
            raise ValueError("Passphrase required")
        kdf = VERSION_KDFS.get(version)
        if kdf is None:
            raise ValueError(f"Unknown format version: {version}")

    with _phase("serialize", wrap=True):
        plaintext = serialize(snapshot).encode("utf-8")

    salt = new_salt()
    nonce = new_nonce()
    with _phase("derive", wrap=True):
        key = derive_key(passphrase, salt, kdf)
    with _phase("seal", wrap=True):
        ciphertext, tag = aesgcm_seal(plaintext, key, nonce, aad=header_aad(version, salt))
    with _phase("frame", wrap=True):
        blob = frame(salt, nonce, tag, ciphertext, version=version)

    logger.debug(
        "Exported %d entries (%d plaintext bytes) as format v%d",
        snapshot.record_count, len(plaintext), version,
    )
    return blob


def import_snapshot(blob: Union[str, bytes], passphrase: str) -> ImportResult:
    """Verify, decrypt and parse *blob*.

    Raises MalformedContainer, AuthenticationFailure or SerializationFailure
    with ``phase`` set to the step that failed. A wrong passphrase and a
    tampered blob are reported identically.
    """
    if not passphrase:
        raise ValueError("Passphrase required")

    with _phase("unframe"):
        container = unframe(blob)
    with _phase("derive"):
        key = derive_key(passphrase, container.salt, container.kdf)
    with _phase("open"):
        plaintext = aesgcm_open(
            container.ciphertext, key, container.nonce, container.tag, aad=container.aad
        )
    with _phase("deserialize"):
        snapshot, dropped = load_snapshot(plaintext)

    logger.debug("Imported %d entries from format v%d", snapshot.record_count, container.version)
    return ImportResult(snapshot, snapshot.record_count, dropped)
