# -*- coding: utf-8 -*-
"""Typed errors raised by the backup codec.

Each error carries a short ``user_message`` that the UI may show verbatim, and
an optional ``phase`` naming the export/import step that failed.
"""
from __future__ import annotations

from typing import Optional


class BackupError(Exception):
    """Base class for every failure surfaced by the backup codec."""

    user_message = "Backup operation failed."

    def __init__(self, message: str, phase: Optional[str] = None) -> None:
        super().__init__(message)
        self.phase = phase

    def __str__(self) -> str:
        base = super().__str__()
        if self.phase:
            return f"[{self.phase}] {base}"
        return base


class MalformedContainer(BackupError):
    """Blob is not valid base64, too short, or of an unknown format version."""

    user_message = "Corrupted backup file."


class AuthenticationFailure(BackupError):
    """Tag verification failed: wrong passphrase or tampered data."""

    user_message = "Wrong passcode or corrupted file."


class SerializationFailure(BackupError):
    """Decrypted payload is not the expected JSON shape."""

    user_message = "Backup contents could not be read."


class EncryptionFailure(BackupError):
    """Unexpected failure while producing a backup."""

    user_message = "Backup could not be created."


class RestoreFailure(BackupError):
    """Decrypted backup holds entries the local store cannot accept."""

    user_message = "Backup entries could not be restored."
