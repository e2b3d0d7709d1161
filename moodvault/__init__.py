# -*- coding: utf-8 -*-
"""MoodVault package.

Modules:
    errors:    Typed backup errors with user-facing messages.
    crypto:    KDFs and AES-256-GCM seal/open helpers.
    container: Versioned base64 framing of encrypted backups.
    snapshot:  Snapshot model + canonical JSON (de)serialization.
    backup:    Export/import orchestration of the above.
    db:        SQLite schema + async data access.
    logic:     App logic that composes db + backup, config and logging.
    ui:        Textual-based UI (screens, modals, app).
"""

__all__ = ["errors", "crypto", "container", "snapshot", "backup", "db", "logic", "ui"]
