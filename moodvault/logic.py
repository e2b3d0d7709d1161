# -*- coding: utf-8 -*-
"""Application logic that composes the store and the backup codec.

This module provides the public API used by the UI. It does not contain any
Textual UI code. All side effects (DB, config and backup file I/O) are
explicit and local.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple
from pathlib import Path
from datetime import datetime, timezone
import asyncio
import json
import logging
import os
import shutil
import sqlite3
import uuid

from . import db
from .backup import ImportResult, export_snapshot, import_snapshot
from .container import version_for_kdf
from .errors import EncryptionFailure, RestoreFailure
from .snapshot import Association, Category, Record, Snapshot, SnapshotStatistics

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------
# Config management (JSON on disk)
# ---------------------------------------------------------------------

APP_NAME = "moodvault"

DEFAULT_CONFIG: Dict[str, object] = {
    "kdf": "pbkdf2",
    "backup_dir": "~/moodvault-backups",
    "log_level": "INFO",
}

def _config_dir() -> Path:
    """Return the config directory path for this platform."""
    if os.name == "nt":
        base = os.environ.get("APPDATA", os.path.expanduser("~\\AppData\\Roaming"))
        return Path(base) / APP_NAME
    base = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(base) / APP_NAME

def _config_path() -> Path:
    return _config_dir() / "config.json"

def load_config() -> Dict[str, object]:
    """Load the merged configuration (defaults + file)."""
    path = _config_path()
    if not path.exists():
        save_config(DEFAULT_CONFIG)
        return dict(DEFAULT_CONFIG)
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    merged = dict(DEFAULT_CONFIG)
    merged.update(data)
    return merged

def save_config(cfg: Dict[str, object]) -> None:
    """Persist *cfg* to the JSON config file."""
    _config_dir().mkdir(parents=True, exist_ok=True)
    with _config_path().open("w", encoding="utf-8") as f:
        json.dump(cfg, f, indent=2)

def configure_logging(cfg: Optional[Dict[str, object]] = None) -> Path:
    """Send package logs to a file in the config dir; return its path."""
    cfg = cfg or load_config()
    _config_dir().mkdir(parents=True, exist_ok=True)
    log_path = _config_dir() / f"{APP_NAME}.log"
    pkg_logger = logging.getLogger(APP_NAME)
    pkg_logger.setLevel(str(cfg.get("log_level", "INFO")).upper())
    for existing in pkg_logger.handlers:
        if isinstance(existing, logging.FileHandler) and existing.baseFilename == os.path.abspath(log_path):
            return log_path
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    pkg_logger.addHandler(handler)
    return log_path


# ---------------------------------------------------------------------
# DB bridge
# ---------------------------------------------------------------------

async def init_db() -> None:
    """Initialize the SQLite database (create tables on first run)."""
    await db.init_db()


def _backup_database() -> Optional[Path]:
    """Create a timestamped copy of the SQLite database, if it exists."""
    db_path = Path(db.DB_PATH).expanduser()
    if not db_path.is_absolute():
        db_path = (Path.cwd() / db_path).resolve()
    if not db_path.exists():
        return None

    backups_dir = db_path.parent / "backups"
    backups_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    backup_path = backups_dir / f"{db_path.name}.bak-{timestamp}"
    shutil.copy2(db_path, backup_path)
    logger.info("Copied database to %s", backup_path)
    return backup_path


def _score_ok(score: object) -> bool:
    return isinstance(score, int) and not isinstance(score, bool) and 1 <= score <= 10


def _now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


# ---------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------

async def add_entry(
    score: int,
    note: Optional[str] = None,
    tag_names: Iterable[str] = (),
    timestamp_utc: Optional[int] = None,
) -> str:
    """Insert a mood entry (creating tags by name); return the new entry id."""
    if not _score_ok(score):
        raise ValueError("Mood score must be an integer from 1 to 10")
    if timestamp_utc is None:
        timestamp_utc = _now_ms()
    if timestamp_utc < 0:
        raise ValueError("Timestamp must not be negative")

    entry_id = str(uuid.uuid4())
    await db.insert_entry_row(entry_id, timestamp_utc, score, note or None)

    pairs: List[Tuple[str, str]] = []
    for name in {n.strip() for n in tag_names if n.strip()}:
        row = await db.get_tag_by_name(name)
        if row:
            tag_id = row["id"]
        else:
            tag_id = str(uuid.uuid4())
            await db.insert_tag_row(tag_id, name)
        pairs.append((entry_id, tag_id))
    await db.insert_mood_tags(pairs)
    return entry_id


async def list_entries() -> List[Tuple[str, int, int, Optional[str], str]]:
    """Return list of (id, timestamp_utc, score, note, tag names), newest first."""
    rows = await db.list_entry_rows()
    return [
        (r["id"], r["timestamp_utc"], r["mood_score"], r["note"], r["tag_names"] or "")
        for r in rows
    ]


async def delete_entry(entry_id: str) -> None:
    await db.delete_entry_row(entry_id)


# ---------------------------------------------------------------------
# Backups
# ---------------------------------------------------------------------

@dataclass
class ExportResult:
    """Written backup file plus what the UI reports back to the user."""

    path: Path
    statistics: SnapshotStatistics


async def take_snapshot() -> Snapshot:
    """Build a Snapshot of everything in the store, stamped with now."""
    entries, tags, links = await db.fetch_snapshot_rows()
    return Snapshot(
        records=[
            Record(r["id"], r["timestamp_utc"], r["mood_score"], r["note"]) for r in entries
        ],
        categories=[Category(r["id"], r["name"]) for r in tags],
        associations=[Association(r["mood_id"], r["tag_id"]) for r in links],
        export_timestamp=_now_ms(),
    )


async def export_backup(passphrase: str, directory: Optional[Path] = None) -> ExportResult:
    """Encrypt the whole store and write it to a new ``.bak`` file."""
    cfg = load_config()
    try:
        version = version_for_kdf(str(cfg.get("kdf", "pbkdf2")))
    except ValueError as exc:
        raise EncryptionFailure(f"Bad config: {exc}", phase="validate") from exc
    if directory is None:
        directory = Path(str(cfg.get("backup_dir", DEFAULT_CONFIG["backup_dir"])))
    directory = Path(directory).expanduser()

    snapshot = await take_snapshot()
    # KDF is slow by design; keep it off the event loop
    blob = await asyncio.to_thread(export_snapshot, snapshot, passphrase, version=version)

    directory.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    path = directory / f"{APP_NAME}-{stamp}.bak"
    path.write_text(blob + "\n", encoding="ascii")
    stats = snapshot.statistics()
    logger.info("Exported %d entries, %d tags to %s", stats.record_count, stats.category_count, path)
    return ExportResult(path, stats)


def _check_restorable(snapshot: Snapshot) -> None:
    """Reject entries the store's constraints would refuse."""
    for r in snapshot.records:
        if not _score_ok(r.mood_score):
            raise RestoreFailure(f"Entry {r.id!r} has mood score {r.mood_score}", phase="validate")
        if r.timestamp_utc < 0:
            raise RestoreFailure(f"Entry {r.id!r} has a negative timestamp", phase="validate")


async def import_backup(path: Path, passphrase: str) -> ImportResult:
    """Decrypt a backup file and merge it into the store."""
    # bytes, so a non-text file is reported as a corrupted container
    blob = Path(path).expanduser().read_bytes()
    result = await asyncio.to_thread(import_snapshot, blob, passphrase)

    snapshot = result.snapshot
    _check_restorable(snapshot)
    _backup_database()
    try:
        written = await db.import_snapshot_rows(
            [(r.id, r.timestamp_utc, r.mood_score, r.note) for r in snapshot.records],
            [(c.id, c.name) for c in snapshot.categories],
            [(a.mood_id, a.tag_id) for a in snapshot.associations],
        )
    except sqlite3.Error as exc:
        raise RestoreFailure(f"Store rejected backup: {exc}", phase="store") from exc
    result.imported_count = written
    logger.info(
        "Imported %d entries from %s (%d links dropped)",
        written, path, len(result.dropped_associations),
    )
    return result


async def clear_all_data() -> Optional[Path]:
    """Delete every entry and tag; return the copy made of the old database."""
    backup_path = _backup_database()
    await db.clear_all_rows()
    logger.info("Cleared all entries and tags")
    return backup_path
