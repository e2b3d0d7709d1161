# -*- coding: utf-8 -*-
"""SQLite schema and async data access for MoodVault."""
from __future__ import annotations

from typing import Iterable, List, Optional, Tuple
import os
import aiosqlite

DB_PATH = os.environ.get("MOODVAULT_DB", "mood_journal.sqlite3")


# ---------------------------------------------------------------------
# Base schema (new installs)
# ---------------------------------------------------------------------

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS mood_entries (
    id              TEXT PRIMARY KEY,
    timestamp_utc   INTEGER NOT NULL,
    mood_score      INTEGER CHECK (mood_score BETWEEN 1 AND 10),
    note            TEXT
);

CREATE TABLE IF NOT EXISTS tags (
    id              TEXT PRIMARY KEY,
    name            TEXT UNIQUE NOT NULL
);

CREATE TABLE IF NOT EXISTS mood_tags (
    mood_id         TEXT REFERENCES mood_entries(id) ON DELETE CASCADE,
    tag_id          TEXT REFERENCES tags(id) ON DELETE CASCADE,
    PRIMARY KEY (mood_id, tag_id)
);

CREATE INDEX IF NOT EXISTS idx_entries_timestamp ON mood_entries(timestamp_utc);
"""


# ---------------------------------------------------------------------
# Migrations (existing installs)
# ---------------------------------------------------------------------

async def _column_exists(db: aiosqlite.Connection, table: str, column: str) -> bool:
    """Return True if `column` is present in `table`."""
    cur = await db.execute(f"PRAGMA table_info({table})")
    rows = await cur.fetchall()
    await cur.close()
    for r in rows:
        # PRAGMA table_info columns: cid, name, type, notnull, default_value, pk
        if len(r) >= 2 and r[1] == column:
            return True
    return False


async def migrate_db() -> None:
    """Idempotent migrations for legacy DBs that predate entry notes."""
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute("PRAGMA foreign_keys = ON;")
        if not await _column_exists(db, "mood_entries", "note"):
            await db.execute("ALTER TABLE mood_entries ADD COLUMN note TEXT;")
            await db.commit()


# ---------------------------------------------------------------------
# Connection / initialization
# ---------------------------------------------------------------------

async def init_db() -> None:
    """Create tables if they don't exist and run lightweight migrations."""
    async with aiosqlite.connect(DB_PATH) as db:
        await db.executescript(SCHEMA_SQL)
        await db.commit()
    await migrate_db()


# ---------------------------------------------------------------------
# Entries and tags
# ---------------------------------------------------------------------

async def insert_entry_row(
    entry_id: str,
    timestamp_utc: int,
    mood_score: int,
    note: Optional[str] = None,
) -> None:
    """Insert a mood entry row."""
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            """
            INSERT INTO mood_entries (id, timestamp_utc, mood_score, note)
            VALUES (?, ?, ?, ?)
            """,
            (entry_id, timestamp_utc, mood_score, note),
        )
        await db.commit()


async def get_tag_by_name(name: str):
    """Fetch a tag row by *name*; returns Row or None."""
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        cur = await db.execute("SELECT id, name FROM tags WHERE name = ?", (name,))
        row = await cur.fetchone()
        await cur.close()
        return row


async def insert_tag_row(tag_id: str, name: str) -> None:
    """Insert a tag row."""
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute("INSERT INTO tags (id, name) VALUES (?, ?)", (tag_id, name))
        await db.commit()


async def insert_mood_tags(pairs: Iterable[Tuple[str, str]]) -> None:
    """Bulk insert (mood_id, tag_id) link rows."""
    pairs = list(pairs)
    if not pairs:
        return
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute("PRAGMA foreign_keys = ON;")
        await db.executemany(
            "INSERT OR IGNORE INTO mood_tags (mood_id, tag_id) VALUES (?, ?)",
            pairs,
        )
        await db.commit()


async def list_entry_rows():
    """Return entry rows with their comma-joined tag names, newest first."""
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        cur = await db.execute(
            """
            SELECT e.id,
                   e.timestamp_utc,
                   e.mood_score,
                   e.note,
                   GROUP_CONCAT(t.name, ', ') AS tag_names
              FROM mood_entries e
              LEFT JOIN mood_tags mt ON mt.mood_id = e.id
              LEFT JOIN tags t ON t.id = mt.tag_id
             GROUP BY e.id
             ORDER BY e.timestamp_utc DESC
            """
        )
        rows = await cur.fetchall()
        await cur.close()
        return rows


async def delete_entry_row(entry_id: str) -> None:
    """Delete an entry; its tag links are removed via FK cascade."""
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute("PRAGMA foreign_keys = ON;")
        await db.execute("DELETE FROM mood_entries WHERE id = ?", (entry_id,))
        await db.commit()


async def clear_all_rows() -> None:
    """Delete every entry, tag and link."""
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute("DELETE FROM mood_tags")
        await db.execute("DELETE FROM mood_entries")
        await db.execute("DELETE FROM tags")
        await db.commit()


# ---------------------------------------------------------------------
# Backup snapshot I/O
# ---------------------------------------------------------------------

async def fetch_snapshot_rows() -> Tuple[List[aiosqlite.Row], List[aiosqlite.Row], List[aiosqlite.Row]]:
    """Return (entries, tags, links) rows for a full backup."""
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        out = []
        for sql in (
            "SELECT id, timestamp_utc, mood_score, note FROM mood_entries ORDER BY timestamp_utc",
            "SELECT id, name FROM tags ORDER BY name",
            "SELECT mood_id, tag_id FROM mood_tags ORDER BY mood_id, tag_id",
        ):
            cur = await db.execute(sql)
            out.append(list(await cur.fetchall()))
            await cur.close()
        return out[0], out[1], out[2]


async def import_snapshot_rows(
    entries: Iterable[Tuple[str, int, int, Optional[str]]],
    tags: Iterable[Tuple[str, str]],
    links: Iterable[Tuple[str, str]],
) -> int:
    """Write a restored snapshot in one transaction; return entries written.

    Existing tags and links are kept; entries with the same id are replaced.
    An incoming tag whose name already exists under another id is merged
    into the existing tag.
    """
    count = 0
    tags = list(tags)
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute("PRAGMA foreign_keys = ON;")
        try:
            await db.executemany(
                "INSERT OR IGNORE INTO tags (id, name) VALUES (?, ?)",
                tags,
            )
            tag_ids = {}
            for tag_id, name in tags:
                cur = await db.execute("SELECT id FROM tags WHERE name = ?", (name,))
                row = await cur.fetchone()
                await cur.close()
                if row is not None:
                    tag_ids[tag_id] = row[0]
            for entry in entries:
                # REPLACE deletes the old row first, which would cascade to its links
                await db.execute(
                    """
                    INSERT INTO mood_entries (id, timestamp_utc, mood_score, note)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        timestamp_utc = excluded.timestamp_utc,
                        mood_score = excluded.mood_score,
                        note = excluded.note
                    """,
                    entry,
                )
                count += 1
            await db.executemany(
                "INSERT OR IGNORE INTO mood_tags (mood_id, tag_id) VALUES (?, ?)",
                [(mood_id, tag_ids.get(tag_id, tag_id)) for mood_id, tag_id in links],
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
    return count
