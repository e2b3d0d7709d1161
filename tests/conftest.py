"""Shared fixtures for MoodVault tests."""

import pytest

from moodvault import db
from moodvault.snapshot import Association, Category, Record, Snapshot


@pytest.fixture
def sample_snapshot():
    return Snapshot(
        records=[
            Record("m1", 1700000000000, 7, "ok"),
            Record("m2", 1700000360000, 3, None),
            Record("m3", 1700086400000, 9, "sunny walk 🌞"),
        ],
        categories=[Category("t1", "work"), Category("t2", "family")],
        associations=[Association("m1", "t1"), Association("m3", "t2"), Association("m3", "t1")],
        export_timestamp=1700100000000,
    )


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Point the store and the config dir at a temporary directory."""
    path = tmp_path / "journal.sqlite3"
    monkeypatch.setattr(db, "DB_PATH", str(path))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    return path
