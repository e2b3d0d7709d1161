import json
import logging

import pytest

from moodvault.errors import SerializationFailure
from moodvault.snapshot import (
    Association,
    Category,
    Record,
    Snapshot,
    deserialize,
    load_snapshot,
    serialize,
)


def test_serialize_uses_stable_keys_and_compact_sorted_json(sample_snapshot):
    text = serialize(sample_snapshot)
    payload = json.loads(text)
    assert list(payload) == sorted(payload)
    assert set(payload) == {"export_timestamp", "mood_entries", "mood_tags", "tags", "version"}
    assert payload["mood_entries"][0] == {
        "id": "m1", "mood_score": 7, "note": "ok", "timestamp_utc": 1700000000000,
    }
    assert payload["tags"][1] == {"id": "t2", "name": "family"}
    assert payload["mood_tags"][0] == {"mood_id": "m1", "tag_id": "t1"}
    assert ", " not in text and ": " not in text


def test_serialize_keeps_unicode_unescaped(sample_snapshot):
    text = serialize(sample_snapshot)
    assert "🌞" in text
    assert "\\u" not in text


def test_deserialize_restores_equal_snapshot(sample_snapshot):
    assert deserialize(serialize(sample_snapshot)) == sample_snapshot


def test_deserialize_accepts_bytes(sample_snapshot):
    assert deserialize(serialize(sample_snapshot).encode("utf-8")) == sample_snapshot


def test_empty_snapshot():
    assert deserialize(serialize(Snapshot())) == Snapshot()


def test_mood_tags_may_be_absent():
    snap = deserialize('{"mood_entries": [], "tags": []}')
    assert snap.associations == []
    assert snap.version == "1.0"


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        "[1, 2]",
        '{"tags": []}',
        '{"mood_entries": {}, "tags": []}',
        '{"mood_entries": [1], "tags": []}',
        '{"mood_entries": [{"timestamp_utc": 1, "mood_score": 5}], "tags": []}',
        '{"mood_entries": [{"id": "a", "mood_score": 5}], "tags": []}',
        '{"mood_entries": [{"id": "a", "timestamp_utc": 1}], "tags": []}',
        '{"mood_entries": [{"id": "a", "timestamp_utc": "1", "mood_score": 5}], "tags": []}',
        '{"mood_entries": [{"id": "a", "timestamp_utc": 1, "mood_score": true}], "tags": []}',
        '{"mood_entries": [], "tags": [{"id": "t"}]}',
        '{"mood_entries": [], "tags": [{"name": "x"}]}',
        '{"mood_entries": [], "tags": [], "mood_tags": [{"mood_id": "m"}]}',
    ],
)
def test_deserialize_rejects_bad_payloads(text):
    with pytest.raises(SerializationFailure):
        deserialize(text)


def test_deserialize_rejects_invalid_utf8():
    with pytest.raises(SerializationFailure):
        deserialize(b"\xff\xfe{}")


def test_dangling_associations_are_dropped_and_reported(caplog):
    snap = Snapshot(
        records=[Record("m1", 1, 5)],
        categories=[Category("t1", "work")],
        associations=[
            Association("m1", "t1"),
            Association("m1", "gone"),
            Association("ghost", "t1"),
        ],
    )
    with caplog.at_level(logging.WARNING, logger="moodvault.snapshot"):
        restored, dropped = load_snapshot(serialize(snap))
    assert restored.associations == [Association("m1", "t1")]
    assert dropped == [Association("m1", "gone"), Association("ghost", "t1")]
    assert "Dropping 2" in caplog.text


def test_duplicate_tags_and_links_keep_first():
    text = json.dumps({
        "mood_entries": [{"id": "m1", "timestamp_utc": 1, "mood_score": 5}],
        "tags": [{"id": "t1", "name": "a"}, {"id": "t1", "name": "b"}],
        "mood_tags": [{"mood_id": "m1", "tag_id": "t1"}, {"mood_id": "m1", "tag_id": "t1"}],
    })
    snap = deserialize(text)
    assert snap.categories == [Category("t1", "a")]
    assert snap.associations == [Association("m1", "t1")]


def test_statistics(sample_snapshot):
    stats = sample_snapshot.statistics()
    assert stats.record_count == 3
    assert stats.category_count == 2
    assert stats.association_count == 3
    assert stats.first_timestamp == 1700000000000
    assert stats.last_timestamp == 1700086400000
    assert Snapshot().statistics().first_timestamp is None
