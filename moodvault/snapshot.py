# -*- coding: utf-8 -*-
"""Snapshot model and canonical JSON (de)serialization.

A snapshot is everything a backup carries: mood entries, tags and the links
between them. Key names in the JSON payload are part of the backup format.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union
import json
import logging

from .errors import SerializationFailure

logger = logging.getLogger(__name__)

PAYLOAD_VERSION = "1.0"


# ---------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------

@dataclass
class Record:
    """One mood entry."""

    id: str
    timestamp_utc: int
    mood_score: int
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp_utc": self.timestamp_utc,
            "mood_score": self.mood_score,
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Record":
        return cls(
            id=_require(data, "id", str, "mood entry"),
            timestamp_utc=_require(data, "timestamp_utc", int, "mood entry"),
            mood_score=_require(data, "mood_score", int, "mood entry"),
            note=_optional(data, "note", str, "mood entry"),
        )


@dataclass
class Category:
    """A tag that entries can be linked to."""

    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(
            id=_require(data, "id", str, "tag"),
            name=_require(data, "name", str, "tag"),
        )


@dataclass(frozen=True)
class Association:
    """Link between a mood entry and a tag."""

    mood_id: str
    tag_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"mood_id": self.mood_id, "tag_id": self.tag_id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Association":
        return cls(
            mood_id=_require(data, "mood_id", str, "mood tag"),
            tag_id=_require(data, "tag_id", str, "mood tag"),
        )


@dataclass
class SnapshotStatistics:
    """Counts and date range for UI feedback."""

    record_count: int
    category_count: int
    association_count: int
    first_timestamp: Optional[int] = None
    last_timestamp: Optional[int] = None


@dataclass
class Snapshot:
    """All records, categories and associations of one backup."""

    records: List[Record] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    associations: List[Association] = field(default_factory=list)
    export_timestamp: Optional[int] = None
    version: str = PAYLOAD_VERSION

    @property
    def record_count(self) -> int:
        return len(self.records)

    def statistics(self) -> SnapshotStatistics:
        stamps = sorted(r.timestamp_utc for r in self.records)
        return SnapshotStatistics(
            record_count=len(self.records),
            category_count=len(self.categories),
            association_count=len(self.associations),
            first_timestamp=stamps[0] if stamps else None,
            last_timestamp=stamps[-1] if stamps else None,
        )

    def dangling_associations(self) -> List[Association]:
        """Return associations whose record or category is not in this snapshot."""
        record_ids = {r.id for r in self.records}
        category_ids = {c.id for c in self.categories}
        return [
            a for a in self.associations
            if a.mood_id not in record_ids or a.tag_id not in category_ids
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mood_entries": [r.to_dict() for r in self.records],
            "tags": [c.to_dict() for c in self.categories],
            "mood_tags": [a.to_dict() for a in self.associations],
            "export_timestamp": self.export_timestamp,
            "version": self.version,
        }


# ---------------------------------------------------------------------
# Field validation
# ---------------------------------------------------------------------

def _type_ok(value: Any, kind: type) -> bool:
    # bool is an int subclass; JSON true/false is never a valid number here
    if kind is int and isinstance(value, bool):
        return False
    return isinstance(value, kind)

def _require(data: Dict[str, Any], key: str, kind: type, what: str) -> Any:
    if key not in data or data[key] is None:
        raise SerializationFailure(f"{what} is missing required field {key!r}")
    value = data[key]
    if not _type_ok(value, kind):
        raise SerializationFailure(
            f"{what} field {key!r} must be {kind.__name__}, got {type(value).__name__}"
        )
    return value

def _optional(data: Dict[str, Any], key: str, kind: type, what: str) -> Any:
    value = data.get(key)
    if value is not None and not _type_ok(value, kind):
        raise SerializationFailure(
            f"{what} field {key!r} must be {kind.__name__}, got {type(value).__name__}"
        )
    return value

def _objects(payload: Dict[str, Any], key: str, required: bool = True) -> List[Dict[str, Any]]:
    if key not in payload:
        if required:
            raise SerializationFailure(f"Backup payload is missing {key!r}")
        return []
    items = payload[key]
    if not isinstance(items, list):
        raise SerializationFailure(f"Backup payload field {key!r} must be an array")
    for item in items:
        if not isinstance(item, dict):
            raise SerializationFailure(f"Backup payload field {key!r} must contain objects")
    return items


# ---------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------

def serialize(snapshot: Snapshot) -> str:
    """Return canonical JSON text for *snapshot*."""
    return json.dumps(
        snapshot.to_dict(),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def load_snapshot(text: Union[str, bytes]) -> Tuple[Snapshot, List[Association]]:
    """Parse *text* into a Snapshot; return it with the dropped associations.

    Associations pointing at an entry or tag absent from the payload are
    dropped and logged rather than treated as an error.
    """
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SerializationFailure("Backup payload is not valid UTF-8") from exc

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SerializationFailure(f"Backup payload is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise SerializationFailure("Backup payload must be a JSON object")

    records = [Record.from_dict(d) for d in _objects(payload, "mood_entries")]

    categories: List[Category] = []
    seen_categories = set()
    for d in _objects(payload, "tags"):
        category = Category.from_dict(d)
        if category.id in seen_categories:
            logger.warning("Ignoring duplicate tag id %r in backup", category.id)
            continue
        seen_categories.add(category.id)
        categories.append(category)

    associations: List[Association] = []
    seen_associations = set()
    for d in _objects(payload, "mood_tags", required=False):
        association = Association.from_dict(d)
        if association in seen_associations:
            continue
        seen_associations.add(association)
        associations.append(association)

    export_timestamp = _optional(payload, "export_timestamp", int, "backup payload")
    version = _optional(payload, "version", str, "backup payload") or PAYLOAD_VERSION

    snapshot = Snapshot(records, categories, associations, export_timestamp, version)
    dropped = snapshot.dangling_associations()
    if dropped:
        logger.warning("Dropping %d mood tag link(s) with unknown entry or tag", len(dropped))
        skip = set(dropped)
        snapshot.associations = [a for a in associations if a not in skip]
    return snapshot, dropped


def deserialize(text: Union[str, bytes]) -> Snapshot:
    """Parse canonical JSON text back into a Snapshot."""
    return load_snapshot(text)[0]
