"""Tests for the JSON snapshot store."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from fadeboard.database import SnapshotStore
from fadeboard.errors import StorageIOError
from fadeboard.models import MediaRef, Post, Snapshot
from fadeboard.room_models import Room


def sample_snapshot() -> Snapshot:
    now = datetime(2026, 3, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
    return Snapshot(
        version=3,
        posts=[
            Post(
                id="p1",
                room_id="ABC-DEF",
                content="hello",
                media=MediaRef(filename="1-ab.png", url="/uploads/1-ab.png"),
                delete_token="tok",
                created_at=now,
                expires_at=now + timedelta(hours=1),
            )
        ],
        rooms=[Room(id="ABC-DEF", label="lobby", created_at=now, last_active_at=now)],
    )


def test_load_missing_file_returns_empty_snapshot(tmp_path):
    store = SnapshotStore(tmp_path / "db.json")
    assert store.load() == Snapshot()


@pytest.mark.parametrize("raw", ["{not json", '{"posts": "nope"}', "", "\xff\xfe"])
def test_load_corrupt_file_returns_empty_snapshot(tmp_path, raw):
    path = tmp_path / "db.json"
    path.write_text(raw, encoding="utf-8")
    assert SnapshotStore(path).load() == Snapshot()


def test_load_undecodable_bytes_returns_empty_snapshot(tmp_path):
    path = tmp_path / "db.json"
    path.write_bytes(b"\xff\xfe\x00garbage")
    assert SnapshotStore(path).load() == Snapshot()


def test_save_then_load_round_trip(tmp_path):
    store = SnapshotStore(tmp_path / "data" / "db.json")
    snapshot = sample_snapshot()
    store.save(snapshot)
    assert store.load() == snapshot


def test_save_of_unmodified_load_is_byte_identical(tmp_path):
    store = SnapshotStore(tmp_path / "db.json")
    store.save(sample_snapshot())
    before = store.path.read_bytes()

    store.save(store.load())

    assert store.path.read_bytes() == before


def test_save_failure_raises_storage_error(tmp_path):
    target = tmp_path / "db.json"
    target.mkdir()
    (target / "occupied").write_text("x")
    with pytest.raises(StorageIOError):
        SnapshotStore(target).save(Snapshot())


def test_load_naive_timestamps_returns_empty_snapshot(tmp_path):
    path = tmp_path / "db.json"
    path.write_text(
        '{"version": 1, "rooms": [], "posts": [{"id": "p1", "content": "old", "delete_token": "t",'
        ' "created_at": "2099-01-01T00:00:00", "expires_at": "2099-01-01T01:00:00"}]}',
        encoding="utf-8",
    )
    assert SnapshotStore(path).load() == Snapshot()
