"""Tests for recent_store module."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from ZipLens.models import RecentFileRecord
from ZipLens.recent_store import (
    JsonFileBackend,
    MemoryBackend,
    RecentFilesBackend,
    RecentFilesClient,
    StoreUnavailable,
    record_from_dict,
    record_to_dict,
)

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class _Clock:
    """Returns T0, T0+1s, T0+2s, ... on successive calls."""

    def __init__(self, start=T0, step=timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self):
        value = self.now
        self.now += self.step
        return value


class _BrokenBackend(RecentFilesBackend):
    def upsert(self, record):
        raise StoreUnavailable("disk on fire")

    def records_for(self, user_id):
        raise StoreUnavailable("disk on fire")


class TestRecentFilesClient:
    def test_add_then_get(self):
        client = RecentFilesClient(MemoryBackend(), clock=_Clock())
        assert client.add_recent_file("alice", "/a.zip") is True
        records = client.get_recent_files("alice")
        assert records == [RecentFileRecord("/a.zip", "alice", T0)]

    def test_readd_keeps_one_record_with_later_timestamp(self):
        client = RecentFilesClient(MemoryBackend(), clock=_Clock())
        client.add_recent_file("alice", "/a.zip")
        client.add_recent_file("alice", "/a.zip")
        records = client.get_recent_files("alice")
        assert len(records) == 1
        assert records[0].timestamp == T0 + timedelta(seconds=1)

    def test_descending_order(self):
        client = RecentFilesClient(MemoryBackend(), clock=_Clock())
        for path in ["/a.zip", "/b.zip", "/c.zip"]:
            client.add_recent_file("alice", path)
        records = client.get_recent_files("alice")
        assert [r.path for r in records] == ["/c.zip", "/b.zip", "/a.zip"]
        stamps = [r.timestamp for r in records]
        assert all(a > b for a, b in zip(stamps, stamps[1:]))

    def test_reopen_moves_to_front(self):
        client = RecentFilesClient(MemoryBackend(), clock=_Clock())
        client.add_recent_file("alice", "/a.zip")
        client.add_recent_file("alice", "/b.zip")
        client.add_recent_file("alice", "/a.zip")
        assert [r.path for r in client.get_recent_files("alice")] == ["/a.zip", "/b.zip"]

    def test_users_are_isolated(self):
        client = RecentFilesClient(MemoryBackend(), clock=_Clock())
        client.add_recent_file("alice", "/a.zip")
        client.add_recent_file("bob", "/b.zip")
        assert [r.path for r in client.get_recent_files("alice")] == ["/a.zip"]
        assert [r.path for r in client.get_recent_files("bob")] == ["/b.zip"]

    def test_unknown_user_empty(self):
        client = RecentFilesClient(MemoryBackend())
        assert client.get_recent_files("nobody") == []

    def test_frozen_clock_still_strictly_ordered(self):
        client = RecentFilesClient(MemoryBackend(), clock=lambda: T0)
        client.add_recent_file("alice", "/a.zip")
        client.add_recent_file("alice", "/b.zip")
        records = client.get_recent_files("alice")
        assert [r.path for r in records] == ["/b.zip", "/a.zip"]
        assert records[0].timestamp > records[1].timestamp

    def test_timestamps_truncated_to_milliseconds(self):
        client = RecentFilesClient(
            MemoryBackend(), clock=lambda: T0.replace(microsecond=123456)
        )
        client.add_recent_file("alice", "/a.zip")
        assert client.get_recent_files("alice")[0].timestamp.microsecond == 123000


class TestStoreUnavailable:
    def test_get_returns_empty_list(self):
        client = RecentFilesClient(_BrokenBackend())
        assert client.get_recent_files("alice") == []

    def test_add_returns_false(self):
        client = RecentFilesClient(_BrokenBackend())
        assert client.add_recent_file("alice", "/a.zip") is False

    def test_failures_are_logged(self, caplog):
        client = RecentFilesClient(_BrokenBackend())
        with caplog.at_level("WARNING", logger="ZipLens.recent_store"):
            client.get_recent_files("alice")
        assert "disk on fire" in caplog.text


class TestJsonFileBackend:
    def test_missing_file_is_empty(self, tmp_path):
        backend = JsonFileBackend(tmp_path / "recent.json")
        assert backend.records_for("alice") == []

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "nested" / "recent.json"
        RecentFilesClient(JsonFileBackend(path), clock=_Clock()).add_recent_file(
            "alice", "/a.zip"
        )
        records = RecentFilesClient(JsonFileBackend(path)).get_recent_files("alice")
        assert records == [RecentFileRecord("/a.zip", "alice", T0)]

    def test_file_format(self, tmp_path):
        path = tmp_path / "recent.json"
        RecentFilesClient(JsonFileBackend(path), clock=_Clock()).add_recent_file(
            "alice", "/a.zip"
        )
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == [
            {"path": "/a.zip", "user_id": "alice", "timestamp": 1767268800000}
        ]

    def test_upsert_replaces_existing(self, tmp_path):
        client = RecentFilesClient(JsonFileBackend(tmp_path / "r.json"), clock=_Clock())
        client.add_recent_file("alice", "/a.zip")
        client.add_recent_file("alice", "/a.zip")
        records = client.get_recent_files("alice")
        assert len(records) == 1
        assert records[0].timestamp == T0 + timedelta(seconds=1)

    def test_keeps_newest_per_user(self, tmp_path):
        backend = JsonFileBackend(tmp_path / "r.json", max_per_user=2)
        client = RecentFilesClient(backend, clock=_Clock())
        client.add_recent_file("bob", "/bob.zip")
        for path in ["/1.zip", "/2.zip", "/3.zip"]:
            client.add_recent_file("alice", path)
        assert [r.path for r in client.get_recent_files("alice")] == ["/3.zip", "/2.zip"]
        # Other users are not trimmed by alice's activity
        assert [r.path for r in client.get_recent_files("bob")] == ["/bob.zip"]

    def test_malformed_json_raises(self, tmp_path):
        path = tmp_path / "r.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StoreUnavailable):
            JsonFileBackend(path).records_for("alice")

    def test_malformed_record_raises(self, tmp_path):
        path = tmp_path / "r.json"
        path.write_text(json.dumps([{"path": "/a.zip"}]), encoding="utf-8")
        with pytest.raises(StoreUnavailable):
            JsonFileBackend(path).records_for("alice")

    @pytest.mark.parametrize(
        "item",
        [
            {"path": "/a.zip", "user_id": "alice", "timestamp": 10**20},
            {"path": "/a.zip", "user_id": "alice", "timestamp": -(10**15)},
            {"path": None, "user_id": "alice", "timestamp": 0},
            {"path": "/a.zip", "user_id": 7, "timestamp": 0},
            {"path": "/a.zip", "user_id": "alice", "timestamp": "0"},
            {"path": "/a.zip", "user_id": "alice", "timestamp": 1.5},
            {"path": "/a.zip", "user_id": "alice", "timestamp": True},
            "not a record",
        ],
    )
    def test_bad_field_raises(self, tmp_path, item):
        path = tmp_path / "r.json"
        path.write_text(json.dumps([item]), encoding="utf-8")
        with pytest.raises(StoreUnavailable):
            JsonFileBackend(path).records_for("alice")

    def test_out_of_range_timestamp_degrades_in_client(self, tmp_path):
        path = tmp_path / "r.json"
        path.write_text(
            json.dumps([{"path": "/a.zip", "user_id": "alice", "timestamp": 10**20}]),
            encoding="utf-8",
        )
        assert RecentFilesClient(JsonFileBackend(path)).get_recent_files("alice") == []

    def test_malformed_file_degrades_in_client(self, tmp_path):
        path = tmp_path / "r.json"
        path.write_text("[1, 2", encoding="utf-8")
        assert RecentFilesClient(JsonFileBackend(path)).get_recent_files("alice") == []

    def test_unwritable_location_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        backend = JsonFileBackend(blocker / "r.json")
        with pytest.raises(StoreUnavailable):
            backend.upsert(RecentFileRecord("/a.zip", "alice", T0))


class TestRecordSerialisation:
    def test_round_trip_keeps_milliseconds(self):
        record = RecentFileRecord("/a.zip", "alice", T0.replace(microsecond=457000))
        assert record_from_dict(record_to_dict(record)) == record

    def test_null_path_rejected(self):
        with pytest.raises(ValueError, match="Malformed"):
            record_from_dict({"path": None, "user_id": "alice", "timestamp": 0})

    def test_huge_timestamp_rejected(self):
        with pytest.raises(ValueError, match="out of range"):
            record_from_dict({"path": "/a.zip", "user_id": "alice", "timestamp": 10**20})
