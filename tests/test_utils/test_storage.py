"""
Unit tests for the scan store.
"""

import json
import os
import tempfile

import pytest

from cinewall.exceptions import StoreConnectionError
from cinewall.models.record import ScanRecord
from cinewall.utils.storage import StorageManager

ROWS = [
    {"id": "1", "created_at": "2024-06-01T10:00:00Z", "subject_name": "Dune"},
    {"id": "2", "created_at": "2024-06-03T10:00:00Z", "subject_name": "the room"},
    {"id": "3", "created_at": "2024-06-02T10:00:00Z", "subject_name": "The Room"},
    {"id": "4", "created_at": "2024-06-04T10:00:00Z", "subject_name": ""},
]


def write_store(tmpdir, rows):
    with open(os.path.join(tmpdir, "scans.json"), 'w') as f:
        json.dump(rows, f)


def test_missing_store_is_empty():
    with tempfile.TemporaryDirectory() as tmpdir:
        assert StorageManager(tmpdir).load_scans() == []


def test_load_scans_newest_first_and_skips_subjectless_rows():
    with tempfile.TemporaryDirectory() as tmpdir:
        write_store(tmpdir, ROWS)
        records = StorageManager(tmpdir).load_scans()
        assert [r.id for r in records] == ["2", "3", "1"]


def test_load_scans_limit():
    with tempfile.TemporaryDirectory() as tmpdir:
        write_store(tmpdir, ROWS)
        assert [r.id for r in StorageManager(tmpdir).load_scans(limit=1)] == ["2"]


def test_subject_filter_follows_grouping_rules():
    with tempfile.TemporaryDirectory() as tmpdir:
        write_store(tmpdir, ROWS)
        storage = StorageManager(tmpdir)

        assert [r.id for r in storage.load_scans(subject_name="THE ROOM")] == ["2", "3"]
        exact = storage.load_scans(subject_name="The Room", case_insensitive=False)
        assert [r.id for r in exact] == ["3"]


def test_subject_filter_reads_the_same_window_as_the_wall():
    with tempfile.TemporaryDirectory() as tmpdir:
        write_store(tmpdir, ROWS)
        storage = StorageManager(tmpdir)

        # Dune is the oldest scan, outside a two-record window
        assert [r.id for r in storage.load_scans(limit=2)] == ["2", "3"]
        assert storage.load_scans(limit=2, subject_name="Dune") == []
        assert [r.id for r in storage.load_scans(limit=3, subject_name="Dune")] == ["1"]
        assert [r.id for r in storage.load_scans(limit=1, subject_name="The Room")] == ["2"]


@pytest.mark.parametrize("content", ["{ not json", json.dumps({"rows": []})])
def test_unreadable_store_raises(content):
    with tempfile.TemporaryDirectory() as tmpdir:
        with open(os.path.join(tmpdir, "scans.json"), 'w') as f:
            f.write(content)
        with pytest.raises(StoreConnectionError):
            StorageManager(tmpdir).load_scans()


def test_save_and_load():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = StorageManager(tmpdir)
        records = [ScanRecord.from_row(row) for row in ROWS[:3]]
        storage.save_scans(records)

        loaded = StorageManager(tmpdir).load_scans()
        assert sorted(r.id for r in loaded) == ["1", "2", "3"]
        assert loaded[0].created_at == records[1].created_at
