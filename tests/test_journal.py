"""
Unit tests for the JSONL operation journal.

Tests that SyncJournal writes valid JSONL, lands in the XDG data directory,
and never lets a write failure escape.
"""

import json
from pathlib import Path

import pytest

from reposync.utils import EventType, NullJournal, SyncJournal, default_log_dir


class TestSyncJournalInit:
    """Test SyncJournal construction."""

    def test_for_repo_uses_xdg_data_home(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

        journal = SyncJournal.for_repo("webapp")

        assert journal.log_file == tmp_path / "data" / "reposync" / "logs" / "webapp.jsonl"

    def test_default_log_dir_without_xdg(self, monkeypatch):
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)

        assert default_log_dir() == Path.home() / ".local" / "share" / "reposync" / "logs"

    def test_for_repo_with_explicit_dir(self, tmp_path):
        journal = SyncJournal.for_repo("webapp", log_dir=tmp_path)
        assert journal.log_file == tmp_path / "webapp.jsonl"

    def test_for_repo_rejects_empty_name(self):
        with pytest.raises(ValueError, match="repo_name cannot be empty"):
            SyncJournal.for_repo("")


class TestSyncJournalEvents:
    """Test the event helpers."""

    def test_log_event_writes_json_line(self, tmp_path):
        log_file = tmp_path / "logs" / "webapp.jsonl"
        journal = SyncJournal(log_file)

        journal.log_event(EventType.OPERATION_START, {"operation": "sync-to"})

        entry = json.loads(log_file.read_text().splitlines()[0])
        assert entry["event_type"] == "operation_start"
        assert entry["data"]["operation"] == "sync-to"
        assert "timestamp" in entry

    def test_events_append_in_order(self, tmp_path):
        journal = SyncJournal(tmp_path / "webapp.jsonl")

        journal.operation_start("merge-from-trunk", target="deploy-1")
        journal.rollback("/work/webapp", "a" * 40, "race")
        journal.alert("error", "Push rejected", {"target": "deploy-1"})
        journal.operation_end("merge-from-trunk", exit_code=1, duration_sec=2.34567)

        entries = journal.read_entries()
        assert [e.event_type for e in entries] == [
            "operation_start",
            "rollback",
            "alert",
            "operation_end",
        ]
        assert entries[0].data == {"operation": "merge-from-trunk", "target": "deploy-1"}
        assert entries[1].data["reason"] == "race"
        assert entries[2].data["context"] == {"target": "deploy-1"}
        assert entries[3].data["duration_sec"] == 2.346

    def test_operation_end_error_is_optional(self, tmp_path):
        journal = SyncJournal(tmp_path / "webapp.jsonl")

        journal.operation_end("pull", exit_code=0, duration_sec=1.0)
        journal.operation_end("pull", exit_code=1, duration_sec=1.0, error="fetch failed")

        first, second = journal.read_entries()
        assert "error" not in first.data
        assert second.data["error"] == "fetch failed"

    def test_read_entries_missing_file(self, tmp_path):
        assert SyncJournal(tmp_path / "absent.jsonl").read_entries() == []


class TestSyncJournalErrors:
    """Write failures warn instead of raising."""

    def test_unwritable_location_warns(self, tmp_path, capsys):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way\n")
        journal = SyncJournal(blocker / "webapp.jsonl")

        journal.operation_start("sync-to")

        assert "Failed to write to journal" in capsys.readouterr().out

    def test_null_journal_records_nothing(self):
        journal = NullJournal()
        journal.operation_start("sync-to")
        assert journal.read_entries() == []
