"""
JSONL operation journal.

Every entry-point invocation writes timestamped JSON Lines so an operator
can reconstruct what an agent did to a workspace: which operation ran, how
it ended, what was alerted and what was rolled back. Journals live in
~/.local/share/reposync/logs/{repo}.jsonl by default.

Each line is valid JSON with the format:
{
  "timestamp": "2026-01-15T12:34:56.789Z",
  "event_type": "operation_end",
  "data": { ... event-specific data ... }
}
"""

import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    """Types of events that can be journaled."""

    OPERATION_START = "operation_start"
    OPERATION_END = "operation_end"
    ALERT = "alert"
    ROLLBACK = "rollback"


class JournalEntry(BaseModel):
    """A single journal line."""

    model_config = ConfigDict(use_enum_values=True)

    timestamp: datetime = Field(..., description="When the event occurred (ISO 8601 format)")
    event_type: EventType = Field(..., description="Type of event")
    data: dict[str, Any] = Field(default_factory=dict, description="Event-specific data")


def default_log_dir() -> Path:
    """$XDG_DATA_HOME/reposync/logs, falling back to ~/.local/share."""
    xdg_data_home = os.environ.get("XDG_DATA_HOME")
    if not xdg_data_home:
        xdg_data_home = os.path.expanduser("~/.local/share")
    return Path(xdg_data_home) / "reposync" / "logs"


class SyncJournal:
    """
    Appends operation events to a JSONL file.

    Example:
        journal = SyncJournal.for_repo("webapp")
        journal.operation_start("sync-to", revision="master")
        journal.operation_end("sync-to", exit_code=0, duration_sec=12.5)
    """

    def __init__(self, log_file: Path):
        self.log_file = Path(log_file)

    @staticmethod
    def for_repo(repo_name: str, log_dir: Path | None = None) -> "SyncJournal":
        """
        Journal for one repository.

        Raises:
            ValueError: If repo_name is empty
        """
        if not repo_name:
            raise ValueError("repo_name cannot be empty")
        return SyncJournal((log_dir or default_log_dir()) / f"{repo_name}.jsonl")

    def log_event(self, event_type: EventType, data: dict[str, Any] | None = None) -> None:
        """
        Append one event. Write failures print a warning and are never raised,
        so a full disk cannot fail an otherwise successful sync.
        """
        entry = JournalEntry(
            timestamp=datetime.now(timezone.utc), event_type=event_type, data=data or {}
        )
        line = entry.model_dump_json(exclude_none=True) + "\n"

        try:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            print(f"Warning: Failed to write to journal {self.log_file}: {e}", flush=True)

    def operation_start(self, operation: str, **details: Any) -> None:
        self.log_event(EventType.OPERATION_START, {"operation": operation, **details})

    def operation_end(
        self,
        operation: str,
        exit_code: int,
        duration_sec: float,
        error: str | None = None,
    ) -> None:
        data: dict[str, Any] = {
            "operation": operation,
            "exit_code": exit_code,
            "duration_sec": round(duration_sec, 3),
        }
        if error:
            data["error"] = error
        self.log_event(EventType.OPERATION_END, data)

    def alert(self, severity: str, message: str, context: dict[str, Any] | None = None) -> None:
        data: dict[str, Any] = {"severity": severity, "message": message}
        if context:
            data["context"] = context
        self.log_event(EventType.ALERT, data)

    def rollback(self, path: str, to_commit: str, reason: str) -> None:
        self.log_event(
            EventType.ROLLBACK, {"path": path, "to_commit": to_commit, "reason": reason}
        )

    def read_entries(self) -> list[JournalEntry]:
        """All entries written so far, oldest first."""
        if not self.log_file.exists():
            return []
        with open(self.log_file, encoding="utf-8") as f:
            return [JournalEntry.model_validate_json(line) for line in f if line.strip()]


class NullJournal(SyncJournal):
    """Journal that records nothing; used when journaling is disabled."""

    def __init__(self) -> None:
        super().__init__(Path(os.devnull))

    def log_event(self, event_type: EventType, data: dict[str, Any] | None = None) -> None:
        pass

    def read_entries(self) -> list[JournalEntry]:
        return []
