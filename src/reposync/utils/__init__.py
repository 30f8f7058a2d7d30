"""Utility modules for reposync."""

from .journal import EventType, JournalEntry, NullJournal, SyncJournal, default_log_dir

__all__ = [
    "default_log_dir",
    "EventType",
    "JournalEntry",
    "NullJournal",
    "SyncJournal",
]
