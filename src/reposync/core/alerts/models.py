"""
Data models for alerting.

Defines the severity levels understood by the alert command and the record
kept for each alert sent during an operation.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """Alert severity, ordered from least to most urgent."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class Alert(BaseModel):
    """A single alert delivered (or attempted) through an AlertSink."""

    severity: Severity = Field(description="Severity of the alert")
    message: str = Field(description="Human-readable alert text")
    context: dict[str, str] = Field(
        default_factory=dict,
        description="Operand names (repo, branch, revision) for whoever acts on it",
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def render(self) -> str:
        """Render the alert as the text piped to the alert command."""
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in sorted(self.context.items()))
        return f"{self.message} ({details})"
