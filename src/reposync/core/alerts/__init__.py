"""
Alerting adapters.

The engine reports fatal conditions through an AlertSink. Delivery is
delegated to an external command; this package only formats and invokes.
"""

from reposync.core.alerts.models import Alert, Severity
from reposync.core.alerts.sinks import (
    AlertSink,
    CommandAlertSink,
    LoggingAlertSink,
    RecordingAlertSink,
    build_alert_sink,
)

__all__ = [
    "Alert",
    "AlertSink",
    "CommandAlertSink",
    "LoggingAlertSink",
    "RecordingAlertSink",
    "Severity",
    "build_alert_sink",
]
