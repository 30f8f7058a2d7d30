"""
Alert sinks: how fatal conditions reach a human.

The engine never talks to chat or paging systems itself. It calls
``sink.alert(severity, message, **context)`` and the sink delivers the text
to an external alert command (by default ``alert.py``), which reads the
message on stdin and takes ``--severity`` and ``--slack`` flags.

A failing alert command must never turn into a second failure on the
engine's exit path, so CommandAlertSink logs delivery problems and returns.

Usage:
    from reposync.core.alerts import CommandAlertSink, Severity

    sink = CommandAlertSink(["alert.py"], channel="#deploys")
    sink.alert(Severity.ERROR, "Merge of master into deploy-1 failed", branch="deploy-1")
"""

from __future__ import annotations

import logging
import subprocess
from typing import Protocol

from reposync.core.alerts.models import Alert, Severity
from reposync.core.config.models import AlertConfig

logger = logging.getLogger(__name__)


class AlertSink(Protocol):
    """Anything that accepts alerts."""

    def alert(self, severity: Severity, message: str, **context: object) -> None: ...


def _build_alert(severity: Severity, message: str, context: dict[str, object]) -> Alert:
    return Alert(
        severity=Severity(severity),
        message=message,
        context={k: str(v) for k, v in context.items() if v is not None},
    )


class LoggingAlertSink:
    """Sends alerts to the Python log only. Used when no command is configured."""

    _LEVELS = {
        Severity.DEBUG: logging.DEBUG,
        Severity.INFO: logging.INFO,
        Severity.WARNING: logging.WARNING,
        Severity.ERROR: logging.ERROR,
        Severity.CRITICAL: logging.CRITICAL,
    }

    def alert(self, severity: Severity, message: str, **context: object) -> None:
        entry = _build_alert(severity, message, context)
        logger.log(self._LEVELS[entry.severity], "ALERT: %s", entry.render())


class RecordingAlertSink:
    """Keeps alerts in memory. Handy for dry runs and tests."""

    def __init__(self) -> None:
        self.alerts: list[Alert] = []

    def alert(self, severity: Severity, message: str, **context: object) -> None:
        self.alerts.append(_build_alert(severity, message, context))


class CommandAlertSink:
    """
    Pipes alerts to an external command.

    Attributes:
        command: Base argv of the alert command
        channel: Chat channel passed as ``--slack``; omitted when None
        timeout: Seconds to wait for the command
    """

    def __init__(
        self,
        command: list[str],
        channel: str | None = None,
        timeout: float = 60.0,
    ) -> None:
        self.command = list(command)
        self.channel = channel
        self.timeout = timeout

    def build_argv(self, severity: Severity) -> list[str]:
        argv = [*self.command, f"--severity={Severity(severity).value}"]
        if self.channel:
            argv.append(f"--slack={self.channel}")
        return argv

    def alert(self, severity: Severity, message: str, **context: object) -> None:
        entry = _build_alert(severity, message, context)
        argv = self.build_argv(entry.severity)

        logger.debug("Sending alert via %s", " ".join(argv))

        try:
            result = subprocess.run(
                argv,
                input=entry.render(),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("Alert command failed (%s); alert was: %s", e, entry.render())
            return

        if result.returncode != 0:
            logger.warning(
                "Alert command exited %d: %s; alert was: %s",
                result.returncode,
                (result.stderr or "").strip(),
                entry.render(),
            )


def build_alert_sink(config: AlertConfig) -> AlertSink:
    """
    Create the alert sink described by configuration.

    Args:
        config: Alert configuration

    Returns:
        CommandAlertSink when enabled with a command, else LoggingAlertSink
    """
    if config.enabled and config.command:
        return CommandAlertSink(config.command, channel=config.channel, timeout=config.timeout)
    return LoggingAlertSink()
