"""
Per-invocation wiring for CLI commands.

Builds the SharedRootContext from configuration and wraps each entry point
in an operation scope that journals it and turns engine failures into an
alert, a printed error and a non-zero exit.
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import typer

from reposync.cli.errors import ExitCode, print_error, print_sync_error
from reposync.core.alerts import AlertSink, Severity, build_alert_sink
from reposync.core.config import ReposyncConfig, load_config
from reposync.core.context import SharedRootContext
from reposync.core.deploy.reporting import report_error
from reposync.core.exceptions import SyncError
from reposync.utils.journal import NullJournal, SyncJournal

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for all commands.

    Args:
        debug: If True, log git commands and lock activity at DEBUG
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


class JournaledAlertSink:
    """Forwards alerts to another sink and records them in the journal."""

    def __init__(self, inner: AlertSink, journal: SyncJournal) -> None:
        self.inner = inner
        self.journal = journal

    def alert(self, severity: Severity, message: str, **context: object) -> None:
        self.journal.alert(
            Severity(severity).value,
            message,
            {k: str(v) for k, v in context.items() if v is not None},
        )
        self.inner.alert(severity, message, **context)


@dataclass
class Operation:
    """One running entry point: its shared-root context and its journal."""

    name: str
    shared: SharedRootContext
    journal: SyncJournal


@dataclass
class Runtime:
    """
    Configuration and collaborators for one CLI invocation.

    Attributes:
        config: Loaded configuration with command-line overrides applied
        alerts: Alert sink built from configuration
    """

    config: ReposyncConfig
    alerts: AlertSink

    @classmethod
    def from_typer(cls, ctx: typer.Context) -> Runtime:
        """Build the runtime from the options stored by the root callback."""
        options: dict[str, Any] = ctx.obj or {}
        try:
            config = load_config(use_cache=False)
            if options.get("repos_root"):
                config.repos_root = Path(options["repos_root"])
            if options.get("workspace_root"):
                config.workspace_root = Path(options["workspace_root"])
        except ValueError as e:
            print_error("Invalid configuration", reason=str(e))
            raise typer.Exit(ExitCode.USER_ERROR)
        return cls(config=config, alerts=build_alert_sink(config.alerts))

    def journal_for(self, repo_name: str) -> SyncJournal:
        if not self.config.journal.enabled:
            return NullJournal()
        return SyncJournal.for_repo(repo_name, self.config.journal.log_dir)

    @contextmanager
    def operation(self, name: str, repo_name: str, **details: Any) -> Iterator[Operation]:
        """
        Run one entry point.

        SyncError raised inside the block is alerted, printed and journaled,
        then converted to ``typer.Exit(1)``. Any other exception is handled
        the same way with a critical alert.
        """
        journal = self.journal_for(repo_name)
        alerts = JournaledAlertSink(self.alerts, journal)
        shared = SharedRootContext.from_config(self.config, alerts=alerts)

        journal.operation_start(name, **{k: str(v) for k, v in details.items()})
        started = time.monotonic()
        try:
            yield Operation(name=name, shared=shared, journal=journal)
        except SyncError as e:
            logger.debug("%s failed", name, exc_info=True)
            report_error(e, alerts, operation=name)
            print_sync_error(e)
            journal.operation_end(
                name, ExitCode.GENERAL_ERROR, time.monotonic() - started, error=str(e)
            )
            raise typer.Exit(ExitCode.GENERAL_ERROR) from e
        except typer.Exit as e:
            journal.operation_end(name, int(e.exit_code), time.monotonic() - started)
            raise
        except KeyboardInterrupt as e:
            journal.operation_end(
                name, ExitCode.SIGINT, time.monotonic() - started, error="interrupted"
            )
            raise typer.Exit(ExitCode.SIGINT) from e
        except Exception as e:
            logger.debug("%s failed unexpectedly", name, exc_info=True)
            alerts.alert(
                Severity.CRITICAL,
                f"{name} failed unexpectedly: {e}",
                operation=name,
                error_type=type(e).__name__,
            )
            print_error(f"{name} failed unexpectedly", reason=f"{type(e).__name__}: {e}")
            journal.operation_end(
                name, ExitCode.GENERAL_ERROR, time.monotonic() - started, error=str(e)
            )
            raise typer.Exit(ExitCode.GENERAL_ERROR) from e
        journal.operation_end(name, ExitCode.SUCCESS, time.monotonic() - started)
