"""
Exceptions for the synchronization engine.

Every fatal condition the engine can hit is a SyncError subclass. The CLI
layer catches SyncError, reports it through the alert sink, and exits
non-zero. Nothing below retries.

Exception Hierarchy:
    SyncError (base)
    ├── GitError (a git subprocess exited non-zero)
    │   └── OperationTimeout (a bounded call exceeded its budget)
    ├── InvalidRevision (commit-ish does not resolve)
    ├── LockTimeout (shared-root lock not acquired in time)
    ├── MergeConflict (merge or rebase could not complete, aborted)
    ├── PushRace (remote branch moved underneath us)
    ├── NotABranch (push protocol attempted on a detached commit)
    └── InconsistentState (internal invariant broken)

Example:
    >>> try:
    ...     raise InvalidRevision("deploy-123", path="/work/webapp")
    ... except SyncError as e:
    ...     print(e.severity.value, e.context["revision"])
    error deploy-123
"""

from __future__ import annotations

from pathlib import Path

from reposync.core.alerts.models import Severity


class SyncError(Exception):
    """
    Base exception for all synchronization failures.

    Attributes:
        message: Human-readable error message
        context: Operand names (paths, revisions, branches) for the alert
        severity: Severity used when this error is alerted
    """

    severity: Severity = Severity.ERROR

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def __str__(self) -> str:
        return self.message


class GitError(SyncError):
    """Exception raised when a git operation fails."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        stderr: str = "",
        **context: object,
    ) -> None:
        super().__init__(message, **context)
        self.command = command
        self.stderr = stderr


class OperationTimeout(GitError):
    """Raised when a bounded external call exceeds its timeout."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        timeout: float | None = None,
    ) -> None:
        super().__init__(message, command=command, timeout=timeout)
        self.timeout = timeout


class InvalidRevision(SyncError):
    """Raised when a requested commit-ish does not resolve."""

    def __init__(self, revision: str, path: Path | str | None = None) -> None:
        location = f" in {path}" if path else ""
        super().__init__(
            f"Revision '{revision}' does not resolve to a commit{location}",
            revision=revision,
            path=str(path) if path else None,
        )
        self.revision = revision


class LockTimeout(SyncError):
    """Raised when the shared-root lock cannot be acquired within budget."""

    def __init__(self, lock_name: str, path: Path, waited: float) -> None:
        super().__init__(
            f"Could not acquire lock '{lock_name}' ({path}) within {waited:g}s",
            lock=lock_name,
            path=str(path),
        )
        self.lock_name = lock_name
        self.path = path
        self.waited = waited


class MergeConflict(SyncError):
    """
    Raised when an automatic merge or rebase cannot complete.

    The merge/rebase has already been aborted by the time this is raised.
    Manual resolution is required.
    """

    def __init__(self, operation: str, onto: str, path: Path | str | None = None) -> None:
        super().__init__(
            f"{operation.capitalize()} onto '{onto}' hit conflicts and was aborted",
            operation=operation,
            onto=onto,
            path=str(path) if path else None,
        )
        self.operation = operation
        self.onto = onto


class PushRace(SyncError):
    """Raised when a push is rejected because the remote branch moved."""

    def __init__(self, branch: str, path: Path | str | None = None, stderr: str = "") -> None:
        super().__init__(
            f"Push of '{branch}' was rejected; someone else pushed to it first",
            branch=branch,
            path=str(path) if path else None,
        )
        self.branch = branch
        self.stderr = stderr


class NotABranch(SyncError):
    """Raised when a branch-only operation is attempted on a detached commit."""

    def __init__(self, revision: str, path: Path | str | None = None) -> None:
        super().__init__(
            f"'{revision}' is not a branch on the remote",
            revision=revision,
            path=str(path) if path else None,
        )
        self.revision = revision


class InconsistentState(SyncError):
    """Raised when an internal consistency check fails."""

    severity = Severity.CRITICAL
