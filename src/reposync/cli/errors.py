"""
Standardized error handling and exit codes for the reposync CLI.

Every entry point exits 0 on success and non-zero after alerting on
failure. Build jobs only look at the exit status.
"""

from enum import IntEnum

from rich.console import Console

from reposync.core.exceptions import (
    GitError,
    InconsistentState,
    InvalidRevision,
    LockTimeout,
    MergeConflict,
    NotABranch,
    OperationTimeout,
    PushRace,
    SyncError,
)

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for reposync operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """The operation failed; an alert has been sent."""

    USER_ERROR = 2
    """Bad arguments or configuration (actionable by user)."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Revision 'deploy-9' does not resolve to a commit",
        ...     solution="git ls-remote origin deploy-9",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_sync_error(error: SyncError) -> None:
    """Print an engine failure with guidance for the kind of failure it is."""
    if isinstance(error, InvalidRevision):
        print_error(
            str(error),
            reason="The branch, tag or commit is not known to the remote",
            solution=f"git ls-remote origin {error.revision}",
        )
    elif isinstance(error, LockTimeout):
        print_error(
            str(error),
            reason="Another agent held the shared repositories lock for the whole wait budget",
            solution=f"Check for a stuck git process holding {error.path}",
        )
    elif isinstance(error, OperationTimeout):
        print_error(
            str(error),
            reason="A git call ran past its time budget and was killed; nothing was resumed",
        )
    elif isinstance(error, MergeConflict):
        print_error(
            str(error),
            reason=f"The {error.operation} was aborted, so the workspace is back where it started",
            solution="Resolve the conflict by hand and push it",
        )
    elif isinstance(error, PushRace):
        print_error(
            str(error),
            reason="The local branch was reset one commit back",
            solution="Run the operation again",
        )
    elif isinstance(error, NotABranch):
        print_error(str(error), reason="This operation needs a branch checked out, not a commit")
    elif isinstance(error, InconsistentState):
        print_error(str(error), reason="An internal consistency check failed; please report this")
    elif isinstance(error, GitError):
        print_error(str(error), reason=error.stderr or None)
    else:
        print_error(str(error))
