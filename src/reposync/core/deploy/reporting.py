"""
Turn deploy outcomes and engine errors into alerts.

Kept apart from the merge protocol so each MergeResult variant can be fed
to a fake sink and checked on its own.
"""

from __future__ import annotations

import logging

from reposync.core.alerts import AlertSink, Severity
from reposync.core.deploy.models import InvalidTargetReason, MergeResult, MergeStatus
from reposync.core.exceptions import SyncError

logger = logging.getLogger(__name__)


def merge_failure_message(result: MergeResult) -> str:
    """Human-readable description of a failed merge."""
    target, source = result.target, result.source

    if result.status == MergeStatus.INVALID_TARGET:
        if result.reason == InvalidTargetReason.TRUNK:
            return f"Refusing to merge into '{target}': the trunk branch is not a deploy target"
        if result.reason == InvalidTargetReason.UNRESOLVABLE:
            return f"Deploy target '{target}' does not resolve to a commit"
        return f"Deploy target '{target}' is not a branch on the remote, so a merge cannot be pushed"

    if result.status == MergeStatus.CONFLICT:
        return (
            f"Merging '{source}' into '{target}' failed with conflicts. "
            "Resolve the merge by hand and push it."
        )

    if result.status == MergeStatus.RACE:
        start = (result.start_commit or "")[:12]
        return (
            f"Someone else pushed to '{target}' while '{source}' was being merged into it. "
            f"Rolled back to {start}; try again."
        )

    return f"Merging '{source}' into '{target}' failed"


def report_merge_result(result: MergeResult, sink: AlertSink) -> int:
    """
    Alert on a failed merge.

    Returns:
        Process exit status for the result: 0 on success, 1 otherwise
    """
    if result.ok:
        logger.info(result.summary())
        return 0

    sink.alert(
        Severity.ERROR,
        merge_failure_message(result),
        status=result.status.value,
        reason=result.reason.value if result.reason else None,
        target=result.target,
        source=result.source,
        path=result.path,
        start_commit=result.start_commit,
    )
    return 1


def report_error(error: SyncError, sink: AlertSink, operation: str | None = None) -> None:
    """Alert on an engine exception, at the exception's own severity."""
    message = f"{operation} failed: {error}" if operation else str(error)
    sink.alert(error.severity, message, **error.context)
