"""
Deploy-branch merging and pushing.

Usage:
    from reposync.core.deploy import DeployMerger, report_merge_result

    result = DeployMerger(ctx).merge_from_trunk(path, "deploy-1")
    exit_code = report_merge_result(result, ctx.alerts)
"""

from reposync.core.deploy.merge import DeployMerger
from reposync.core.deploy.models import (
    InvalidTargetReason,
    MergeResult,
    MergeStatus,
    PushResult,
)
from reposync.core.deploy.push import PushEngine, is_push_rejection, ssh_url
from reposync.core.deploy.reporting import (
    merge_failure_message,
    report_error,
    report_merge_result,
)

__all__ = [
    "DeployMerger",
    "InvalidTargetReason",
    "MergeResult",
    "MergeStatus",
    "PushEngine",
    "PushResult",
    "is_push_rejection",
    "merge_failure_message",
    "report_error",
    "report_merge_result",
    "ssh_url",
]
