"""
Data models for the deploy engine.

The merge protocol reports its outcome as a tagged MergeResult instead of
alerting inline; reporting.report_merge_result turns a result into an alert.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from reposync.core.sync.models import MaterializeResult


class MergeStatus(str, Enum):
    """Outcome of merge_branch_into."""

    SUCCESS = "success"
    RACE = "race"
    CONFLICT = "conflict"
    INVALID_TARGET = "invalid_target"


class InvalidTargetReason(str, Enum):
    """Why a merge target was rejected."""

    TRUNK = "trunk"
    UNRESOLVABLE = "unresolvable"
    NOT_A_BRANCH = "not_a_branch"


class MergeResult(BaseModel):
    """
    Result of merging a source branch into a deploy target.

    Example:
        >>> result = MergeResult(
        ...     status=MergeStatus.SUCCESS,
        ...     path="/work/webapp",
        ...     target="deploy-1",
        ...     source="master",
        ... )
        >>> result.ok
        True
    """

    status: MergeStatus = Field(description="Tagged outcome")
    path: str = Field(description="Workspace the merge ran in")
    target: str = Field(description="Deploy branch or revision merged into")
    source: str = Field(description="Branch merged from")
    reason: InvalidTargetReason | None = Field(
        default=None,
        description="Why the target was rejected (INVALID_TARGET only)",
    )
    merged: bool = Field(
        default=False,
        description="True when a merge commit was created and pushed",
    )
    start_commit: str | None = Field(
        default=None,
        description="Target commit before the merge; the rollback point",
    )
    head: str | None = Field(
        default=None,
        description="Commit at HEAD when the operation finished",
    )
    detail: str = Field(default="", description="git output explaining a failure")
    submodules: MaterializeResult | None = None

    @property
    def ok(self) -> bool:
        return self.status == MergeStatus.SUCCESS

    def summary(self) -> str:
        if self.status == MergeStatus.SUCCESS:
            action = "merged" if self.merged else "already contains"
            return f"{self.target} {action} {self.source}"
        reason = f" ({self.reason.value})" if self.reason else ""
        return f"{self.status.value}{reason}: {self.source} into {self.target}"


class PushResult(BaseModel):
    """Result of push / commit_and_push."""

    path: str = Field(description="Repository that was pushed")
    branch: str = Field(description="Branch pushed")
    committed: bool = Field(default=False, description="True when a new commit was made")
    head: str = Field(description="Commit pushed")
    parent_updated: bool = Field(
        default=False,
        description="True when the superproject's submodule pointer was updated and pushed",
    )
