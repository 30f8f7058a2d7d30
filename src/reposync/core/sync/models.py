"""
Data models for the sync engine.

Results returned by the orchestrator and the submodule materializer.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class MaterializeResult(BaseModel):
    """
    Outcome of one submodule materialization pass.

    Example:
        >>> result = MaterializeResult(updated=["third_party/foo"], linked=["data"])
        >>> result.summary()
        'updated 1, linked 1'
    """

    skipped: bool = Field(
        default=False,
        description="True when the pass did nothing (nested repo, selector 'none', no submodules)",
    )
    updated: list[str] = Field(
        default_factory=list,
        description="Ordinary submodule paths synced and updated recursively",
    )
    linked: list[str] = Field(
        default_factory=list,
        description="Workdir-linked submodule paths created or refreshed",
    )

    def summary(self) -> str:
        if self.skipped:
            return "skipped"
        return f"updated {len(self.updated)}, linked {len(self.linked)}"


class SyncResult(BaseModel):
    """
    Result of bringing a workspace to a revision.

    Example:
        >>> result = SyncResult(path="/work/webapp", revision="master", head="abc123")
        >>> result.summary()
        'webapp at abc123 (master)'
    """

    path: str = Field(description="Workspace working tree")
    revision: str = Field(description="Requested commit-ish")
    head: str = Field(description="Commit checked out when the sync finished")
    branch: str | None = Field(
        default=None,
        description="Local branch checked out, or None for a detached HEAD",
    )
    created: bool = Field(
        default=False,
        description="True when the workspace was created by this sync",
    )
    rebased: bool = Field(
        default=False,
        description="True when the workspace was rebased onto its remote branch",
    )
    submodules: MaterializeResult = Field(default_factory=MaterializeResult)
    finished_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the sync completed",
    )

    def summary(self) -> str:
        name = self.path.rstrip("/").rsplit("/", 1)[-1]
        where = self.branch or self.revision
        return f"{name} at {self.head[:12]} ({where})"
