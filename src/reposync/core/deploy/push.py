"""
Commit and push engine.

push() rebases the current branch onto its remote counterpart and pushes
it. Any failure after local work was made rolls the branch back one commit,
so the next attempt starts from the remote's state plus a clean retry.
Pushing a submodule also moves the superproject's pointer to it.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from reposync.core.context import SharedRootContext
from reposync.core.deploy.models import PushResult
from reposync.core.exceptions import (
    GitError,
    MergeConflict,
    NotABranch,
    OperationTimeout,
    PushRace,
    SyncError,
)
from reposync.core.sync.checkout import CheckoutEngine
from reposync.core.sync.fetch import FetchCoordinator
from reposync.core.workspace import Workspace

logger = logging.getLogger(__name__)

_HTTPS_REMOTE = re.compile(r"^https?://(?:[^@/]+@)?(?P<host>[^/]+)/(?P<path>.+)$")

_REJECTION_MARKERS = ("[rejected]", "non-fast-forward", "fetch first")


def ssh_url(url: str) -> str:
    """
    Rewrite an https remote to its ssh form so deploy keys are used.

    Example:
        >>> ssh_url("https://github.com/Khan/webapp.git")
        'git@github.com:Khan/webapp.git'
        >>> ssh_url("git@github.com:Khan/webapp.git")
        'git@github.com:Khan/webapp.git'
    """
    match = _HTTPS_REMOTE.match(url.strip())
    if not match:
        return url.strip()
    return f"git@{match.group('host')}:{match.group('path')}"


def is_push_rejection(stderr: str) -> bool:
    """True when push output says the remote branch moved underneath us."""
    return any(marker in stderr for marker in _REJECTION_MARKERS)


class PushEngine:
    """
    Pushes workspaces back to the remote.

    Example:
        >>> engine = PushEngine(ctx)
        >>> engine.commit_and_push(Path("/work/webapp"), ["-m", "Update translations"])
    """

    def __init__(self, ctx: SharedRootContext, fetcher: FetchCoordinator | None = None) -> None:
        self.ctx = ctx
        self.fetcher = fetcher or FetchCoordinator(ctx)
        self.checkout = CheckoutEngine(ctx)

    def _git(self, args: list[str], path: Path):
        return self.ctx.git.run(args, cwd=path, timeout=self.ctx.config.timeouts.checkout)

    def push_url(self, path: Path) -> str:
        """The ssh form of the remote's URL for the repository at ``path``."""
        return ssh_url(self.ctx.git.output(["remote", "get-url", self.ctx.remote], cwd=path))

    def commit_and_push(self, path: Path, commit_args: list[str]) -> PushResult:
        """
        Commit everything in ``path`` (if anything changed), then push.

        Args:
            path: Repository working tree
            commit_args: Arguments passed to ``git commit`` (e.g. ``["-m", "msg"]``)
        """
        committed = False
        if self.checkout.is_dirty(path):
            self._git(["add", "-A"], path)
            self._git(["commit", *commit_args], path)
            committed = True
        else:
            logger.info("Nothing to commit in %s", path)

        result = self.push(path)
        result.committed = committed
        return result

    def push(self, path: Path) -> PushResult:
        """
        Rebase the current branch onto origin and push it.

        Raises:
            NotABranch: If HEAD is detached
            MergeConflict: If the rebase conflicts (branch reset one commit back)
            PushRace: If the push is rejected (branch reset one commit back)
            GitError: If any other git step fails
        """
        workspace = Workspace.at(path, git=self.ctx.git)
        branch = workspace.current_branch
        if branch is None:
            raise NotABranch("HEAD", path=workspace.path)

        self.fetcher.fetch(workspace.path)

        remote_branch = f"{self.ctx.remote}/{branch}"
        if self.ctx.git.ref_exists(f"refs/remotes/{remote_branch}", cwd=workspace.path):
            try:
                self._git(["rebase", remote_branch], workspace.path)
            except OperationTimeout:
                self.ctx.git.run(["rebase", "--abort"], cwd=workspace.path, check=False)
                self._rollback(workspace.path)
                raise
            except GitError as e:
                self.ctx.git.run(["rebase", "--abort"], cwd=workspace.path, check=False)
                self._rollback(workspace.path)
                raise MergeConflict("rebase", remote_branch, path=workspace.path) from e

        url = self.push_url(workspace.path)

        if workspace.uses_lfs:
            with self.ctx.shared_lock():
                logger.info("Pushing large objects for %s", branch)
                self.ctx.git.run(
                    ["lfs", "push", url, branch],
                    cwd=workspace.path,
                    timeout=self.ctx.config.timeouts.lfs,
                )

        logger.info("Pushing %s to %s", branch, url)
        try:
            result = self.ctx.git.run(
                ["push", url, branch],
                cwd=workspace.path,
                timeout=self.ctx.config.timeouts.push,
                check=False,
            )
        except OperationTimeout:
            self._rollback(workspace.path)
            raise

        if not result.ok:
            self._rollback(workspace.path)
            if is_push_rejection(result.stderr):
                raise PushRace(branch, path=workspace.path, stderr=result.stderr)
            raise GitError(
                f"Push of '{branch}' failed",
                command=result.command,
                stderr=result.stderr.strip(),
                path=str(workspace.path),
            )

        pushed = PushResult(path=str(workspace.path), branch=branch, head=workspace.head_commit)

        if workspace.superproject is not None:
            pushed.parent_updated = self.update_submodule_pointer_to_trunk(workspace.path, branch)

        return pushed

    def _rollback(self, path: Path) -> None:
        logger.warning("Resetting %s one commit back", path)
        self._git(["reset", "--hard", "HEAD^"], path)

    def update_submodule_pointer_to_trunk(self, path: Path, branch: str | None = None) -> bool:
        """
        Point the superproject's gitlink for ``path`` at trunk, and push it.

        Args:
            path: Submodule working tree
            branch: Superproject branch to update (default: trunk)

        Returns:
            True if a pointer commit was made and pushed, False if unchanged

        Raises:
            SyncError: If ``path`` is not a submodule
        """
        workspace = Workspace.at(path, git=self.ctx.git)
        parent = workspace.superproject
        if parent is None:
            raise SyncError(f"{workspace.path} is not a submodule", path=str(workspace.path))

        branch = branch or self.ctx.trunk
        trunk = self.ctx.trunk
        subpath = workspace.path.relative_to(parent).as_posix()

        self.fetcher.fetch(parent)
        self.checkout.destructive_checkout(parent, branch)
        if self.ctx.git.ref_exists(f"refs/remotes/{self.ctx.remote}/{branch}", cwd=parent):
            self._git(["reset", "--hard", f"{self.ctx.remote}/{branch}"], parent)

        self.fetcher.fetch(workspace.path)
        self._git(["checkout", trunk], workspace.path)
        self._git(["merge", "--ff-only", f"{self.ctx.remote}/{trunk}"], workspace.path)

        self._git(["add", "--", subpath], parent)
        if self.ctx.git.succeeds(["diff", "--cached", "--quiet"], cwd=parent):
            logger.info("Submodule pointer for %s already up to date", subpath)
            return False

        self._git(["commit", "-m", f"Automatic update of {subpath} substate"], parent)
        self.push(parent)
        return True
