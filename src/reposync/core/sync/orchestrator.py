"""
Synchronization orchestrator: the sync entry points.

Composes fetching, destructive checkout, workspace creation and submodule
materialization into the operations build jobs call:

- sync_to: bring the workspace for a repo to a commit-ish
- sync_to_tracking_origin: same, but follow the remote branch of that name
- pull_in_branch / pull: update an existing workspace from origin
"""

from __future__ import annotations

import logging
from pathlib import Path

from reposync.core.context import SharedRootContext, repo_name_from_url
from reposync.core.exceptions import GitError, InvalidRevision, MergeConflict, OperationTimeout
from reposync.core.sync.checkout import CheckoutEngine
from reposync.core.sync.fetch import FetchCoordinator
from reposync.core.sync.models import SyncResult
from reposync.core.sync.submodules import SubmoduleMaterializer, SubmoduleSelector
from reposync.core.sync.workdir import create_linked_workdir
from reposync.core.workspace import Workspace

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """
    Brings workspaces to requested revisions.

    Example:
        >>> orchestrator = SyncOrchestrator(ctx)
        >>> result = orchestrator.sync_to("git@github.com:Khan/webapp", "master")
        >>> print(result.summary())
        webapp at 4f2c1d0e9a3b (master)
    """

    def __init__(self, ctx: SharedRootContext) -> None:
        self.ctx = ctx
        self.fetcher = FetchCoordinator(ctx)
        self.checkout = CheckoutEngine(ctx)
        self.submodules = SubmoduleMaterializer(ctx, self.fetcher)

    def _git(self, args: list[str], path: Path, timeout: float | None = None):
        return self.ctx.git.run(
            args, cwd=path, timeout=timeout or self.ctx.config.timeouts.checkout
        )

    def _remote_ref(self, branch: str) -> str:
        return f"refs/remotes/{self.ctx.remote}/{branch}"

    def sync_to(
        self,
        repo_url: str,
        commit_ish: str,
        submodules: SubmoduleSelector | None = None,
    ) -> SyncResult:
        """
        Bring the workspace for ``repo_url`` to ``commit_ish``.

        An existing workspace is fetched and destructively checked out. A
        missing one is created as a linked workdir of the canonical mirror,
        which is cloned first if needed.

        Args:
            repo_url: Remote URL of the repository
            commit_ish: Branch, tag or commit to check out
            submodules: Which submodules to materialize (default: all)

        Returns:
            SyncResult describing the final workspace state

        Raises:
            InvalidRevision: If commit_ish does not resolve
            MergeConflict: If rebasing onto the remote branch conflicts
            LockTimeout: If the shared lock is not acquired in time
            GitError: If any git step fails or times out
        """
        name = repo_name_from_url(repo_url)
        workspace = Workspace.at(self.ctx.workspace_path(name), name, git=self.ctx.git)
        created = False

        if workspace.exists():
            self.fetcher.fetch(workspace.path)
            self.checkout.destructive_checkout(workspace.path, commit_ish)
        else:
            mirror = self.ctx.mirror_path(name)
            self.fetcher.ensure_mirror(repo_url, mirror)
            if not self.checkout.resolves(mirror, commit_ish):
                raise InvalidRevision(commit_ish, path=mirror)
            create_linked_workdir(
                self.ctx.git,
                mirror / ".git",
                workspace.path,
                commit_ish,
                timeout=self.ctx.config.timeouts.checkout,
            )
            created = True

        rebased = self._rebase_onto_remote(workspace.path, commit_ish)
        self._lfs_pull(workspace)
        materialized = self.submodules.materialize(workspace.path, submodules)

        result = SyncResult(
            path=str(workspace.path),
            revision=commit_ish,
            head=workspace.head_commit,
            branch=workspace.current_branch,
            created=created,
            rebased=rebased,
            submodules=materialized,
        )
        logger.info("Synced %s", result.summary())
        return result

    def sync_to_tracking_origin(
        self,
        repo_url: str,
        commit_ish: str,
        submodules: SubmoduleSelector | None = None,
    ) -> SyncResult:
        """
        Like sync_to, but follow ``origin/<commit_ish>`` when it exists.

        The local branch of the same name is force-moved to the remote one,
        discarding any local drift.
        """
        name = repo_name_from_url(repo_url)
        workspace = Workspace.at(self.ctx.workspace_path(name), name, git=self.ctx.git)

        tracks_remote = workspace.exists() and self.ctx.git.ref_exists(
            self._remote_ref(commit_ish), cwd=workspace.path
        )
        if not tracks_remote:
            return self.sync_to(repo_url, commit_ish, submodules)

        result = self.sync_to(repo_url, f"{self.ctx.remote}/{commit_ish}", submodules)
        self._git(["checkout", "-B", commit_ish], workspace.path)
        result.branch = commit_ish
        return result

    def pull_in_branch(
        self,
        path: Path,
        branch: str,
        submodules: SubmoduleSelector | None = None,
    ) -> SyncResult:
        """Reset the workspace at ``path`` to ``origin/<branch>`` and check that branch out."""
        workspace = Workspace.at(path, git=self.ctx.git)
        remote_branch = f"{self.ctx.remote}/{branch}"

        self.fetcher.fetch(workspace.path)
        self.checkout.destructive_checkout(workspace.path, remote_branch)
        self._git(["checkout", "-B", branch], workspace.path)
        self._lfs_pull(workspace)
        materialized = self.submodules.materialize(workspace.path, submodules)

        result = SyncResult(
            path=str(workspace.path),
            revision=remote_branch,
            head=workspace.head_commit,
            branch=branch,
            submodules=materialized,
        )
        logger.info("Pulled %s", result.summary())
        return result

    def pull(self, path: Path, submodules: SubmoduleSelector | None = None) -> SyncResult:
        """pull_in_branch for the trunk branch."""
        return self.pull_in_branch(path, self.ctx.trunk, submodules)

    def _rebase_onto_remote(self, path: Path, branch: str) -> bool:
        if not self.ctx.git.ref_exists(self._remote_ref(branch), cwd=path):
            return False

        onto = f"{self.ctx.remote}/{branch}"
        logger.info("Rebasing %s onto %s", path, onto)
        try:
            self._git(["rebase", onto], path)
        except OperationTimeout:
            self.ctx.git.run(["rebase", "--abort"], cwd=path, check=False)
            raise
        except GitError as e:
            self.ctx.git.run(["rebase", "--abort"], cwd=path, check=False)
            raise MergeConflict("rebase", onto, path=path) from e
        return True

    def _lfs_pull(self, workspace: Workspace) -> None:
        if not workspace.uses_lfs:
            return
        with self.ctx.shared_lock():
            logger.info("Pulling large objects in %s", workspace.path)
            self._git(["lfs", "pull"], workspace.path, timeout=self.ctx.config.timeouts.lfs)
