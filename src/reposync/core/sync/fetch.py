"""
Serialized, timeout-bounded retrieval of remote history.

All network traffic that writes into a shared object store runs under the
shared-root lock. Tag pruning happens first and is best-effort: a failure
there never aborts the fetch that follows.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from reposync.core.context import SharedRootContext
from reposync.core.exceptions import GitError

logger = logging.getLogger(__name__)


class FetchCoordinator:
    """
    Fetches into mirrors and workspaces on behalf of every other component.

    Example:
        >>> fetcher = FetchCoordinator(ctx)
        >>> fetcher.ensure_mirror("git@github.com:Khan/webapp", ctx.mirror_path("webapp"))
        >>> fetcher.fetch(ctx.workspace_path("webapp"))
    """

    def __init__(self, ctx: SharedRootContext) -> None:
        self.ctx = ctx

    @property
    def _timeouts(self):
        return self.ctx.config.timeouts

    def prune_tags(self, path: Path) -> bool:
        """
        Drop local tags that no longer exist upstream.

        Best-effort: failures and timeouts are logged and reported as False.
        """
        try:
            result = self.ctx.git.run(
                ["fetch", "--prune", self.ctx.remote, "+refs/tags/*:refs/tags/*"],
                cwd=path,
                timeout=self._timeouts.prune_tags,
                check=False,
            )
        except GitError as e:
            logger.warning("Tag pruning in %s failed, continuing: %s", path, e)
            return False

        if not result.ok:
            logger.warning(
                "Tag pruning in %s failed, continuing: %s", path, result.stderr.strip()
            )
            return False
        return True

    def fetch(self, path: Path) -> None:
        """
        Fetch tags and history from the remote into ``path``.

        Idempotent: with no new upstream history this changes nothing.

        Raises:
            LockTimeout: If the shared lock is not acquired in time
            OperationTimeout: If the fetch exceeds its budget
            GitError: If the fetch fails
        """
        self.prune_tags(path)
        with self.ctx.shared_lock():
            logger.info("Fetching %s in %s", self.ctx.remote, path)
            self.ctx.git.run(
                ["fetch", "--tags", "--progress", self.ctx.remote],
                cwd=path,
                timeout=self._timeouts.fetch,
            )

    def fetch_branch(self, path: Path, branch: str) -> None:
        """Explicitly refresh ``<remote>/<branch>`` from the remote."""
        remote = self.ctx.remote
        with self.ctx.shared_lock():
            logger.info("Fetching branch %s/%s in %s", remote, branch, path)
            self.ctx.git.run(
                ["fetch", remote, f"+refs/heads/{branch}:refs/remotes/{remote}/{branch}"],
                cwd=path,
                timeout=self._timeouts.fetch,
            )

    def ensure_mirror(self, url: str, mirror: Path) -> bool:
        """
        Make sure a canonical mirror of ``url`` exists at ``mirror``.

        An existing mirror is fetched; a missing one is cloned. The existence
        check happens under the lock, so two agents racing to create the same
        mirror clone it once.

        Returns:
            True if the mirror was freshly cloned
        """
        with self.ctx.shared_lock():
            if (mirror / ".git").is_dir():
                self.fetch(mirror)
                return False
            self._clone(url, mirror)
            return True

    def _clone(self, url: str, mirror: Path) -> None:
        # Clone beside the destination and rename into place, so an
        # interrupted clone never looks like a mirror.
        mirror.parent.mkdir(parents=True, exist_ok=True)
        staging = mirror.with_name(f".{mirror.name}.clone-{os.getpid()}")
        if staging.exists():
            shutil.rmtree(staging)

        logger.info("Cloning %s into mirror %s", url, mirror)
        try:
            self.ctx.git.run(
                ["clone", "--no-checkout", url, str(staging)],
                cwd=mirror.parent,
                timeout=self._timeouts.clone,
            )
        except GitError:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        if mirror.exists():
            # Leftover empty directory from an earlier aborted attempt.
            mirror.rmdir()
        os.rename(staging, mirror)
