"""
Destructive checkout: make a workspace exactly match a revision.

Workspaces are disposable build state. Any local modification, untracked
file or stale submodule content is thrown away, recursively, every time.
"""

from __future__ import annotations

import logging
from pathlib import Path

from reposync.core.context import SharedRootContext
from reposync.core.exceptions import InvalidRevision

logger = logging.getLogger(__name__)


class CheckoutEngine:
    """Resets and checks out workspaces with per-step timeouts."""

    def __init__(self, ctx: SharedRootContext) -> None:
        self.ctx = ctx

    def _git(self, args: list[str], path: Path) -> None:
        self.ctx.git.run(args, cwd=path, timeout=self.ctx.config.timeouts.checkout)

    def is_dirty(self, path: Path) -> bool:
        """True when the working tree has changes or untracked files."""
        status = self.ctx.git.output(
            ["status", "--porcelain"], cwd=path, timeout=self.ctx.config.timeouts.checkout
        )
        return bool(status)

    def force_reset(self, path: Path) -> bool:
        """
        Discard all local modifications, here and in every submodule.

        Returns:
            True if anything needed discarding
        """
        if not self.is_dirty(path):
            return False

        logger.info("Discarding local changes in %s", path)
        self._git(["reset", "--hard", "HEAD"], path)
        self._git(["submodule", "foreach", "--recursive", "git reset --hard HEAD"], path)
        # -ff also removes nested repositories left behind by removed submodules
        self._git(["clean", "-ffd"], path)
        self._git(["submodule", "foreach", "--recursive", "git clean -ffd"], path)
        return True

    def resolves(self, path: Path, revision: str) -> bool:
        """True when ``revision`` names a commit, directly or as a remote branch."""
        if self.ctx.git.rev_parse(revision, cwd=path):
            return True
        return self.ctx.git.ref_exists(f"refs/remotes/{self.ctx.remote}/{revision}", cwd=path)

    def destructive_checkout(self, path: Path, revision: str) -> str:
        """
        Check out ``revision`` in ``path``, discarding everything local.

        Args:
            path: Workspace working tree
            revision: Commit-ish; a bare remote branch name is accepted

        Returns:
            The commit now at HEAD

        Raises:
            InvalidRevision: If the revision does not resolve (workspace untouched
                apart from the initial reset)
            GitError: If a git step fails
        """
        self.force_reset(path)

        if not self.resolves(path, revision):
            raise InvalidRevision(revision, path=path)

        logger.info("Checking out %s in %s", revision, path)
        self._git(["checkout", "-f", revision], path)

        # Submodule pointers may have moved; their content is fixed up later.
        self.force_reset(path)
        return self.ctx.git.output(["rev-parse", "HEAD"], cwd=path)
