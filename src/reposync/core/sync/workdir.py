"""
Linked working directories ("git-new-workdir").

A linked workdir has its own .git directory (HEAD, index, modules) but
shares the object database, refs and config of a canonical mirror through
symlinks. Many workspaces can then check out different revisions while
history is stored, and fetched, exactly once.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from reposync.core.exceptions import SyncError
from reposync.core.git import GitRunner

logger = logging.getLogger(__name__)

# Entries of the mirror's git dir shared into every linked workdir.
SHARED_ENTRIES = (
    "config",
    "refs",
    "logs/refs",
    "objects",
    "info",
    "hooks",
    "packed-refs",
    "remotes",
    "rr-cache",
    "svn",
)


def is_linked_workdir(path: Path) -> bool:
    """True when ``path`` is a working tree whose objects come from a mirror."""
    return (path / ".git" / "objects").is_symlink()


def create_linked_workdir(
    git: GitRunner,
    mirror_git_dir: Path,
    dest: Path,
    revision: str,
    timeout: float,
) -> None:
    """
    Create ``dest`` as a linked workdir of ``mirror_git_dir`` at ``revision``.

    Args:
        git: Runner used for the final checkout
        mirror_git_dir: The mirror's git directory (``<mirror>/.git``)
        dest: Working tree to create; must not already hold a .git
        revision: Commit-ish to check out
        timeout: Budget for the checkout

    Raises:
        SyncError: If ``dest`` already has a .git or the mirror is missing
        GitError: If the checkout fails
    """
    mirror_git_dir = mirror_git_dir.resolve()
    if not (mirror_git_dir / "objects").is_dir():
        raise SyncError(f"Not a git directory: {mirror_git_dir}", path=str(mirror_git_dir))

    dotgit = dest / ".git"
    if os.path.lexists(dotgit):
        raise SyncError(f"Refusing to link over existing repository: {dest}", path=str(dest))

    dotgit.mkdir(parents=True)

    for name in SHARED_ENTRIES:
        src = mirror_git_dir / name
        dst = dotgit / name

        # A dangling link would be replaced by a private copy on first write.
        if not os.path.lexists(src):
            if name == "packed-refs":
                src.touch()
            else:
                src.mkdir(parents=True)

        dst.parent.mkdir(parents=True, exist_ok=True)
        os.symlink(src, dst)

    shutil.copy2(mirror_git_dir / "HEAD", dotgit / "HEAD")

    logger.info("Linked %s to mirror %s, checking out %s", dest, mirror_git_dir, revision)
    git.run(["checkout", "-f", revision], cwd=dest, timeout=timeout)
