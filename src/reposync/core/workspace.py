"""
Read-only view of a build workspace.

A Workspace is a working directory bound to one canonical mirror. All
mutation goes through the git runner (with timeouts); this class only
answers questions about the current state.

HEAD and the current branch are read with git itself. A linked workdir's
refs are symlinks into the mirror, and GitPython refuses to follow ref
paths that leave the repository, so it is only used for queries that do
not resolve refs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from reposync.core.exceptions import SyncError
from reposync.core.git import GitRunner


@dataclass
class Workspace:
    """
    A git working directory.

    Attributes:
        path: Absolute path to the working tree
        repo_name: Logical repository name (the directory name by default)
        git: Runner used for ref queries
    """

    path: Path
    repo_name: str
    git: GitRunner = field(default_factory=GitRunner, repr=False)

    @classmethod
    def at(
        cls, path: Path | str, repo_name: str | None = None, git: GitRunner | None = None
    ) -> Workspace:
        resolved = Path(path).resolve()
        return cls(path=resolved, repo_name=repo_name or resolved.name, git=git or GitRunner())

    def exists(self) -> bool:
        return (self.path / ".git").exists()

    def _repo(self) -> Repo:
        try:
            return Repo(self.path)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise SyncError(f"Not a git repository: {self.path}", path=str(self.path)) from e

    def _require_repo(self) -> None:
        if not self.exists():
            raise SyncError(f"Not a git repository: {self.path}", path=str(self.path))

    @property
    def git_dir(self) -> Path:
        with self._repo() as repo:
            return Path(repo.git_dir).resolve()

    @property
    def head_commit(self) -> str:
        self._require_repo()
        return self.git.output(["rev-parse", "HEAD"], cwd=self.path)

    @property
    def current_branch(self) -> str | None:
        """Checked-out branch name, or None on a detached HEAD."""
        self._require_repo()
        result = self.git.run(
            ["symbolic-ref", "-q", "--short", "HEAD"], cwd=self.path, check=False
        )
        if not result.ok:
            return None
        return result.stdout.strip() or None

    @property
    def is_dirty(self) -> bool:
        """True when there are uncommitted or untracked changes."""
        with self._repo() as repo:
            return repo.is_dirty(untracked_files=True)

    @property
    def is_nested(self) -> bool:
        """True when this repository's git dir lives in a parent's modules store."""
        parts = self.git_dir.parts
        return any(
            parts[i] == ".git" and parts[i + 1] == "modules" for i in range(len(parts) - 1)
        )

    @property
    def superproject(self) -> Path | None:
        """Working tree of the repository this one is a submodule of, if any."""
        with self._repo() as repo:
            try:
                out = repo.git.rev_parse("--show-superproject-working-tree").strip()
            except GitCommandError:
                return None
        return Path(out).resolve() if out else None

    @property
    def uses_lfs(self) -> bool:
        """True when .gitattributes routes any path through the lfs filter."""
        attributes = self.path / ".gitattributes"
        if not attributes.exists():
            return False
        return "filter=lfs" in attributes.read_text(errors="replace")
