"""
Shared-root context passed explicitly into every engine component.

The canonical mirrors and the lock that guards them are process-wide shared
state. Instead of ambient globals, they live in one SharedRootContext value,
so tests can point the whole engine at an isolated temporary root.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

from reposync.core.alerts import AlertSink, LoggingAlertSink
from reposync.core.config.models import ReposyncConfig
from reposync.core.git import GitRunner
from reposync.core.locks import LockManager


def repo_name_from_url(repo: str) -> str:
    """
    Derive the logical repository name from a remote URL or path.

    Example:
        >>> repo_name_from_url("git@github.com:Khan/webapp.git")
        'webapp'
        >>> repo_name_from_url("https://github.com/Khan/webapp")
        'webapp'
    """
    path = urlparse(repo).path if "://" in repo else repo.rsplit(":", 1)[-1]
    name = path.rstrip("/").rsplit("/", 1)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not name:
        raise ValueError(f"Cannot derive a repository name from '{repo}'")
    return name


@dataclass
class SharedRootContext:
    """
    Resolved paths, lock handles and collaborators for one shared root.

    Attributes:
        config: Loaded configuration
        repos_root: Directory of canonical mirrors (absolute)
        workspace_root: Directory in which workspaces are created (absolute)
        locks: Lock manager scoped to repos_root
        git: Git runner used by every component
        alerts: Sink for fatal-condition alerts
    """

    config: ReposyncConfig
    repos_root: Path
    workspace_root: Path
    locks: LockManager
    git: GitRunner = field(default_factory=GitRunner)
    alerts: AlertSink = field(default_factory=LoggingAlertSink)

    @classmethod
    def from_config(
        cls,
        config: ReposyncConfig,
        alerts: AlertSink | None = None,
        git: GitRunner | None = None,
    ) -> SharedRootContext:
        repos_root = config.repos_root.resolve()
        return cls(
            config=config,
            repos_root=repos_root,
            workspace_root=config.workspace_root.resolve(),
            locks=LockManager(repos_root, default_wait=config.lock_wait_seconds),
            git=git or GitRunner(default_timeout=config.timeouts.checkout),
            alerts=alerts or LoggingAlertSink(),
        )

    @property
    def remote(self) -> str:
        return self.config.remote

    @property
    def trunk(self) -> str:
        return self.config.trunk_branch

    def mirror_path(self, repo_name: str) -> Path:
        """Location of the canonical mirror for a repository name."""
        return self.repos_root / repo_name

    def workspace_path(self, repo_name: str) -> Path:
        """Location of the workspace for a repository name."""
        return self.workspace_root / repo_name

    def shared_lock(self, wait_budget: float | None = None):
        """Guard for the single lock serializing network and lfs traffic."""
        return self.locks.acquire(self.config.lock_name, wait_budget)
