"""
Pytest configuration and shared fixtures.

Provides isolated git environments, bare "upstream" repositories standing in
for the remote, and a SharedRootContext pointed at temporary roots.
"""

import subprocess
from dataclasses import dataclass
from pathlib import Path

import pytest

from reposync.core.alerts import RecordingAlertSink
from reposync.core.config import clear_cache
from reposync.core.config.models import ReposyncConfig, SubmoduleConfig
from reposync.core.context import SharedRootContext
from reposync.core.sync import SyncOrchestrator

# ==============================================================================
# Git helpers
# ==============================================================================


def run_git(cwd: Path, *args: str) -> str:
    """Run git in cwd and return stripped stdout, failing the test on error."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@dataclass
class Upstream:
    """
    A bare repository acting as the remote, plus a seed clone used to
    push new history into it.
    """

    bare: Path
    seed: Path

    @property
    def url(self) -> str:
        return str(self.bare)

    def commit(self, filename: str, content: str, branch: str = "master") -> str:
        """Commit a file on ``branch`` and push it. Returns the new sha."""
        run_git(self.seed, "checkout", "-q", branch)
        path = self.seed / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        run_git(self.seed, "add", "-A")
        run_git(self.seed, "commit", "-q", "-m", f"Update {filename} on {branch}")
        run_git(self.seed, "push", "-q", "origin", branch)
        return run_git(self.seed, "rev-parse", "HEAD")

    def branch(self, name: str, start: str = "master") -> str:
        """Create and push a branch. Returns its sha."""
        run_git(self.seed, "branch", name, start)
        run_git(self.seed, "push", "-q", "origin", name)
        return run_git(self.seed, "rev-parse", name)

    def tag(self, name: str, start: str = "master") -> str:
        run_git(self.seed, "tag", name, start)
        run_git(self.seed, "push", "-q", "origin", name)
        return run_git(self.seed, "rev-parse", f"{name}^{{commit}}")

    def head(self, branch: str = "master") -> str:
        return run_git(self.bare, "rev-parse", branch)


def make_upstream(root: Path, name: str, files: dict[str, str] | None = None) -> Upstream:
    """Create ``root/remotes/<name>.git`` with one initial commit."""
    seed = root / "seeds" / name
    seed.mkdir(parents=True)
    run_git(seed, "init", "-q")
    for filename, content in (files or {"README.md": f"# {name}\n"}).items():
        (seed / filename).write_text(content)
    run_git(seed, "add", "-A")
    run_git(seed, "commit", "-q", "-m", "Initial commit")

    bare = root / "remotes" / f"{name}.git"
    bare.parent.mkdir(parents=True, exist_ok=True)
    run_git(root, "clone", "-q", "--bare", str(seed), str(bare))
    run_git(seed, "remote", "add", "origin", str(bare))
    run_git(seed, "fetch", "-q", "origin")
    return Upstream(bare=bare, seed=seed)


# ==============================================================================
# Environment
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """
    Keep git and reposync away from the developer's own configuration.

    File-transport submodules are allowed and the default branch is pinned,
    so tests behave the same on every git version that supports them.
    """
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_COUNT", "2")
    monkeypatch.setenv("GIT_CONFIG_KEY_0", "protocol.file.allow")
    monkeypatch.setenv("GIT_CONFIG_VALUE_0", "always")
    monkeypatch.setenv("GIT_CONFIG_KEY_1", "init.defaultBranch")
    monkeypatch.setenv("GIT_CONFIG_VALUE_1", "master")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    for var in (
        "REPOSYNC_REPOS_ROOT",
        "REPOSYNC_WORKSPACE_ROOT",
        "REPOSYNC_TRUNK",
        "REPOSYNC_LOCK_WAIT",
        "REPOSYNC_SLACK_CHANNEL",
        "REPOSYNC_ALERT_COMMAND",
        "REPOSYNC_WORKDIR_SUBMODULES",
    ):
        monkeypatch.delenv(var, raising=False)
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Repository Fixtures
# ==============================================================================


@pytest.fixture
def git():
    """The run_git helper, for tests that prefer a fixture."""
    return run_git


@pytest.fixture
def upstream(tmp_path) -> Upstream:
    """A remote repository named 'webapp' with one commit on master."""
    return make_upstream(tmp_path, "webapp")


@pytest.fixture
def media(tmp_path) -> Upstream:
    """A remote repository named 'media' whose .gitattributes routes *.bin through lfs."""
    return make_upstream(
        tmp_path,
        "media",
        {
            "README.md": "# media\n",
            ".gitattributes": "*.bin filter=lfs diff=lfs merge=lfs -text\n",
        },
    )


@pytest.fixture
def config(tmp_path) -> ReposyncConfig:
    """Configuration pointed at temporary mirror and workspace roots."""
    return ReposyncConfig(
        repos_root=tmp_path / "repositories",
        workspace_root=tmp_path / "work",
        lock_wait_seconds=5,
    )


@pytest.fixture
def alerts() -> RecordingAlertSink:
    return RecordingAlertSink()


@pytest.fixture
def ctx(config, alerts) -> SharedRootContext:
    return SharedRootContext.from_config(config, alerts=alerts)


@pytest.fixture
def workspace(ctx, upstream) -> Path:
    """A workspace for 'webapp' synced to master."""
    result = SyncOrchestrator(ctx).sync_to(upstream.url, "master")
    return Path(result.path)


@pytest.fixture
def super_upstream(tmp_path) -> tuple[Upstream, Upstream]:
    """
    A 'platform' repository whose master has 'libfoo' as a submodule at
    third_party/libfoo. Returns (platform, libfoo).
    """
    lib = make_upstream(tmp_path, "libfoo", {"foo.py": "VALUE = 1\n"})
    platform = make_upstream(tmp_path, "platform")
    run_git(platform.seed, "submodule", "add", "-q", lib.url, "third_party/libfoo")
    run_git(platform.seed, "commit", "-q", "-m", "Add libfoo")
    run_git(platform.seed, "push", "-q", "origin", "master")
    return platform, lib


@pytest.fixture
def linked_ctx(config, alerts) -> SharedRootContext:
    """Context whose allow-list links third_party/libfoo from a shared mirror."""
    linked = config.model_copy(
        update={"submodules": SubmoduleConfig(workdir_linked=["third_party/libfoo"])}
    )
    return SharedRootContext.from_config(linked, alerts=alerts)
