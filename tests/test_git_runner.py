"""
Tests for the subprocess git runner and the workspace inspector.
"""

from pathlib import Path

import pytest

from reposync.core.exceptions import GitError, OperationTimeout, SyncError
from reposync.core.git import GitRunner
from reposync.core.workspace import Workspace


@pytest.fixture
def repo(tmp_path: Path, git) -> Path:
    path = tmp_path / "repo"
    path.mkdir()
    git(path, "init", "-q")
    (path / "README.md").write_text("# repo\n")
    git(path, "add", "README.md")
    git(path, "commit", "-q", "-m", "Initial commit")
    return path


class TestGitRunner:
    def test_output(self, repo, git):
        runner = GitRunner()
        assert runner.output(["rev-parse", "HEAD"], cwd=repo) == git(repo, "rev-parse", "HEAD")

    def test_failure_raises_git_error(self, repo):
        with pytest.raises(GitError) as exc_info:
            GitRunner().run(["checkout", "no-such-branch"], cwd=repo)

        error = exc_info.value
        assert error.command[:2] == ["git", "checkout"]
        assert "no-such-branch" in error.stderr
        assert error.context["path"] == str(repo)

    def test_check_false_returns_result(self, repo):
        result = GitRunner().run(["checkout", "no-such-branch"], cwd=repo, check=False)
        assert not result.ok
        assert result.returncode != 0

    def test_timeout_raises_operation_timeout(self, repo):
        # Any binary will do; the runner only cares about the clock.
        runner = GitRunner(git="sleep")

        with pytest.raises(OperationTimeout) as exc_info:
            runner.run(["5"], cwd=repo, timeout=0.2)

        assert exc_info.value.timeout == 0.2
        assert isinstance(exc_info.value, GitError)

    def test_missing_binary(self, repo):
        with pytest.raises(GitError, match="not found"):
            GitRunner(git="git-does-not-exist").run(["status"], cwd=repo)

    def test_rev_parse(self, repo, git):
        runner = GitRunner()
        assert runner.rev_parse("HEAD", cwd=repo) == git(repo, "rev-parse", "HEAD")
        assert runner.rev_parse("nope", cwd=repo) is None

    def test_ref_exists(self, repo):
        runner = GitRunner()
        assert runner.ref_exists("refs/heads/master", cwd=repo)
        assert not runner.ref_exists("refs/remotes/origin/master", cwd=repo)

    def test_no_terminal_prompt(self, repo):
        env = GitRunner()._env()
        assert env["GIT_TERMINAL_PROMPT"] == "0"


class TestWorkspace:
    def test_inspection(self, repo, git):
        ws = Workspace.at(repo)

        assert ws.exists()
        assert ws.repo_name == "repo"
        assert ws.head_commit == git(repo, "rev-parse", "HEAD")
        assert ws.current_branch == "master"
        assert not ws.is_dirty
        assert not ws.is_nested
        assert ws.superproject is None
        assert not ws.uses_lfs

    def test_detached_head(self, repo, git):
        git(repo, "checkout", "-q", "--detach")
        assert Workspace.at(repo).current_branch is None

    def test_dirty_and_lfs(self, repo):
        (repo / ".gitattributes").write_text("*.bin filter=lfs diff=lfs merge=lfs -text\n")
        ws = Workspace.at(repo)
        assert ws.is_dirty
        assert ws.uses_lfs

    def test_linked_workdir(self, ctx, workspace, upstream):
        """Refs symlinked into the mirror still resolve."""
        assert (workspace / ".git" / "refs").is_symlink()

        ws = Workspace.at(workspace, git=ctx.git)

        assert ws.head_commit == upstream.head()
        assert ws.current_branch == "master"
        assert not ws.is_dirty

    def test_not_a_repository(self, tmp_path):
        ws = Workspace.at(tmp_path)
        assert not ws.exists()
        with pytest.raises(SyncError, match="Not a git repository"):
            ws.head_commit
