"""
Tests for the destructive checkout engine.
"""

from __future__ import annotations

import pytest

from reposync.core.exceptions import InvalidRevision
from reposync.core.sync import CheckoutEngine


def _make_dirty(path):
    (path / "README.md").write_text("local edit\n")
    (path / "scratch.txt").write_text("untracked\n")
    (path / "build").mkdir()
    (path / "build" / "out.o").write_text("object\n")


class TestForceReset:
    def test_clean_workspace_is_untouched(self, ctx, workspace):
        assert CheckoutEngine(ctx).force_reset(workspace) is False

    def test_discards_tracked_and_untracked_changes(self, ctx, workspace, git):
        _make_dirty(workspace)

        assert CheckoutEngine(ctx).force_reset(workspace) is True

        assert git(workspace, "status", "--porcelain") == ""
        assert not (workspace / "scratch.txt").exists()
        assert not (workspace / "build").exists()
        assert (workspace / "README.md").read_text() == "# webapp\n"


class TestDestructiveCheckout:
    def test_dirty_workspace_ends_clean(self, ctx, workspace, upstream, git):
        """Whatever the starting dirtiness, nothing uncommitted survives."""
        new_head = upstream.commit("app.py", "v1\n")
        git(workspace, "fetch", "-q", "origin")
        _make_dirty(workspace)
        git(workspace, "add", "scratch.txt")

        head = CheckoutEngine(ctx).destructive_checkout(workspace, "origin/master")

        assert head == new_head
        assert git(workspace, "status", "--porcelain") == ""
        assert not (workspace / "scratch.txt").exists()

    def test_remote_only_branch(self, ctx, workspace, upstream, git):
        sha = upstream.branch("deploy-1")
        git(workspace, "fetch", "-q", "origin")

        head = CheckoutEngine(ctx).destructive_checkout(workspace, "deploy-1")

        assert head == sha
        assert git(workspace, "symbolic-ref", "--short", "HEAD") == "deploy-1"

    def test_invalid_revision(self, ctx, workspace, git):
        before = git(workspace, "rev-parse", "HEAD")

        with pytest.raises(InvalidRevision) as exc_info:
            CheckoutEngine(ctx).destructive_checkout(workspace, "no-such-branch")

        assert exc_info.value.revision == "no-such-branch"
        assert exc_info.value.context["path"] == str(workspace)
        assert git(workspace, "rev-parse", "HEAD") == before
