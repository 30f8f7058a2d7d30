"""
Tests for the deploy-branch merge protocol.

Tests cover:
- Successful merge and push
- Fast path when the target already contains the source
- Conflicts roll the target back to its pre-call commit
- A concurrent push to the target is detected and rolled back
- Trunk, unresolvable and detached targets are rejected
"""

from __future__ import annotations

import pytest

from reposync.core.deploy import DeployMerger, InvalidTargetReason, MergeStatus
from reposync.core.exceptions import InvalidRevision


class TestMergeSuccess:
    def test_merges_and_pushes(self, ctx, upstream, workspace, git):
        upstream.branch("deploy-1")
        start = upstream.commit("deploy.py", "deploy only\n", branch="deploy-1")
        upstream.commit("app.py", "trunk work\n")

        result = DeployMerger(ctx).merge_from_trunk(workspace, "deploy-1")

        assert result.status == MergeStatus.SUCCESS
        assert result.merged
        assert result.start_commit == start
        assert result.head == upstream.head("deploy-1")
        assert git(workspace, "symbolic-ref", "--short", "HEAD") == "deploy-1"
        # A real merge commit with both parents
        parents = git(workspace, "rev-list", "--parents", "-n", "1", "HEAD").split()[1:]
        assert parents == [start, upstream.head("master")]

    def test_merge_branch_into_other_source(self, ctx, upstream, workspace):
        upstream.branch("deploy-1")
        upstream.branch("hotfix")
        upstream.commit("fix.py", "fixed\n", branch="hotfix")

        result = DeployMerger(ctx).merge_branch_into(workspace, "deploy-1", "hotfix")

        assert result.status == MergeStatus.SUCCESS
        assert result.merged
        assert result.source == "hotfix"

    def test_fast_path_makes_no_commit(self, ctx, upstream, workspace, git):
        """A target that already contains trunk is left alone."""
        upstream.commit("app.py", "trunk work\n")
        start = upstream.branch("deploy-1")
        upstream.commit("deploy.py", "deploy only\n", branch="deploy-1")
        deploy_head = upstream.head("deploy-1")

        result = DeployMerger(ctx).merge_from_trunk(workspace, "deploy-1")

        assert result.status == MergeStatus.SUCCESS
        assert not result.merged
        assert result.head == deploy_head != start
        assert upstream.head("deploy-1") == deploy_head
        assert git(workspace, "rev-parse", "HEAD") == deploy_head

    def test_stale_local_target_is_reset_to_remote(self, ctx, upstream, workspace, git):
        upstream.branch("deploy-1")
        DeployMerger(ctx).merge_from_trunk(workspace, "deploy-1")
        # Local-only commit on deploy-1 that never reached the remote
        (workspace / "local.txt").write_text("local\n")
        git(workspace, "add", "local.txt")
        git(workspace, "commit", "-q", "-m", "Local only")
        upstream.commit("app.py", "trunk work\n")

        result = DeployMerger(ctx).merge_from_trunk(workspace, "deploy-1")

        assert result.status == MergeStatus.SUCCESS
        assert not (workspace / "local.txt").exists()


class TestMergeFailures:
    def test_conflict_restores_pre_call_commit(self, ctx, upstream, workspace, git):
        start = upstream.branch("deploy-1")
        upstream.commit("README.md", "deploy version\n", branch="deploy-1")
        deploy_head = upstream.head("deploy-1")
        upstream.commit("README.md", "trunk version\n")

        result = DeployMerger(ctx).merge_from_trunk(workspace, "deploy-1")

        assert result.status == MergeStatus.CONFLICT
        assert result.start_commit == deploy_head != start
        assert git(workspace, "rev-parse", "HEAD") == deploy_head
        assert git(workspace, "status", "--porcelain") == ""
        assert not (workspace / ".git" / "MERGE_HEAD").exists()
        assert upstream.head("deploy-1") == deploy_head

    def test_concurrent_push_is_rolled_back(self, ctx, upstream, workspace, git, monkeypatch):
        """Someone pushes deploy-1 between our checkout and our push."""
        start = upstream.branch("deploy-1")
        upstream.commit("app.py", "trunk work\n")
        merger = DeployMerger(ctx)
        real_fetch_branch = merger.fetcher.fetch_branch
        racing = {}

        def fetch_then_race(path, branch):
            real_fetch_branch(path, branch)
            racing["sha"] = upstream.commit("other.py", "someone else\n", branch="deploy-1")

        monkeypatch.setattr(merger.fetcher, "fetch_branch", fetch_then_race)

        result = merger.merge_from_trunk(workspace, "deploy-1")

        assert result.status == MergeStatus.RACE
        assert result.start_commit == start
        assert git(workspace, "rev-parse", "HEAD") == start
        assert git(workspace, "status", "--porcelain") == ""
        # The other agent's push survives
        assert upstream.head("deploy-1") == racing["sha"]

    def test_trunk_target_rejected_before_mutation(self, ctx, upstream, workspace, git):
        before = git(workspace, "rev-parse", "HEAD")
        (workspace / "wip.txt").write_text("work in progress\n")
        upstream.commit("app.py", "trunk work\n")

        result = DeployMerger(ctx).merge_branch_into(workspace, "master", "master")

        assert result.status == MergeStatus.INVALID_TARGET
        assert result.reason == InvalidTargetReason.TRUNK
        assert git(workspace, "rev-parse", "HEAD") == before
        assert (workspace / "wip.txt").exists()
        assert git(workspace, "rev-parse", "origin/master") == before

    def test_unresolvable_target(self, ctx, upstream, workspace):
        result = DeployMerger(ctx).merge_from_trunk(workspace, "deploy-404")

        assert result.status == MergeStatus.INVALID_TARGET
        assert result.reason == InvalidTargetReason.UNRESOLVABLE

    def test_detached_target_is_not_a_branch(self, ctx, upstream, workspace, git):
        tagged = upstream.tag("release-1")
        upstream.commit("app.py", "trunk work\n")

        result = DeployMerger(ctx).merge_from_trunk(workspace, "release-1")

        assert result.status == MergeStatus.INVALID_TARGET
        assert result.reason == InvalidTargetReason.NOT_A_BRANCH
        assert git(workspace, "rev-parse", "HEAD") == tagged

    def test_detached_target_containing_source_takes_fast_path(self, ctx, upstream, workspace):
        """Fast path is checked before the branch check."""
        upstream.commit("app.py", "trunk work\n")
        upstream.tag("release-2")

        result = DeployMerger(ctx).merge_from_trunk(workspace, "release-2")

        assert result.status == MergeStatus.SUCCESS
        assert not result.merged

    def test_missing_source_branch(self, ctx, upstream, workspace):
        upstream.branch("deploy-1")

        with pytest.raises(InvalidRevision):
            DeployMerger(ctx).merge_branch_into(workspace, "deploy-1", "no-such-branch")
