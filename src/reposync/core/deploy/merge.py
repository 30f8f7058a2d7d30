"""
Deploy-branch merge protocol.

merge_branch_into() merges a source branch (usually trunk) into a deploy
branch and pushes the result. It takes no lock across the merge: the push
relies on the remote rejecting non-fast-forward updates, and a rejection
rolls the deploy branch back to the commit it started from.

Outcomes are returned as a MergeResult. Nothing here alerts; see
reposync.core.deploy.reporting.
"""

from __future__ import annotations

import logging
from pathlib import Path

from reposync.core.context import SharedRootContext
from reposync.core.deploy.models import InvalidTargetReason, MergeResult, MergeStatus
from reposync.core.deploy.push import PushEngine, is_push_rejection
from reposync.core.exceptions import (
    GitError,
    InconsistentState,
    InvalidRevision,
    OperationTimeout,
)
from reposync.core.sync.checkout import CheckoutEngine
from reposync.core.sync.fetch import FetchCoordinator
from reposync.core.sync.submodules import SubmoduleMaterializer, SubmoduleSelector
from reposync.core.workspace import Workspace

logger = logging.getLogger(__name__)


class DeployMerger:
    """
    Merges branches into deploy targets.

    Example:
        >>> merger = DeployMerger(ctx)
        >>> result = merger.merge_from_trunk(Path("/work/webapp"), "deploy-1")
        >>> result.status
        <MergeStatus.SUCCESS: 'success'>
    """

    def __init__(self, ctx: SharedRootContext) -> None:
        self.ctx = ctx
        self.fetcher = FetchCoordinator(ctx)
        self.checkout = CheckoutEngine(ctx)
        self.submodules = SubmoduleMaterializer(ctx, self.fetcher)
        self.pusher = PushEngine(ctx, self.fetcher)

    def _git(self, args: list[str], path: Path):
        return self.ctx.git.run(args, cwd=path, timeout=self.ctx.config.timeouts.checkout)

    def _has_remote_branch(self, path: Path, branch: str) -> bool:
        return self.ctx.git.ref_exists(f"refs/remotes/{self.ctx.remote}/{branch}", cwd=path)

    def merge_from_trunk(
        self,
        path: Path,
        target_revision: str,
        submodules: SubmoduleSelector | None = None,
    ) -> MergeResult:
        """merge_branch_into with the trunk branch as the source."""
        return self.merge_branch_into(path, target_revision, self.ctx.trunk, submodules)

    def merge_branch_into(
        self,
        path: Path,
        target_revision: str,
        source_branch: str,
        submodules: SubmoduleSelector | None = None,
    ) -> MergeResult:
        """
        Merge ``source_branch`` into ``target_revision`` and push it.

        Args:
            path: Workspace working tree
            target_revision: Deploy branch to merge into; never the trunk
            source_branch: Branch to merge from
            submodules: Submodules to materialize after a successful merge

        Returns:
            MergeResult tagged SUCCESS, RACE, CONFLICT or INVALID_TARGET.
            On RACE and CONFLICT the target is back at ``start_commit``.

        Raises:
            InvalidRevision: If the source branch is not on the remote
            InconsistentState: If HEAD does not match the checked-out target
            GitError: If fetching, checkout or a non-race push failure occurs
        """
        path = Workspace.at(path, git=self.ctx.git).path
        outcome = dict(path=str(path), target=target_revision, source=source_branch)
        remote = self.ctx.remote

        if target_revision == self.ctx.trunk:
            logger.warning("Refusing to merge into trunk branch %s", target_revision)
            return MergeResult(
                status=MergeStatus.INVALID_TARGET, reason=InvalidTargetReason.TRUNK, **outcome
            )

        # Step 1: the local source branch matches its remote exactly.
        self.fetcher.fetch(path)
        if not self._has_remote_branch(path, source_branch):
            raise InvalidRevision(f"{remote}/{source_branch}", path=path)
        self.checkout.destructive_checkout(path, source_branch)
        self._git(["reset", "--hard", f"{remote}/{source_branch}"], path)
        source_tip = self.ctx.git.output(["rev-parse", "HEAD"], cwd=path)

        # Step 2: check out the target, at its remote state when it has one.
        if self._has_remote_branch(path, target_revision):
            self.fetcher.fetch_branch(path, target_revision)
            self.checkout.destructive_checkout(path, target_revision)
            self._git(["reset", "--hard", f"{remote}/{target_revision}"], path)
            expected = self.ctx.git.rev_parse(f"{remote}/{target_revision}", cwd=path)
        else:
            try:
                self.checkout.destructive_checkout(path, target_revision)
            except InvalidRevision:
                return MergeResult(
                    status=MergeStatus.INVALID_TARGET,
                    reason=InvalidTargetReason.UNRESOLVABLE,
                    **outcome,
                )
            expected = self.ctx.git.rev_parse(target_revision, cwd=path)

        # Step 3
        start = self.ctx.git.output(["rev-parse", "HEAD"], cwd=path)
        if start != expected:
            raise InconsistentState(
                f"HEAD is {start} after checking out '{target_revision}', expected {expected}",
                path=str(path),
                target=target_revision,
            )

        # Step 4: nothing to merge. Checked before the branch test below, so a
        # target that already contains the source succeeds even when detached.
        merge_base = self.ctx.git.run(
            ["merge-base", "HEAD", source_tip], cwd=path, check=False
        ).stdout.strip()
        if merge_base == source_tip:
            logger.info("%s already contains %s", target_revision, source_branch)
            return MergeResult(
                status=MergeStatus.SUCCESS, start_commit=start, head=start, **outcome
            )

        # Step 5: the push below needs a real remote branch.
        branch = Workspace.at(path, git=self.ctx.git).current_branch
        if branch is None or not self._has_remote_branch(path, target_revision):
            return MergeResult(
                status=MergeStatus.INVALID_TARGET,
                reason=InvalidTargetReason.NOT_A_BRANCH,
                start_commit=start,
                head=start,
                **outcome,
            )

        # Step 6
        logger.info("Merging %s into %s", source_branch, branch)
        try:
            self._git(["merge", "--no-edit", source_branch], path)
        except OperationTimeout:
            self._abort_merge(path, start)
            raise
        except GitError as e:
            self._abort_merge(path, start)
            return MergeResult(
                status=MergeStatus.CONFLICT,
                start_commit=start,
                head=start,
                detail=e.stderr,
                **outcome,
            )

        # Step 7: the remote rejects this if the branch moved since step 2.
        url = self.pusher.push_url(path)
        logger.info("Pushing merge of %s to %s", branch, url)
        try:
            pushed = self.ctx.git.run(
                ["push", url, branch],
                cwd=path,
                timeout=self.ctx.config.timeouts.push,
                check=False,
            )
        except OperationTimeout:
            self._reset(path, start)
            raise

        if not pushed.ok:
            self._reset(path, start)
            if is_push_rejection(pushed.stderr):
                return MergeResult(
                    status=MergeStatus.RACE,
                    start_commit=start,
                    head=start,
                    detail=pushed.stderr.strip(),
                    **outcome,
                )
            raise GitError(
                f"Push of merged '{branch}' failed",
                command=pushed.command,
                stderr=pushed.stderr.strip(),
                path=str(path),
            )

        # Step 8
        materialized = self.submodules.materialize(path, submodules)
        return MergeResult(
            status=MergeStatus.SUCCESS,
            merged=True,
            start_commit=start,
            head=self.ctx.git.output(["rev-parse", "HEAD"], cwd=path),
            submodules=materialized,
            **outcome,
        )

    def _abort_merge(self, path: Path, start: str) -> None:
        self.ctx.git.run(["merge", "--abort"], cwd=path, check=False)
        self._reset(path, start)

    def _reset(self, path: Path, start: str) -> None:
        logger.warning("Rolling %s back to %s", path, start[:12])
        self._git(["reset", "--hard", start], path)
