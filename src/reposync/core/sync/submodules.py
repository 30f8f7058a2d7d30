"""
Submodule materialization.

Two strategies exist. Ordinary submodules get the standard recursive
``git submodule update --init`` into the workspace. Workdir-linked
submodules (large, long-lived ones named in configuration) are instead
linked to a canonical mirror under the shared root, so their history is
never copied into a workspace.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from reposync.core.context import SharedRootContext
from reposync.core.exceptions import SyncError
from reposync.core.sync.fetch import FetchCoordinator
from reposync.core.sync.models import MaterializeResult
from reposync.core.sync.workdir import create_linked_workdir, is_linked_workdir
from reposync.core.workspace import Workspace

logger = logging.getLogger(__name__)

SKIP_SENTINEL = "none"


@dataclass(frozen=True)
class SubmoduleSelector:
    """
    Which submodules an operation should materialize.

    Attributes:
        paths: Path or prefix filters; empty means every submodule
        skip: True when no submodule should be touched
    """

    paths: tuple[str, ...] = ()
    skip: bool = False

    @classmethod
    def parse(cls, values: Iterable[str] | None) -> SubmoduleSelector:
        """
        Build a selector from command-line style values.

        Example:
            >>> SubmoduleSelector.parse([]).selects("third_party/foo")
            True
            >>> SubmoduleSelector.parse(["none"]).skip
            True
            >>> SubmoduleSelector.parse(["third_party"]).selects("third_party/foo")
            True
        """
        cleaned = [v.strip().strip("/") for v in (values or []) if v and v.strip()]
        if SKIP_SENTINEL in cleaned:
            if len(cleaned) > 1:
                raise ValueError(f"'{SKIP_SENTINEL}' cannot be combined with submodule paths")
            return cls(skip=True)
        return cls(paths=tuple(cleaned))

    @classmethod
    def all(cls) -> SubmoduleSelector:
        return cls()

    def selects(self, path: str) -> bool:
        if self.skip:
            return False
        if not self.paths:
            return True
        return any(_is_prefix(p, path) or _is_prefix(path, p) for p in self.paths)


def _is_prefix(prefix: str, path: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


@dataclass
class SubmoduleRef:
    """A submodule as declared in .gitmodules."""

    name: str
    path: str
    url: str | None = None


@dataclass
class _Partition:
    linked: list[SubmoduleRef] = field(default_factory=list)
    ordinary: list[SubmoduleRef] = field(default_factory=list)


class SubmoduleMaterializer:
    """
    Brings a workspace's submodules in line with the checked-out revision.

    Example:
        >>> materializer = SubmoduleMaterializer(ctx)
        >>> result = materializer.materialize(workspace_path, SubmoduleSelector.all())
        >>> result.summary()
        'updated 3, linked 1'
    """

    def __init__(self, ctx: SharedRootContext, fetcher: FetchCoordinator | None = None) -> None:
        self.ctx = ctx
        self.fetcher = fetcher or FetchCoordinator(ctx)

    @property
    def _timeouts(self):
        return self.ctx.config.timeouts

    def list_submodules(self, path: Path) -> list[SubmoduleRef]:
        """Read submodule names, paths and urls from .gitmodules."""
        if not (path / ".gitmodules").exists():
            return []

        result = self.ctx.git.run(
            ["config", "-f", ".gitmodules", "--get-regexp", r"^submodule\..*\.(path|url)$"],
            cwd=path,
            check=False,
        )
        # Exit status 1 means no matching keys.
        if not result.ok:
            return []

        refs: dict[str, SubmoduleRef] = {}
        for line in result.stdout.splitlines():
            key, _, value = line.partition(" ")
            name, _, attr = key[len("submodule."):].rpartition(".")
            ref = refs.setdefault(name, SubmoduleRef(name=name, path=""))
            if attr == "path":
                ref.path = value.strip().strip("/")
            else:
                ref.url = value.strip()

        return [ref for ref in refs.values() if ref.path]

    def partition(self, submodules: list[SubmoduleRef], selector: SubmoduleSelector) -> _Partition:
        allow_list = set(self.ctx.config.submodules.workdir_linked)
        parts = _Partition()
        for ref in submodules:
            if not selector.selects(ref.path):
                continue
            if ref.path in allow_list:
                parts.linked.append(ref)
            else:
                parts.ordinary.append(ref)
        return parts

    def recorded_revision(self, path: Path, sub_path: str) -> str:
        """The commit the superproject's HEAD records for a submodule."""
        out = self.ctx.git.output(["ls-tree", "HEAD", "--", sub_path], cwd=path)
        fields = out.split()
        if len(fields) < 3 or fields[1] != "commit":
            raise SyncError(
                f"'{sub_path}' is not a submodule at HEAD", path=str(path), submodule=sub_path
            )
        return fields[2]

    def materialize(self, path: Path, selector: SubmoduleSelector | None = None) -> MaterializeResult:
        """
        Materialize the selected submodules of the workspace at ``path``.

        Nested repositories are skipped: they never materialize their own
        submodules through this path.

        Raises:
            LockTimeout: If the shared lock is needed and not acquired in time
            OperationTimeout: If a sync or update exceeds its budget
            GitError: If a git step fails
        """
        selector = selector or SubmoduleSelector.all()

        if selector.skip:
            logger.debug("Submodules skipped by selector in %s", path)
            return MaterializeResult(skipped=True)

        if Workspace.at(path, git=self.ctx.git).is_nested:
            logger.debug("%s is a nested repository, not materializing its submodules", path)
            return MaterializeResult(skipped=True)

        submodules = self.list_submodules(path)
        if not submodules:
            return MaterializeResult(skipped=True)

        parts = self.partition(submodules, selector)

        for ref in parts.linked:
            self._link(path, ref)

        ordinary = [ref.path for ref in parts.ordinary]
        linked = [ref.path for ref in parts.linked]

        if ordinary:
            logger.info("Syncing submodules in %s: %s", path, ", ".join(ordinary))
            self.ctx.git.run(
                ["submodule", "sync", "--recursive", "--", *ordinary],
                cwd=path,
                timeout=self._timeouts.submodule_sync,
            )

        if ordinary or linked:
            self.ctx.git.run(
                ["submodule", "update", "--init", "--recursive", "--", *ordinary, *linked],
                cwd=path,
                timeout=self._timeouts.submodule_update,
            )

        return MaterializeResult(updated=ordinary, linked=linked)

    def _link(self, path: Path, ref: SubmoduleRef) -> None:
        workdir = path / ref.path
        revision = self.recorded_revision(path, ref.path)
        mirror = self.ctx.mirror_path(PurePosixPath(ref.path).name)

        if is_linked_workdir(workdir):
            has_commit = self.ctx.git.succeeds(
                ["cat-file", "-e", f"{revision}^{{commit}}"], cwd=workdir
            )
            if not has_commit:
                logger.info("%s needs %s, fetching mirror %s", ref.path, revision[:12], mirror)
                self.fetcher.fetch(mirror)
            return

        # The canonical submodule is shared by every workspace, so registering
        # it and populating its mirror happen under the lock.
        with self.ctx.shared_lock():
            self.ctx.git.run(
                ["submodule", "init", "--", ref.path],
                cwd=path,
                timeout=self._timeouts.checkout,
            )
            url = self.ctx.git.output(
                ["config", "--get", f"submodule.{ref.name}.url"], cwd=path
            )
            self.fetcher.ensure_mirror(url, mirror)

        if workdir.exists():
            shutil.rmtree(workdir)

        logger.info("Linking submodule %s to mirror %s", ref.path, mirror)
        create_linked_workdir(
            self.ctx.git,
            mirror / ".git",
            workdir,
            revision,
            timeout=self._timeouts.checkout,
        )
