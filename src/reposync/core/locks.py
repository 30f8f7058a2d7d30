"""
Named, timed mutual exclusion over lock files in the shared root.

One lock per shared root serializes every remote fetch, mirror clone and
large-object transfer for *all* repositories under that root: the object
store on disk is the shared resource, not any one repository.

Lock objects are cached per name, so nested acquisition from the same
process is re-entrant (filelock keeps a per-object counter) rather than a
self-deadlock.

Example:
    >>> locks = LockManager(Path("/mnt/jenkins/repositories"), default_wait=7200)
    >>> with locks.acquire("repositories"):
    ...     pass  # git fetch here
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout

from reposync.core.exceptions import LockTimeout

logger = logging.getLogger(__name__)


class LockManager:
    """
    Hands out file-backed lock guards scoped to one directory.

    Attributes:
        lock_dir: Directory holding the ``<name>.lock`` files
        default_wait: Seconds to wait when no budget is given
    """

    def __init__(self, lock_dir: Path, default_wait: float) -> None:
        self.lock_dir = lock_dir
        self.default_wait = default_wait
        self._locks: dict[str, FileLock] = {}

    def lock_path(self, lock_name: str) -> Path:
        return self.lock_dir / f"{lock_name}.lock"

    def _get_lock(self, lock_name: str) -> FileLock:
        if lock_name not in self._locks:
            self.lock_dir.mkdir(parents=True, exist_ok=True)
            self._locks[lock_name] = FileLock(str(self.lock_path(lock_name)))
        return self._locks[lock_name]

    @contextmanager
    def acquire(self, lock_name: str, wait_budget: float | None = None) -> Iterator[None]:
        """
        Hold the named lock for the duration of the with-block.

        Args:
            lock_name: Name of the lock (one file per name)
            wait_budget: Seconds to wait before giving up (defaults to default_wait)

        Raises:
            LockTimeout: If the lock is not acquired within the budget
        """
        budget = self.default_wait if wait_budget is None else wait_budget
        lock = self._get_lock(lock_name)
        path = self.lock_path(lock_name)

        logger.debug("Waiting up to %gs for lock %s", budget, path)
        started = time.monotonic()
        try:
            lock.acquire(timeout=budget)
        except Timeout as e:
            raise LockTimeout(lock_name, path, budget) from e

        waited = time.monotonic() - started
        if waited >= 1:
            logger.info("Acquired lock %s after %.1fs", path, waited)
        try:
            yield
        finally:
            lock.release()
            logger.debug("Released lock %s", path)
