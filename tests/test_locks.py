"""
Tests for the shared-root lock manager.
"""

from pathlib import Path

import pytest

from reposync.core.exceptions import LockTimeout
from reposync.core.locks import LockManager


@pytest.fixture
def lock_dir(tmp_path: Path) -> Path:
    return tmp_path / "repositories"


class TestLockManager:
    def test_lock_file_lives_in_lock_dir(self, lock_dir):
        manager = LockManager(lock_dir, default_wait=1)

        with manager.acquire("repositories"):
            assert manager.lock_path("repositories").exists()

        assert manager.lock_path("repositories") == lock_dir / "repositories.lock"

    def test_nested_acquire_is_reentrant(self, lock_dir):
        """Holding the lock and asking again from the same manager does not deadlock."""
        manager = LockManager(lock_dir, default_wait=0.2)

        with manager.acquire("repositories"):
            with manager.acquire("repositories"):
                pass

    def test_contended_lock_times_out(self, lock_dir):
        """A second holder (another agent) fails after its wait budget."""
        holder = LockManager(lock_dir, default_wait=1)
        waiter = LockManager(lock_dir, default_wait=1)

        with holder.acquire("repositories"):
            with pytest.raises(LockTimeout) as exc_info:
                with waiter.acquire("repositories", wait_budget=0.1):
                    pass

        error = exc_info.value
        assert error.lock_name == "repositories"
        assert error.waited == 0.1
        assert error.context["lock"] == "repositories"

    def test_released_on_error(self, lock_dir):
        """The guard releases on every exit path, including exceptions."""
        first = LockManager(lock_dir, default_wait=1)
        second = LockManager(lock_dir, default_wait=1)

        with pytest.raises(RuntimeError):
            with first.acquire("repositories"):
                raise RuntimeError("git blew up")

        with second.acquire("repositories", wait_budget=0.1):
            pass

    def test_different_names_do_not_contend(self, lock_dir):
        first = LockManager(lock_dir, default_wait=1)
        second = LockManager(lock_dir, default_wait=1)

        with first.acquire("repositories"):
            with second.acquire("other", wait_budget=0.1):
                pass
