"""
Subprocess git runner with per-call timeouts.

Every git command reposync issues goes through GitRunner, so each one
carries an explicit timeout and failures surface uniformly as GitError
(non-zero exit) or OperationTimeout (budget exceeded). A timeout is treated
exactly like a failed process: nothing is resumed.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from reposync.core.exceptions import GitError, OperationTimeout

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 600.0


@dataclass
class GitResult:
    """
    Outcome of a single git invocation.

    Attributes:
        command: Full argv that was executed
        returncode: Process exit status
        stdout: Captured standard output
        stderr: Captured standard error
    """

    command: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class GitRunner:
    """
    Runs git commands in a directory with a bounded timeout.

    Example:
        >>> runner = GitRunner()
        >>> head = runner.output(["rev-parse", "HEAD"], cwd=Path("."))
        >>> runner.succeeds(["rev-parse", "--verify", "--quiet", "nope"], cwd=Path("."))
        False
    """

    def __init__(self, git: str = "git", default_timeout: float = DEFAULT_TIMEOUT) -> None:
        self.git = git
        self.default_timeout = default_timeout

    def _env(self) -> dict[str, str]:
        env = dict(os.environ)
        # Never block on a credential prompt; a hung prompt would only end at the timeout.
        env["GIT_TERMINAL_PROMPT"] = "0"
        return env

    def run(
        self,
        args: list[str],
        *,
        cwd: Path,
        timeout: float | None = None,
        check: bool = True,
    ) -> GitResult:
        """
        Run a git command and return its result.

        Args:
            args: Git command arguments (without "git" prefix)
            cwd: Directory to run in
            timeout: Seconds before the call is killed (defaults to default_timeout)
            check: Whether to raise on non-zero exit code

        Returns:
            GitResult with captured output

        Raises:
            OperationTimeout: If the command exceeds its timeout
            GitError: If the command fails and check=True, or git is missing
        """
        cmd = [self.git, *args]
        budget = self.default_timeout if timeout is None else timeout

        logger.debug("Running git command in %s: %s", cwd, " ".join(cmd))

        try:
            proc = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=budget,
                env=self._env(),
            )
        except subprocess.TimeoutExpired as e:
            raise OperationTimeout(
                f"Git command timed out after {budget:g}s: {' '.join(cmd)}",
                command=cmd,
                timeout=budget,
            ) from e
        except FileNotFoundError as e:
            raise GitError(f"{self.git} not found in PATH", command=cmd) from e

        result = GitResult(
            command=cmd,
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )

        if check and not result.ok:
            raise GitError(
                f"Git command failed: {' '.join(cmd)}",
                command=cmd,
                stderr=result.stderr.strip(),
                path=str(cwd),
            )

        return result

    def output(self, args: list[str], *, cwd: Path, timeout: float | None = None) -> str:
        """Run a git command and return its stripped stdout."""
        return self.run(args, cwd=cwd, timeout=timeout).stdout.strip()

    def succeeds(self, args: list[str], *, cwd: Path, timeout: float | None = None) -> bool:
        """Run a git command and report whether it exited zero."""
        return self.run(args, cwd=cwd, timeout=timeout, check=False).ok

    def rev_parse(self, revision: str, *, cwd: Path) -> str | None:
        """Resolve a revision to a commit SHA, or None if it does not resolve."""
        result = self.run(
            ["rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}"],
            cwd=cwd,
            check=False,
        )
        if not result.ok:
            return None
        return result.stdout.strip() or None

    def ref_exists(self, ref: str, *, cwd: Path) -> bool:
        """Check if a fully qualified ref (e.g. refs/remotes/origin/main) exists."""
        return self.succeeds(["show-ref", "--verify", "--quiet", ref], cwd=cwd)
