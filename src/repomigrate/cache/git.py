"""
Thin async wrapper around the ``git`` command line.

Only the handful of plumbing commands the repository cache needs are
exposed; every command runs non-interactively against an explicit
``--git-dir``.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from repomigrate.exceptions import GitCommandError, InfraError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GitResult:
    """Outcome of one git invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class GitRepository:
    """
    A bare git repository on the local filesystem.

    Args:
        git_dir: Path of the bare repository
        env: Extra environment variables for every git invocation
        git_binary: Name or path of the git executable
        timeout: Seconds before a git command is killed (None = no limit)
    """

    def __init__(
        self,
        git_dir: Path,
        *,
        env: Mapping[str, str] | None = None,
        git_binary: str = "git",
        timeout: float | None = None,
    ) -> None:
        self._git_dir = Path(git_dir)
        self._env = dict(env or {})
        self._git_binary = git_binary
        self._timeout = timeout

    @classmethod
    def new_bare(cls, git_dir: Path) -> GitRepository:
        """Factory used by the repository cache."""
        return cls(git_dir)

    @property
    def git_dir(self) -> Path:
        return self._git_dir

    async def init(self) -> None:
        """
        Create the bare repository.

        Raises:
            GitCommandError: If ``git init`` fails
        """
        result = await self._exec("init", "--bare", "-q", str(self._git_dir))
        if not result.ok:
            raise GitCommandError(list(result.args), result.returncode, result.stderr)

    async def run(self, *args: str, check: bool = True) -> GitResult:
        """
        Run a git command against this repository.

        Args:
            *args: git arguments, without ``--git-dir``
            check: Raise on a non-zero exit status

        Raises:
            GitCommandError: If ``check`` is set and git exits non-zero
            InfraError: If git cannot be started or times out
        """
        result = await self._exec(f"--git-dir={self._git_dir}", *args)
        if check and not result.ok:
            raise GitCommandError(list(args), result.returncode, result.stderr)
        return result

    async def is_valid(self) -> bool:
        """
        Check that the directory holds a usable repository.

        A half-initialized directory (interrupted ``init``, missing HEAD)
        is reported as invalid.

        Raises:
            InfraError: If git cannot be run, so validity is unknown
        """
        if not self._git_dir.is_dir():
            return False
        if not (await self.run("rev-parse", "--git-dir", check=False)).ok:
            return False
        # Fresh repositories have an unborn but symbolic HEAD
        if (await self.run("symbolic-ref", "-q", "HEAD", check=False)).ok:
            return True
        return (await self.run("rev-parse", "--verify", "-q", "HEAD", check=False)).ok

    async def set_config(self, key: str, value: str) -> None:
        await self.run("config", "--local", key, value)

    async def get_config(self, key: str) -> str | None:
        """Read a local config value, None when the key is unset."""
        result = await self.run("config", "--local", "--get", key, check=False)
        if result.returncode == 1:
            return None
        if not result.ok:
            raise GitCommandError(
                ["config", "--local", "--get", key], result.returncode, result.stderr
            )
        return result.stdout.strip()

    async def _exec(self, *args: str) -> GitResult:
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0", **self._env}
        try:
            proc = await asyncio.create_subprocess_exec(
                self._git_binary,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.DEVNULL,
                env=env,
            )
        except FileNotFoundError as e:
            raise InfraError(f"git executable not found: {self._git_binary}") from e
        except OSError as e:
            raise InfraError(f"Cannot run git: {e}", transient=True) from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except TimeoutError:
            proc.kill()
            await proc.wait()
            raise InfraError(
                f"git {' '.join(args)} timed out after {self._timeout}s", transient=True
            ) from None

        result = GitResult(
            args=tuple(args),
            returncode=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace").strip(),
        )
        logger.debug(
            f"git {' '.join(args)} exited with {result.returncode}",
            extra={"git_dir": str(self._git_dir), "returncode": result.returncode},
        )
        return result


__all__ = ["GitRepository", "GitResult"]
