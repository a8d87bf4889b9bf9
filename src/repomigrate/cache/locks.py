"""
File lock utilities for cross-process coordination of the repository cache.

File locks are advisory ``flock`` locks that:
- Are held per open file description, so they serialize tasks, threads
  and processes alike
- Are released automatically when the holder's process exits
- Are polled without blocking, so waiting never stalls the event loop

Usage:
    >>> lock_manager = FileLockManager(cache_root / ".locks")
    >>> async with lock_manager.acquire("https%3A%2F%2Fgithub.com%2Fgoogle%2Fcopybara"):
    ...     # Critical section - only one holder at a time
    ...     await initialize_repository()
"""

from __future__ import annotations

import asyncio
import fcntl
import hashlib
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from repomigrate.exceptions import LockAcquisitionError
from repomigrate.observability import Tracer, create_tracer
from repomigrate.observability.attributes import ATTR_LOCK_KEY, ATTR_LOCK_TIMEOUT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockInfo:
    """
    A cache lock held by this process.

    Attributes:
        key: Cache key the lock guards
        path: Lock file the flock is taken on
        acquired_at: Time the flock was obtained
        holder_id: Label of the holder, shown in logs
    """

    key: str
    path: Path
    acquired_at: datetime
    holder_id: str | None = None


class FileLockManager:
    """
    Manages key-scoped file locks under a lock directory.

    Each key maps to one lock file. Lock files are never deleted: removing
    a lock file while another process waits on it would let two holders
    in at once.

    Example:
        >>> lock_manager = FileLockManager(lock_dir, holder_id="worker-1")
        >>> async with lock_manager.acquire("repo-key", timeout=5.0) as info:
        ...     await create_repository(info.key)
    """

    def __init__(
        self,
        lock_dir: Path,
        *,
        holder_id: str | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Args:
            lock_dir: Directory holding the lock files (created on demand)
            holder_id: Label used in logs (defaults to ``pid-<pid>``)
            tracer: Optional custom Tracer instance
            enable_tracing: Whether to enable OpenTelemetry tracing.
                          Ignored if tracer is explicitly provided.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._lock_dir = lock_dir
        self._holder_id = holder_id if holder_id is not None else f"pid-{os.getpid()}"
        self._held_locks: dict[str, int] = {}

    @property
    def lock_dir(self) -> Path:
        return self._lock_dir

    @staticmethod
    def _key_to_filename(key: str) -> str:
        """
        Convert a string key to a lock file name.

        Uses the SHA-256 hex digest so arbitrary keys map to short, safe
        file names.
        """
        return hashlib.sha256(key.encode()).hexdigest() + ".lock"

    def lock_path(self, key: str) -> Path:
        return self._lock_dir / self._key_to_filename(key)

    @asynccontextmanager
    async def acquire(
        self,
        key: str,
        *,
        timeout: float | None = None,
        retry_interval: float = 0.05,
    ) -> AsyncIterator[LockInfo]:
        """
        Hold the exclusive lock for ``key`` for the duration of the block.

        Args:
            key: Cache key to lock
            timeout: Seconds to wait for another holder to let go; None
                waits indefinitely
            retry_interval: Polling period while the lock is busy

        Yields:
            LockInfo describing the held lock

        Raises:
            LockAcquisitionError: The lock file cannot be opened or the
                timeout expired
        """
        path = self.lock_path(key)

        with self._tracer.span(
            "repomigrate.lock.acquire",
            {
                ATTR_LOCK_KEY: key,
                ATTR_LOCK_TIMEOUT: timeout if timeout is not None else -1,
            },
        ):
            fd = await self._acquire_lock(key, path, timeout, retry_interval)

        info = LockInfo(key, path, datetime.now(UTC), self._holder_id)
        self._held_locks[key] = fd
        logger.debug(
            f"Acquired cache lock {key}",
            extra={"lock_key": key, "lock_path": str(path), "holder_id": self._holder_id},
        )

        try:
            yield info
        finally:
            self._release_lock(key, fd)

    async def _acquire_lock(
        self,
        key: str,
        path: Path,
        timeout: float | None,
        retry_interval: float,
    ) -> int:
        """
        Open the lock file and poll for the exclusive lock.

        Returns:
            File descriptor holding the lock

        Raises:
            LockAcquisitionError: Lock file unusable or timeout expired
        """
        try:
            self._lock_dir.mkdir(parents=True, exist_ok=True)
            fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            raise LockAcquisitionError(key=key, reason=f"Cannot open lock file: {e}") from e

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None

        try:
            while True:
                try:
                    fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                    return fd
                except BlockingIOError:
                    if deadline is not None and loop.time() >= deadline:
                        raise LockAcquisitionError(
                            key, f"Timeout after {timeout}s", timeout=timeout
                        ) from None
                except OSError as e:
                    raise LockAcquisitionError(key=key, reason=f"flock failed: {e}") from e

                await asyncio.sleep(retry_interval)
        except BaseException:
            # Also covers cancellation while waiting
            os.close(fd)
            raise

    def _release_lock(self, key: str, fd: int) -> None:
        """Release the lock and close its file descriptor."""
        with self._tracer.span("repomigrate.lock.release", {ATTR_LOCK_KEY: key}):
            try:
                fcntl.flock(fd, fcntl.LOCK_UN)
                logger.debug(f"Released cache lock {key}", extra={"lock_key": key})
            except OSError as e:
                logger.warning(
                    f"Error releasing cache lock {key}: {e}",
                    extra={"lock_key": key, "error": str(e)},
                )
            finally:
                self._held_locks.pop(key, None)
                os.close(fd)

    def is_held(self, key: str) -> bool:
        return key in self._held_locks

    @property
    def held_lock_count(self) -> int:
        return len(self._held_locks)


__all__ = ["FileLockManager", "LockInfo"]
