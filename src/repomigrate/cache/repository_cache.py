"""
Local cache of bare repositories, one per remote URL.

Layout under the cache root::

    <cache root>/git_repos/<key>/                      initialized bare repositories
    <cache root>/git_repos/.locks/<sha256(key)>.lock   creation locks
    <cache root>/git_repos/.staging/<uuid>/            repositories being initialized

A repository only appears under its key once ``git init`` and credential
configuration have both succeeded, so callers never observe a partially
initialized repository.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

from repomigrate.cache.credentials import CredentialConfig, CredentialStore
from repomigrate.cache.directories import DirectoryFactory
from repomigrate.cache.git import GitRepository
from repomigrate.cache.keys import cache_key
from repomigrate.cache.locks import FileLockManager
from repomigrate.exceptions import MigrationError, RepoInitError
from repomigrate.observability import Tracer, create_tracer
from repomigrate.observability.attributes import (
    ATTR_CACHE_HIT,
    ATTR_CACHE_KEY,
    ATTR_REPO_URL,
)

if TYPE_CHECKING:
    from repomigrate.config import WorkflowConfig

logger = logging.getLogger(__name__)

CACHE_NAME = "git_repos"
LOCKS_DIR = ".locks"
STAGING_DIR = ".staging"

RepositoryFactory = Callable[[Path], GitRepository]


class RepositoryCache:
    """
    Creates bare repositories lazily and hands out their locations.

    The cache is safe to share between tasks of one process and between
    processes using the same cache root: first-time creation of a key is
    serialized by a key-scoped file lock.

    Example:
        >>> cache = RepositoryCache(DirectoryFactory("~/.cache/repomigrate"))
        >>> location = await cache.get_or_create("https://github.com/google/copybara")
        >>> again = await cache.get_or_create("https://github.com/google/copybara/")
        >>> assert location == again
    """

    def __init__(
        self,
        directory_factory: DirectoryFactory,
        credential_store: CredentialStore | None = None,
        credential_config: CredentialConfig | None = None,
        *,
        lock_manager: FileLockManager | None = None,
        lock_timeout: float | None = 300.0,
        repository_factory: RepositoryFactory = GitRepository.new_bare,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the cache.

        Args:
            directory_factory: Supplies the cache root
            credential_store: Writes credential configuration into new
                repositories (defaults to a CredentialStore)
            credential_config: Credential settings applied at creation
                (defaults to the store helper at its default location)
            lock_manager: Lock manager for creation locks (defaults to file
                locks under the cache's ``.locks`` directory)
            lock_timeout: Seconds to wait for a creation lock (None = forever)
            repository_factory: Builds a repository handle for a path
            tracer: Optional custom Tracer instance
            enable_tracing: Whether to enable OpenTelemetry tracing.
                          Ignored if tracer is explicitly provided.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._directory_factory = directory_factory
        self._credential_store = credential_store or CredentialStore()
        self._credential_config = credential_config or CredentialConfig.store()
        self._lock_manager = lock_manager
        self._lock_timeout = lock_timeout
        self._repository_factory = repository_factory
        self._stats = {
            "initializations": 0,
            "hits": 0,
            "reinitializations": 0,
        }

    @classmethod
    def from_config(
        cls,
        config: WorkflowConfig,
        directory_factory: DirectoryFactory,
        **kwargs,
    ) -> RepositoryCache:
        """Build a cache using the credential and lock settings of ``config``."""
        return cls(
            directory_factory,
            credential_config=config.get_credential_config(),
            lock_timeout=config.cache_lock_timeout,
            **kwargs,
        )

    @property
    def root(self) -> Path:
        """Directory holding the cached repositories (created if needed)."""
        return self._directory_factory.get_cache_dir(CACHE_NAME)

    @property
    def credential_config(self) -> CredentialConfig:
        return self._credential_config

    def location_for(self, url: str) -> Path:
        """
        Path the repository for ``url`` lives at, whether or not it exists.

        Raises:
            ValueError: If the URL cannot be normalized
        """
        return self.root / cache_key(url)

    def get_stats(self) -> dict[str, int]:
        """
        Get cache statistics.

        Returns:
            Dictionary with counts:
            - initializations: Repositories created
            - hits: Calls served by an existing valid repository
            - reinitializations: Invalid repositories removed and recreated
        """
        return dict(self._stats)

    async def get_or_create(self, url: str) -> Path:
        """
        Get the location of the bare repository for ``url``, creating it
        on first use.

        Args:
            url: Remote repository URL

        Returns:
            Location of an initialized bare repository

        Raises:
            RepoInitError: If the repository cannot be created or initialized
        """
        with self._tracer.span(
            "repomigrate.cache.get_or_create",
            {ATTR_REPO_URL: url},
        ) as span:
            try:
                key = cache_key(url)
                root = self.root
                if span:
                    span.set_attribute(ATTR_CACHE_KEY, key)

                async with self._get_lock_manager(root).acquire(key, timeout=self._lock_timeout):
                    location, hit = await self._get_or_create_locked(url, root / key, root)
            except RepoInitError:
                raise
            except (MigrationError, OSError, ValueError) as e:
                if span:
                    span.record_exception(e)
                logger.error(
                    f"Cannot create a cached repo for {url}: {e}",
                    extra={"url": url, "error": str(e), "error_type": type(e).__name__},
                )
                raise RepoInitError(url, str(e)) from e

            if span:
                span.set_attribute(ATTR_CACHE_HIT, hit)
            return location

    async def cached_repository(self, url: str) -> GitRepository:
        """Get a repository handle for ``url``, creating the repository if needed."""
        return self._repository_factory(await self.get_or_create(url))

    def _get_lock_manager(self, root: Path) -> FileLockManager:
        if self._lock_manager is None:
            self._lock_manager = FileLockManager(root / LOCKS_DIR, tracer=self._tracer)
        return self._lock_manager

    async def _get_or_create_locked(self, url: str, location: Path, root: Path) -> tuple[Path, bool]:
        """Body of get_or_create, run while holding the key's lock."""
        if location.exists():
            if await self._repository_factory(location).is_valid():
                self._stats["hits"] += 1
                return location, True

            logger.warning(
                f"Cached repository {location} is invalid, reinitializing",
                extra={"url": url, "location": str(location)},
            )
            await asyncio.to_thread(shutil.rmtree, location)
            self._stats["reinitializations"] += 1

        staging = root / STAGING_DIR / uuid4().hex
        staging.parent.mkdir(parents=True, exist_ok=True)
        try:
            repository = self._repository_factory(staging)
            await repository.init()
            await self._credential_store.configure(repository, self._credential_config)
            os.rename(staging, location)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        self._stats["initializations"] += 1
        logger.info(
            f"Initialized cached repository for {url}",
            extra={"url": url, "location": str(location)},
        )
        return location, False


__all__ = ["CACHE_NAME", "RepositoryCache", "RepositoryFactory"]
