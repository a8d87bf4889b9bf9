"""
Repository cache and credential layer.

Example:
    >>> from repomigrate.cache import DirectoryFactory, RepositoryCache
    >>>
    >>> cache = RepositoryCache(DirectoryFactory("~/.cache/repomigrate"))
    >>> location = await cache.get_or_create("https://github.com/google/copybara")
"""

from repomigrate.cache.credentials import CredentialConfig, CredentialStore
from repomigrate.cache.directories import DirectoryFactory
from repomigrate.cache.git import GitRepository, GitResult
from repomigrate.cache.keys import cache_key, normalize_url
from repomigrate.cache.locks import FileLockManager, LockInfo
from repomigrate.cache.repository_cache import RepositoryCache

__all__ = [
    "CredentialConfig",
    "CredentialStore",
    "DirectoryFactory",
    "FileLockManager",
    "GitRepository",
    "GitResult",
    "LockInfo",
    "RepositoryCache",
    "cache_key",
    "normalize_url",
]
