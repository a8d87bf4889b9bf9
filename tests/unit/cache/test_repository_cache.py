"""
Unit tests for RepositoryCache.

Tests for:
- First creation and idempotent reuse
- Reinitialization of invalid repositories
- Credential configuration at creation
- Failure handling (no partially initialized repository is visible)
- Serialization of concurrent creators
"""

import asyncio
import shutil
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from repomigrate.cache.credentials import CredentialConfig, CredentialStore
from repomigrate.cache.directories import DirectoryFactory
from repomigrate.cache.git import GitRepository
from repomigrate.cache.keys import cache_key
from repomigrate.cache.locks import FileLockManager
from repomigrate.cache.repository_cache import RepositoryCache
from repomigrate.config import WorkflowConfig
from repomigrate.exceptions import (
    ConfigError,
    GitCommandError,
    InfraError,
    LockAcquisitionError,
    RepoInitError,
)
from repomigrate.models import FailurePolicy

URL = "https://github.com/google/copybara"

GIT_AVAILABLE = shutil.which("git") is not None


def make_cache(directory_factory, repository_factory, **kwargs) -> RepositoryCache:
    return RepositoryCache(
        directory_factory,
        repository_factory=repository_factory,
        enable_tracing=False,
        **kwargs,
    )


def initialized(factory) -> list:
    return [repository for repository in factory.created if repository.init_calls]


class CountingCredentialStore(CredentialStore):
    def __init__(self) -> None:
        self.calls = 0

    async def configure(self, repository, config) -> bool:
        self.calls += 1
        return await super().configure(repository, config)


class TestGetOrCreate:
    """Tests for creation and reuse."""

    @pytest.mark.asyncio
    async def test_first_call_creates_repository(self, directory_factory, fake_repository_factory):
        cache = make_cache(directory_factory, fake_repository_factory)

        location = await cache.get_or_create(URL)

        assert location == directory_factory.root / "cache" / "git_repos" / cache_key(URL)
        assert (location / "HEAD").is_file()
        assert cache.get_stats() == {"initializations": 1, "hits": 0, "reinitializations": 0}

    @pytest.mark.asyncio
    async def test_second_call_reuses_repository(self, directory_factory, fake_repository_factory):
        cache = make_cache(directory_factory, fake_repository_factory)

        first = await cache.get_or_create(URL)
        second = await cache.get_or_create(URL + "/")

        assert first == second
        assert len(initialized(fake_repository_factory)) == 1
        assert cache.get_stats()["hits"] == 1

    @pytest.mark.asyncio
    async def test_distinct_urls_get_distinct_locations(
        self, directory_factory, fake_repository_factory
    ):
        cache = make_cache(directory_factory, fake_repository_factory)

        first = await cache.get_or_create(URL)
        second = await cache.get_or_create(URL + ".git")

        assert first != second

    @pytest.mark.asyncio
    async def test_invalid_repository_reinitialized(
        self, directory_factory, fake_repository_factory
    ):
        cache = make_cache(directory_factory, fake_repository_factory)
        location = await cache.get_or_create(URL)
        (location / "HEAD").unlink()
        (location / "stale").write_text("left over")

        again = await cache.get_or_create(URL)

        assert again == location
        assert (location / "HEAD").is_file()
        assert not (location / "stale").exists()
        assert cache.get_stats()["reinitializations"] == 1
        assert len(initialized(fake_repository_factory)) == 2

    @pytest.mark.asyncio
    async def test_staging_directory_cleaned(self, directory_factory, fake_repository_factory):
        cache = make_cache(directory_factory, fake_repository_factory)

        await cache.get_or_create(URL)

        staging = cache.root / ".staging"
        assert list(staging.iterdir()) == []

    def test_location_for_does_not_create(self, directory_factory, fake_repository_factory):
        cache = make_cache(directory_factory, fake_repository_factory)

        location = cache.location_for(URL)

        assert location.name == cache_key(URL)
        assert not location.exists()
        assert fake_repository_factory.created == []

    @pytest.mark.asyncio
    async def test_cached_repository_handle(self, directory_factory, fake_repository_factory):
        cache = make_cache(directory_factory, fake_repository_factory)

        repository = await cache.cached_repository(URL)

        assert repository.git_dir == cache.location_for(URL)


class TestCredentials:
    """Tests for credential configuration at creation."""

    @pytest.mark.asyncio
    async def test_default_store(self, directory_factory, fake_repository_factory):
        cache = make_cache(directory_factory, fake_repository_factory)

        location = await cache.get_or_create(URL)

        [repository] = initialized(fake_repository_factory)
        assert repository.config == {"credential.helper": "store"}
        assert (location / "config").read_text() == "credential.helper=store\n"

    @pytest.mark.asyncio
    async def test_explicit_path(self, directory_factory, fake_repository_factory):
        cache = make_cache(
            directory_factory,
            fake_repository_factory,
            credential_config=CredentialConfig.store(Path("/secrets/creds")),
        )

        await cache.get_or_create(URL)

        [repository] = initialized(fake_repository_factory)
        assert repository.config == {"credential.helper": "store --file=/secrets/creds"}

    @pytest.mark.asyncio
    async def test_disabled(self, directory_factory, fake_repository_factory):
        cache = make_cache(
            directory_factory,
            fake_repository_factory,
            credential_config=CredentialConfig.disabled(),
        )

        location = await cache.get_or_create(URL)

        [repository] = initialized(fake_repository_factory)
        assert repository.config == {}
        assert not (location / "config").exists()

    @pytest.mark.asyncio
    async def test_not_reapplied_on_reuse(self, directory_factory, fake_repository_factory):
        store = CountingCredentialStore()
        cache = make_cache(directory_factory, fake_repository_factory, credential_store=store)

        await cache.get_or_create(URL)
        await cache.get_or_create(URL)

        assert store.calls == 1

    def test_from_config(self, tmp_path, directory_factory, fake_repository_factory):
        config = WorkflowConfig(
            workflow_name="export",
            working_dir=tmp_path,
            failure_policy=FailurePolicy.FAIL_FAST,
            disable_credential_store=True,
            cache_lock_timeout=12.0,
        )

        cache = RepositoryCache.from_config(
            config, directory_factory, repository_factory=fake_repository_factory
        )

        assert cache.credential_config == CredentialConfig.disabled()


class TestFailures:
    """Tests for failure handling."""

    @pytest.mark.asyncio
    async def test_init_failure(self, directory_factory, fake_repository_factory):
        def failing_factory(git_dir):
            repository = fake_repository_factory(git_dir)
            repository.init = AsyncMock(side_effect=GitCommandError(["init"], 128, "fatal"))
            return repository

        cache = make_cache(directory_factory, failing_factory)

        with pytest.raises(RepoInitError) as exc_info:
            await cache.get_or_create(URL)

        assert exc_info.value.url == URL
        assert isinstance(exc_info.value.__cause__, GitCommandError)
        assert not cache.location_for(URL).exists()
        assert list((cache.root / ".staging").iterdir()) == []

    @pytest.mark.asyncio
    async def test_credential_failure_aborts_creation(
        self, directory_factory, fake_repository_factory
    ):
        def failing_factory(git_dir):
            repository = fake_repository_factory(git_dir)

            async def init():
                git_dir.mkdir(parents=True)
                (git_dir / "HEAD").write_text("ref: refs/heads/main\n")

            repository.init = init
            repository.set_config = AsyncMock(
                side_effect=GitCommandError(["config"], 4, "could not lock config file")
            )
            return repository

        cache = make_cache(directory_factory, failing_factory)

        with pytest.raises(RepoInitError) as exc_info:
            await cache.get_or_create(URL)

        assert isinstance(exc_info.value.__cause__, ConfigError)
        assert not cache.location_for(URL).exists()

    @pytest.mark.asyncio
    async def test_unwritable_root(self, tmp_path, fake_repository_factory):
        blocker = tmp_path / "not-a-directory"
        blocker.write_text("")
        cache = make_cache(DirectoryFactory(blocker), fake_repository_factory)

        with pytest.raises(RepoInitError):
            await cache.get_or_create(URL)

    @pytest.mark.asyncio
    async def test_invalid_url(self, directory_factory, fake_repository_factory):
        cache = make_cache(directory_factory, fake_repository_factory)

        with pytest.raises(RepoInitError):
            await cache.get_or_create("   ")

    @pytest.mark.asyncio
    async def test_lock_timeout(self, directory_factory, fake_repository_factory):
        cache = make_cache(directory_factory, fake_repository_factory, lock_timeout=0.05)
        other_process = FileLockManager(cache.root / ".locks", enable_tracing=False)

        async with other_process.acquire(cache_key(URL)):
            with pytest.raises(RepoInitError) as exc_info:
                await cache.get_or_create(URL)

        assert isinstance(exc_info.value.__cause__, LockAcquisitionError)
        assert fake_repository_factory.created == []

    @pytest.mark.asyncio
    async def test_unknown_validity_keeps_repository(
        self, directory_factory, fake_repository_factory
    ):
        location = await make_cache(directory_factory, fake_repository_factory).get_or_create(URL)
        (location / "objects").mkdir()

        def unreachable_git(git_dir):
            repository = fake_repository_factory(git_dir)
            repository.is_valid = AsyncMock(
                side_effect=InfraError("git rev-parse timed out", transient=True)
            )
            return repository

        cache = make_cache(directory_factory, unreachable_git)

        with pytest.raises(RepoInitError) as exc_info:
            await cache.get_or_create(URL)

        assert isinstance(exc_info.value.__cause__, InfraError)
        assert (location / "HEAD").is_file()
        assert (location / "objects").is_dir()
        assert cache.get_stats()["reinitializations"] == 0

    @pytest.mark.asyncio
    async def test_missing_git_binary_keeps_repository(
        self, directory_factory, fake_repository_factory
    ):
        location = await make_cache(directory_factory, fake_repository_factory).get_or_create(URL)
        cache = make_cache(
            directory_factory,
            lambda git_dir: GitRepository(git_dir, git_binary="/nonexistent/git"),
        )

        with pytest.raises(RepoInitError, match="git executable not found"):
            await cache.get_or_create(URL)

        assert (location / "HEAD").is_file()
        assert cache.get_stats()["reinitializations"] == 0


class TestConcurrency:
    """Tests for concurrent first creators."""

    @pytest.mark.asyncio
    async def test_concurrent_tasks_initialize_once(
        self, directory_factory, fake_repository_factory
    ):
        cache = make_cache(directory_factory, fake_repository_factory)

        locations = await asyncio.gather(*(cache.get_or_create(URL) for _ in range(5)))

        assert len(set(locations)) == 1
        assert len(initialized(fake_repository_factory)) == 1
        assert cache.get_stats() == {"initializations": 1, "hits": 4, "reinitializations": 0}

    @pytest.mark.asyncio
    async def test_caches_sharing_a_root_initialize_once(
        self, directory_factory, fake_repository_factory
    ):
        """Separate cache instances stand in for separate processes."""
        caches = [make_cache(directory_factory, fake_repository_factory) for _ in range(3)]

        locations = await asyncio.gather(*(cache.get_or_create(URL) for cache in caches))

        assert len(set(locations)) == 1
        assert len(initialized(fake_repository_factory)) == 1


class TestTracing:
    @pytest.mark.asyncio
    async def test_span(self, directory_factory, fake_repository_factory, mock_tracer):
        cache = RepositoryCache(
            directory_factory,
            repository_factory=fake_repository_factory,
            tracer=mock_tracer,
        )

        await cache.get_or_create(URL)

        assert mock_tracer.span_names[0] == "repomigrate.cache.get_or_create"
        assert mock_tracer.spans[0][1] == {"repomigrate.repo.url": URL}


@pytest.mark.skipif(not GIT_AVAILABLE, reason="git executable not installed")
class TestWithGit:
    """Tests against the real git executable."""

    @pytest.mark.asyncio
    async def test_creates_bare_repository_with_credentials(self, directory_factory):
        cache = RepositoryCache(
            directory_factory,
            credential_config=CredentialConfig.store(Path("/tmp/creds file")),
            enable_tracing=False,
        )

        location = await cache.get_or_create(URL)

        repository = GitRepository(location)
        assert await repository.is_valid()
        assert await repository.get_config("credential.helper") == (
            "store --file='/tmp/creds file'"
        )

    @pytest.mark.asyncio
    async def test_reuse_and_reinitialize(self, directory_factory):
        cache = RepositoryCache(directory_factory, enable_tracing=False)

        location = await cache.get_or_create(URL)
        assert await cache.get_or_create(URL) == location

        (location / "HEAD").unlink()
        assert await cache.get_or_create(URL) == location
        assert await GitRepository(location).is_valid()
        assert cache.get_stats()["reinitializations"] == 1
