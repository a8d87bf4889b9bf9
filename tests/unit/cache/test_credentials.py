"""
Unit tests for credential configuration.

Tests for:
- CredentialConfig factories and helper values
- CredentialStore.configure() writes and failures
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from repomigrate.cache.credentials import (
    CREDENTIAL_HELPER_KEY,
    CredentialConfig,
    CredentialStore,
)
from repomigrate.exceptions import ConfigError, GitCommandError, InfraError


def make_repository(set_config=None):
    repository = MagicMock()
    repository.git_dir = Path("/cache/git_repos/key")
    repository.set_config = set_config or AsyncMock()
    return repository


class TestCredentialConfig:
    """Tests for CredentialConfig."""

    def test_default_store(self):
        config = CredentialConfig.store()
        assert config.enabled
        assert config.helper == "store"

    def test_explicit_path(self):
        config = CredentialConfig.store(Path("/secrets/git-credentials"))
        assert config.helper == "store --file=/secrets/git-credentials"

    def test_path_with_spaces_quoted(self):
        config = CredentialConfig.store(Path("/my secrets/creds"))
        assert config.helper == "store --file='/my secrets/creds'"

    def test_disabled(self):
        config = CredentialConfig.disabled()
        assert not config.enabled
        assert config.helper is None

    def test_disabled_with_path_rejected(self):
        with pytest.raises(ValueError):
            CredentialConfig(enabled=False, store_path=Path("/creds"))


class TestCredentialStore:
    """Tests for CredentialStore.configure()."""

    @pytest.mark.asyncio
    async def test_disabled_writes_nothing(self):
        repository = make_repository()

        written = await CredentialStore().configure(repository, CredentialConfig.disabled())

        assert written is False
        repository.set_config.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_default_store(self):
        repository = make_repository()

        written = await CredentialStore().configure(repository, CredentialConfig.store())

        assert written is True
        repository.set_config.assert_awaited_once_with(CREDENTIAL_HELPER_KEY, "store")

    @pytest.mark.asyncio
    async def test_explicit_path(self):
        repository = make_repository()

        await CredentialStore().configure(
            repository, CredentialConfig.store(Path("/secrets/git-credentials"))
        )

        repository.set_config.assert_awaited_once_with(
            "credential.helper", "store --file=/secrets/git-credentials"
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            GitCommandError(["config"], 4, "could not lock config file"),
            InfraError("git executable not found: git"),
        ],
    )
    async def test_failure_raises_config_error(self, error):
        repository = make_repository(AsyncMock(side_effect=error))

        with pytest.raises(ConfigError) as exc_info:
            await CredentialStore().configure(repository, CredentialConfig.store())

        assert exc_info.value.key == "credential.helper"
        assert exc_info.value.repository == Path("/cache/git_repos/key")
        assert exc_info.value.__cause__ is error
