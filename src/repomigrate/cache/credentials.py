"""
Credential helper configuration for cached repositories.

Cached repositories use git's ``store`` credential helper so fetches and
pushes never prompt. The store file is either git's default location or an
explicit path, or the whole mechanism is disabled.
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from repomigrate.exceptions import ConfigError, InfraError

logger = logging.getLogger(__name__)

CREDENTIAL_HELPER_KEY = "credential.helper"


class ConfigurableRepository(Protocol):
    """The slice of a repository credential configuration needs."""

    @property
    def git_dir(self) -> Path: ...

    async def set_config(self, key: str, value: str) -> None: ...


@dataclass(frozen=True)
class CredentialConfig:
    """
    Credential helper settings.

    Attributes:
        enabled: Whether to configure a credential helper at all
        store_path: Store file, None for the helper's default location
    """

    enabled: bool = True
    store_path: Path | None = None

    def __post_init__(self) -> None:
        if not self.enabled and self.store_path is not None:
            raise ValueError("store_path cannot be set when the credential store is disabled.")

    @classmethod
    def disabled(cls) -> CredentialConfig:
        return cls(enabled=False)

    @classmethod
    def store(cls, path: Path | None = None) -> CredentialConfig:
        return cls(enabled=True, store_path=path)

    @property
    def helper(self) -> str | None:
        """Value written to ``credential.helper``, None when disabled."""
        if not self.enabled:
            return None
        if self.store_path is None:
            return "store"
        return f"store --file={shlex.quote(str(self.store_path))}"


class CredentialStore:
    """Writes credential helper configuration into repositories."""

    async def configure(
        self, repository: ConfigurableRepository, config: CredentialConfig
    ) -> bool:
        """
        Configure the credential helper of ``repository``.

        Args:
            repository: Repository to configure
            config: Credential settings

        Returns:
            True if configuration was written, False when disabled

        Raises:
            ConfigError: If the configuration cannot be written
        """
        helper = config.helper
        if helper is None:
            logger.debug(
                f"Credential store disabled for {repository.git_dir}",
                extra={"git_dir": str(repository.git_dir)},
            )
            return False

        try:
            await repository.set_config(CREDENTIAL_HELPER_KEY, helper)
        except InfraError as e:
            raise ConfigError(repository.git_dir, CREDENTIAL_HELPER_KEY, str(e)) from e

        logger.debug(
            f"Configured credential helper for {repository.git_dir}",
            extra={"git_dir": str(repository.git_dir), "helper": helper},
        )
        return True


__all__ = [
    "CREDENTIAL_HELPER_KEY",
    "ConfigurableRepository",
    "CredentialConfig",
    "CredentialStore",
]
