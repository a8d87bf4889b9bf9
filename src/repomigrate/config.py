"""
Configuration for workflow runs.

This module provides:
- WorkflowConfig: Policy and tuning settings consumed by the engine
- create_batch_config: Convenience factory for best-effort iterative runs
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from repomigrate.models import EmptyChangePolicy, FailurePolicy, RunMode

if TYPE_CHECKING:
    from repomigrate.cache.credentials import CredentialConfig
    from repomigrate.retry import RetryConfig

DEFAULT_ORIGIN_PAGE_SIZE = 200


@dataclass(frozen=True)
class WorkflowConfig:
    """
    Configuration for a workflow run.

    The failure policy has no default: every workflow states whether a
    failed change aborts the run.

    Attributes:
        workflow_name: Name of the workflow, used in events and logs
        working_dir: Directory under which per-change working trees are created
        failure_policy: Fail-fast or best-effort
        mode: Single change or iterative
        origin_page_size: Changes requested per origin query
        empty_change_policy: What to do with changes producing no diff
        max_retries: Retries for transient destination/infra errors
        initial_retry_delay: First backoff delay in seconds
        max_retry_delay: Backoff cap in seconds
        retry_exponential_base: Backoff growth factor
        retry_jitter: Fraction of the delay added as random jitter
        review_max_retries: Retries for review lookups
        review_initial_retry_delay: First backoff delay for review lookups
        credential_store_path: Explicit credential store file, None for the
            helper's default location
        disable_credential_store: Skip credential configuration entirely
        cache_lock_timeout: Seconds to wait for a cache lock (None = forever)

    Example:
        >>> config = WorkflowConfig(
        ...     workflow_name="export",
        ...     working_dir=Path("/tmp/work"),
        ...     failure_policy=FailurePolicy.BEST_EFFORT,
        ... )
    """

    workflow_name: str
    working_dir: Path
    failure_policy: FailurePolicy

    mode: RunMode = RunMode.ITERATIVE
    origin_page_size: int = DEFAULT_ORIGIN_PAGE_SIZE
    empty_change_policy: EmptyChangePolicy = EmptyChangePolicy.FAIL

    # Retry settings
    max_retries: int = 3
    initial_retry_delay: float = 1.0
    max_retry_delay: float = 30.0
    retry_exponential_base: float = 2.0
    retry_jitter: float = 0.1

    # Review lookup retry settings
    review_max_retries: int = 3
    review_initial_retry_delay: float = 0.5

    # Credentials
    credential_store_path: Path | None = None
    disable_credential_store: bool = False

    # Cache
    cache_lock_timeout: float | None = 300.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.workflow_name:
            raise ValueError("workflow_name must not be empty.")

        if not isinstance(self.failure_policy, FailurePolicy):
            raise ValueError(
                f"failure_policy must be a FailurePolicy, got {self.failure_policy!r}."
            )

        if self.origin_page_size < 1:
            raise ValueError(
                f"origin_page_size must be positive, got {self.origin_page_size}. "
                f"Use a value like {DEFAULT_ORIGIN_PAGE_SIZE} (default)."
            )

        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}.")

        if self.review_max_retries < 0:
            raise ValueError(f"review_max_retries must be >= 0, got {self.review_max_retries}.")

        if self.initial_retry_delay <= 0:
            raise ValueError(
                f"initial_retry_delay must be positive, got {self.initial_retry_delay}."
            )

        if self.review_initial_retry_delay <= 0:
            raise ValueError(
                f"review_initial_retry_delay must be positive, "
                f"got {self.review_initial_retry_delay}."
            )

        if self.max_retry_delay < max(self.initial_retry_delay, self.review_initial_retry_delay):
            raise ValueError(
                f"max_retry_delay ({self.max_retry_delay}) must be >= the initial retry delays."
            )

        if self.retry_exponential_base <= 1.0:
            raise ValueError(
                f"retry_exponential_base must be > 1.0, got {self.retry_exponential_base}."
            )

        if not 0.0 <= self.retry_jitter <= 1.0:
            raise ValueError(f"retry_jitter must be between 0.0 and 1.0, got {self.retry_jitter}.")

        if self.disable_credential_store and self.credential_store_path is not None:
            raise ValueError(
                "credential_store_path cannot be set when disable_credential_store is True."
            )

        if self.cache_lock_timeout is not None and self.cache_lock_timeout <= 0:
            raise ValueError(
                f"cache_lock_timeout must be positive or None, got {self.cache_lock_timeout}."
            )

    def get_retry_config(self) -> RetryConfig:
        """
        Get retry configuration for destination and infrastructure errors.

        Returns:
            RetryConfig instance with settings from this config
        """
        from repomigrate.retry import RetryConfig

        return RetryConfig(
            max_retries=self.max_retries,
            initial_delay=self.initial_retry_delay,
            max_delay=self.max_retry_delay,
            exponential_base=self.retry_exponential_base,
            jitter=self.retry_jitter,
        )

    def get_review_retry_config(self) -> RetryConfig:
        """
        Get retry configuration for review lookups.

        Returns:
            RetryConfig instance with settings from this config
        """
        from repomigrate.retry import RetryConfig

        return RetryConfig(
            max_retries=self.review_max_retries,
            initial_delay=self.review_initial_retry_delay,
            max_delay=self.max_retry_delay,
            exponential_base=self.retry_exponential_base,
            jitter=self.retry_jitter,
        )

    def get_credential_config(self) -> CredentialConfig:
        """
        Get credential configuration for cached repositories.

        Returns:
            CredentialConfig instance with settings from this config
        """
        from repomigrate.cache.credentials import CredentialConfig

        if self.disable_credential_store:
            return CredentialConfig.disabled()
        return CredentialConfig.store(self.credential_store_path)


def create_batch_config(
    workflow_name: str,
    working_dir: Path,
    origin_page_size: int = DEFAULT_ORIGIN_PAGE_SIZE,
) -> WorkflowConfig:
    """
    Create a configuration for unattended batch runs.

    Iterates every pending change and keeps going after per-change
    failures; empty changes are skipped.

    Args:
        workflow_name: Name of the workflow
        working_dir: Directory for per-change working trees
        origin_page_size: Changes requested per origin query

    Returns:
        WorkflowConfig for best-effort iterative runs
    """
    return WorkflowConfig(
        workflow_name=workflow_name,
        working_dir=working_dir,
        failure_policy=FailurePolicy.BEST_EFFORT,
        mode=RunMode.ITERATIVE,
        origin_page_size=origin_page_size,
        empty_change_policy=EmptyChangePolicy.SKIP,
    )


__all__ = ["DEFAULT_ORIGIN_PAGE_SIZE", "WorkflowConfig", "create_batch_config"]
