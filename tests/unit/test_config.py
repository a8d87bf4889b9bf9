"""
Unit tests for WorkflowConfig.

Tests for:
- Required failure policy and defaults
- Validation in __post_init__
- get_retry_config(), get_review_retry_config(), get_credential_config()
- create_batch_config()
"""

from pathlib import Path

import pytest

from repomigrate.cache.credentials import CredentialConfig
from repomigrate.config import DEFAULT_ORIGIN_PAGE_SIZE, WorkflowConfig, create_batch_config
from repomigrate.models import EmptyChangePolicy, FailurePolicy, RunMode
from repomigrate.retry import RetryConfig


def make_config(**overrides) -> WorkflowConfig:
    settings = {
        "workflow_name": "export",
        "working_dir": Path("/tmp/work"),
        "failure_policy": FailurePolicy.FAIL_FAST,
    }
    settings.update(overrides)
    return WorkflowConfig(**settings)


class TestWorkflowConfigDefaults:
    """Tests for default values."""

    def test_failure_policy_is_required(self):
        """A workflow must state its failure policy."""
        with pytest.raises(TypeError):
            WorkflowConfig(workflow_name="export", working_dir=Path("/tmp/work"))

    def test_defaults(self):
        """Test default configuration values."""
        config = make_config()
        assert config.mode == RunMode.ITERATIVE
        assert config.origin_page_size == DEFAULT_ORIGIN_PAGE_SIZE == 200
        assert config.empty_change_policy == EmptyChangePolicy.FAIL
        assert config.max_retries == 3
        assert config.initial_retry_delay == 1.0
        assert config.max_retry_delay == 30.0
        assert config.credential_store_path is None
        assert config.disable_credential_store is False

    def test_frozen(self):
        """Configurations are immutable."""
        config = make_config()
        with pytest.raises(AttributeError):
            config.max_retries = 10  # type: ignore[misc]


class TestWorkflowConfigValidation:
    """Tests for __post_init__ validation."""

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"workflow_name": ""}, "workflow_name must not be empty"),
            ({"failure_policy": "fail_fast"}, "failure_policy must be a FailurePolicy"),
            ({"origin_page_size": 0}, "origin_page_size must be positive"),
            ({"max_retries": -1}, "max_retries must be >= 0"),
            ({"review_max_retries": -1}, "review_max_retries must be >= 0"),
            ({"initial_retry_delay": 0}, "initial_retry_delay must be positive"),
            ({"max_retry_delay": 0.1}, "max_retry_delay"),
            ({"retry_exponential_base": 1.0}, "retry_exponential_base must be > 1.0"),
            ({"retry_jitter": 2.0}, "retry_jitter must be between"),
            ({"cache_lock_timeout": 0}, "cache_lock_timeout must be positive"),
            (
                {"disable_credential_store": True, "credential_store_path": Path("/creds")},
                "credential_store_path cannot be set",
            ),
        ],
    )
    def test_invalid_values_raise(self, overrides, message):
        """Test invalid values raise ValueError."""
        with pytest.raises(ValueError) as exc_info:
            make_config(**overrides)
        assert message in str(exc_info.value)

    def test_lock_timeout_may_be_none(self):
        """None waits forever for the cache lock."""
        assert make_config(cache_lock_timeout=None).cache_lock_timeout is None


class TestDerivedConfigs:
    """Tests for the get_*_config() factories."""

    def test_retry_config(self):
        config = make_config(max_retries=5, initial_retry_delay=0.5, retry_jitter=0.0)
        retry = config.get_retry_config()
        assert isinstance(retry, RetryConfig)
        assert retry.max_retries == 5
        assert retry.initial_delay == 0.5
        assert retry.max_delay == 30.0
        assert retry.jitter == 0.0

    def test_review_retry_config(self):
        config = make_config(review_max_retries=1, review_initial_retry_delay=0.25)
        retry = config.get_review_retry_config()
        assert retry.max_retries == 1
        assert retry.initial_delay == 0.25

    def test_credential_config_default_store(self):
        """Credentials use the store helper at its default location."""
        assert make_config().get_credential_config() == CredentialConfig.store()

    def test_credential_config_explicit_path(self):
        config = make_config(credential_store_path=Path("/secrets/git-credentials"))
        credential_config = config.get_credential_config()
        assert credential_config.enabled
        assert credential_config.store_path == Path("/secrets/git-credentials")

    def test_credential_config_disabled(self):
        config = make_config(disable_credential_store=True)
        assert config.get_credential_config() == CredentialConfig.disabled()


class TestCreateBatchConfig:
    def test_batch_config(self):
        """Batch runs are best-effort, iterative and skip empty changes."""
        config = create_batch_config("nightly", Path("/tmp/work"), origin_page_size=50)
        assert config.failure_policy == FailurePolicy.BEST_EFFORT
        assert config.mode == RunMode.ITERATIVE
        assert config.empty_change_policy == EmptyChangePolicy.SKIP
        assert config.origin_page_size == 50
