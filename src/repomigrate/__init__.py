"""
repomigrate - Workflow engine for migrating changes between repositories.

This library provides:
- WorkflowRunner driving single-change and iterative runs
- ChangeMigrator state machine with fail-fast and best-effort policies
- Event monitors for the lifecycle of a run
- Local cache of bare repositories with credential configuration
- Memoized, retried review state lookups
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("repomigrate")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

# Repository cache
from repomigrate.cache import (
    CredentialConfig,
    CredentialStore,
    DirectoryFactory,
    FileLockManager,
    GitRepository,
    RepositoryCache,
    cache_key,
    normalize_url,
)

# Configuration
from repomigrate.config import WorkflowConfig, create_batch_config

# Effects
from repomigrate.effects import DestinationEffectAggregator

# Events
from repomigrate.events import (
    ChangeMigrationFinished,
    ChangeMigrationStarted,
    InfoFinished,
    MigrationEvent,
    MigrationFinished,
    MigrationStarted,
)

# Exceptions
from repomigrate.exceptions import (
    ChangeStateError,
    ConfigError,
    DestinationError,
    EmptyChangeError,
    EventOrderError,
    GitCommandError,
    InfraError,
    LockAcquisitionError,
    MigrationError,
    OriginError,
    RepoInitError,
    ReviewLookupError,
    TransformError,
    ValidationError,
    is_transient,
)

# Engine
from repomigrate.migrator import ChangeMigrator, ChangeOutcome

# Data model
from repomigrate.models import (
    Change,
    ChangeState,
    DestinationEffect,
    DestinationRef,
    EffectType,
    EmptyChangePolicy,
    ExitCode,
    FailurePolicy,
    MigrationInfo,
    MigrationReference,
    RunMode,
)

# Event monitors
from repomigrate.monitor import (
    EventMonitor,
    EventMonitorDispatcher,
    LoggingEventMonitor,
)

# Observability
from repomigrate.observability import OTEL_AVAILABLE

# Collaborator protocols
from repomigrate.protocols import (
    ConsistencyCheck,
    Destination,
    Origin,
    ReviewApi,
    Transformation,
)

# Retry
from repomigrate.retry import RetryConfig, RetryError, retry_async

# Review
from repomigrate.review import ChangeStatus, ReviewRecord, ReviewStateReader
from repomigrate.runner import MigrationRun, WorkflowRunner
from repomigrate.workflow import Workflow

__all__ = [
    "__version__",
    # Cache
    "CredentialConfig",
    "CredentialStore",
    "DirectoryFactory",
    "FileLockManager",
    "GitRepository",
    "RepositoryCache",
    "cache_key",
    "normalize_url",
    # Configuration
    "WorkflowConfig",
    "create_batch_config",
    # Effects
    "DestinationEffectAggregator",
    # Events
    "MigrationEvent",
    "MigrationStarted",
    "ChangeMigrationStarted",
    "ChangeMigrationFinished",
    "MigrationFinished",
    "InfoFinished",
    # Exceptions
    "MigrationError",
    "InfraError",
    "RepoInitError",
    "GitCommandError",
    "LockAcquisitionError",
    "ConfigError",
    "OriginError",
    "TransformError",
    "ValidationError",
    "EmptyChangeError",
    "DestinationError",
    "ReviewLookupError",
    "ChangeStateError",
    "EventOrderError",
    "is_transient",
    # Engine
    "ChangeMigrator",
    "ChangeOutcome",
    "MigrationRun",
    "Workflow",
    "WorkflowRunner",
    # Data model
    "Change",
    "ChangeState",
    "DestinationEffect",
    "DestinationRef",
    "EffectType",
    "EmptyChangePolicy",
    "ExitCode",
    "FailurePolicy",
    "MigrationInfo",
    "MigrationReference",
    "RunMode",
    # Monitors
    "EventMonitor",
    "EventMonitorDispatcher",
    "LoggingEventMonitor",
    # Observability
    "OTEL_AVAILABLE",
    # Protocols
    "Origin",
    "Transformation",
    "Destination",
    "ConsistencyCheck",
    "ReviewApi",
    # Retry
    "RetryConfig",
    "RetryError",
    "retry_async",
    # Review
    "ChangeStatus",
    "ReviewRecord",
    "ReviewStateReader",
]
