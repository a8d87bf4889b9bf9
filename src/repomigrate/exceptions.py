"""Library exceptions for the repomigrate package.

Exception Hierarchy:
    MigrationError (base)
    +-- InfraError                (filesystem/process/network, content independent)
    |   +-- RepoInitError
    |   +-- GitCommandError
    |   +-- LockAcquisitionError
    +-- ConfigError
    +-- OriginError
    +-- TransformError
    +-- ValidationError
    |   +-- EmptyChangeError
    +-- DestinationError
    +-- ReviewLookupError
    +-- ChangeStateError
    +-- EventOrderError

Errors that may be retried carry a ``transient`` attribute. Use
``is_transient()`` to classify an arbitrary exception.
"""

from __future__ import annotations

from pathlib import Path


class MigrationError(Exception):
    """Base exception for repomigrate library."""

    transient: bool = False


class InfraError(MigrationError):
    """
    Raised on filesystem, process or network failures.

    Infrastructure errors are independent of the change content. They are
    retried within a bounded budget when ``transient`` is set, and abort
    the run otherwise.

    Attributes:
        transient: Whether retrying the operation may succeed
    """

    def __init__(self, message: str, *, transient: bool = False) -> None:
        self.transient = transient
        super().__init__(message)


class RepoInitError(InfraError):
    """Raised when a cached repository cannot be created or initialized."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Cannot create a cached repo for {url}: {reason}")


class GitCommandError(InfraError):
    """
    Raised when a git command exits with a non-zero status.

    Attributes:
        args_: The git arguments (without the leading ``git``)
        returncode: Process exit status
        stderr: Captured standard error, stripped
    """

    def __init__(self, args: list[str], returncode: int, stderr: str) -> None:
        self.args_ = list(args)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"git {' '.join(args)} failed with exit code {returncode}: {stderr}"
        )


class LockAcquisitionError(InfraError):
    """
    Raised when a cache lock cannot be acquired.

    Attributes:
        key: The lock key that could not be acquired
        reason: Description of why acquisition failed
        timeout: The timeout value if timeout was the cause
    """

    def __init__(self, key: str, reason: str, timeout: float | None = None) -> None:
        self.key = key
        self.reason = reason
        self.timeout = timeout
        super().__init__(f"Failed to acquire lock '{key}': {reason}")


class ConfigError(MigrationError):
    """Raised when repository configuration cannot be written or read."""

    def __init__(self, repository: Path | str, key: str, message: str) -> None:
        self.repository = repository
        self.key = key
        super().__init__(f"Cannot configure '{key}' for repository {repository}: {message}")


class OriginError(MigrationError):
    """Raised when the origin cannot supply a change's content."""

    def __init__(self, origin_ref: str, message: str, *, transient: bool = False) -> None:
        self.origin_ref = origin_ref
        self.transient = transient
        super().__init__(f"Origin failed for {origin_ref}: {message}")


class TransformError(MigrationError):
    """
    Raised when a transformation step fails.

    Transform errors are fatal for the affected change only and are never
    retried.

    Attributes:
        step_name: Name of the failing transformation step
        message: Description of the failure
    """

    def __init__(self, step_name: str, message: str) -> None:
        self.step_name = step_name
        self.message = message
        super().__init__(f"Transformation '{step_name}' failed: {message}")


class ValidationError(MigrationError):
    """Raised when a transformed change fails a consistency check."""

    def __init__(self, check_name: str, message: str) -> None:
        self.check_name = check_name
        self.message = message
        super().__init__(f"Consistency check '{check_name}' failed: {message}")


class EmptyChangeError(ValidationError):
    """Raised when a transformed change produces no destination diff."""

    def __init__(self, origin_ref: str) -> None:
        self.origin_ref = origin_ref
        super().__init__("empty_change", f"change {origin_ref} produces an empty diff")


class DestinationError(MigrationError):
    """
    Raised when the destination cannot write a change.

    Attributes:
        transient: True for network/auth failures that may succeed on retry
    """

    def __init__(self, message: str, *, transient: bool = False) -> None:
        self.transient = transient
        super().__init__(message)


class ReviewLookupError(MigrationError):
    """
    Raised when the review system cannot be queried.

    Review state is advisory input to the skip decision, so lookups are
    transient by default.
    """

    def __init__(self, remote_id: str, message: str, *, transient: bool = True) -> None:
        self.remote_id = remote_id
        self.transient = transient
        super().__init__(f"Review lookup failed for {remote_id}: {message}")


class ChangeStateError(MigrationError):
    """Raised when a change migration attempts an invalid state transition."""

    def __init__(self, origin_ref: str, from_state: str, to_state: str) -> None:
        self.origin_ref = origin_ref
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid transition for change {origin_ref}: {from_state} -> {to_state}"
        )


class EventOrderError(MigrationError):
    """Raised when lifecycle events would be delivered out of order."""

    def __init__(self, event_type: str, reason: str) -> None:
        self.event_type = event_type
        self.reason = reason
        super().__init__(f"Cannot deliver {event_type}: {reason}")


def is_transient(exc: BaseException) -> bool:
    """
    Check whether an exception may succeed if the operation is retried.

    Library errors declare it through their ``transient`` attribute.
    Built-in connection and timeout errors are always transient.

    Args:
        exc: The exception to classify

    Returns:
        True if the exception should be retried
    """
    if isinstance(exc, MigrationError):
        return exc.transient
    return isinstance(exc, ConnectionError | TimeoutError)


__all__ = [
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
]
