"""
Data models for the migration workflow engine.

Enums:
    - ChangeState: Per-change migration states
    - EffectType: Kind of outcome recorded for a change
    - ExitCode: Terminal status of a run
    - FailurePolicy: Fail-fast vs. best-effort runs
    - EmptyChangePolicy: What to do when a change produces no diff
    - RunMode: Single change vs. iterative runs

Core Models:
    - Change: One unit of content plus metadata read from the origin
    - DestinationRef: Destination-side reference (commit, review URL...)
    - DestinationEffect: Outcome of applying one change to the destination
    - MigrationReference / MigrationInfo: Result of the info operation
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType


class ChangeState(Enum):
    """
    States a change goes through while it is migrated.

    State machine transitions:
        PENDING -> FETCHED -> TRANSFORMED -> VALIDATED -> COMMITTED
                -> EFFECT_RECORDED -> DONE

        PENDING | FETCHED | VALIDATED -> SKIPPED (absorbing)
        PENDING | FETCHED | VALIDATED -> FAILED  (absorbing)

    Validation outcomes are held on VALIDATED: a failing or skipping
    verdict leaves through the absorbing states from there.
    """

    PENDING = "pending"
    """Change received from the origin, nothing done yet."""

    FETCHED = "fetched"
    """Origin content checked out into the working directory."""

    TRANSFORMED = "transformed"
    """Transformation pipeline applied successfully."""

    VALIDATED = "validated"
    """Consistency checks evaluated."""

    COMMITTED = "committed"
    """Destination wrote the change."""

    EFFECT_RECORDED = "effect_recorded"
    """Destination effects appended to the run's aggregator."""

    DONE = "done"
    """Change fully migrated."""

    SKIPPED = "skipped"
    """Change intentionally not migrated (already landed, empty...)."""

    FAILED = "failed"
    """Change could not be migrated."""

    @property
    def is_terminal(self) -> bool:
        """True for DONE, SKIPPED and FAILED."""
        return self in (ChangeState.DONE, ChangeState.SKIPPED, ChangeState.FAILED)


VALID_TRANSITIONS: dict[ChangeState, set[ChangeState]] = {
    ChangeState.PENDING: {ChangeState.FETCHED, ChangeState.SKIPPED, ChangeState.FAILED},
    ChangeState.FETCHED: {ChangeState.TRANSFORMED, ChangeState.SKIPPED, ChangeState.FAILED},
    ChangeState.TRANSFORMED: {ChangeState.VALIDATED},
    ChangeState.VALIDATED: {ChangeState.COMMITTED, ChangeState.SKIPPED, ChangeState.FAILED},
    ChangeState.COMMITTED: {ChangeState.EFFECT_RECORDED},
    ChangeState.EFFECT_RECORDED: {ChangeState.DONE},
    ChangeState.DONE: set(),
    ChangeState.SKIPPED: set(),
    ChangeState.FAILED: set(),
}


def is_valid_transition(from_state: ChangeState, to_state: ChangeState) -> bool:
    """
    Check if a state transition is valid.

    Args:
        from_state: Current state
        to_state: Target state

    Returns:
        True if transition is allowed, False otherwise
    """
    return to_state in VALID_TRANSITIONS.get(from_state, set())


class EffectType(Enum):
    """Kind of outcome produced by writing one change."""

    CREATED = "created"
    UPDATED = "updated"
    NOOP = "noop"
    ERROR = "error"


class ExitCode(Enum):
    """
    Terminal status of a migration run.

    Attributes:
        SUCCESS: Every pending change was migrated or skipped
        NO_OP: Nothing was pending, or every change was skipped
        ERROR: Fatal error, or fail-fast abort on a failed change
        PARTIAL_SUCCESS: Best-effort run with at least one failed change
        INTERRUPTED: Run stopped between changes on request
    """

    SUCCESS = "success"
    NO_OP = "no_op"
    ERROR = "error"
    PARTIAL_SUCCESS = "partial_success"
    INTERRUPTED = "interrupted"

    @property
    def is_success(self) -> bool:
        return self in (ExitCode.SUCCESS, ExitCode.NO_OP)


class FailurePolicy(Enum):
    """
    How a run reacts to a failed change.

    Attributes:
        FAIL_FAST: Abort the run on the first failed change
        BEST_EFFORT: Record the failure and continue with the next change
    """

    FAIL_FAST = "fail_fast"
    BEST_EFFORT = "best_effort"


class EmptyChangePolicy(Enum):
    """
    What to do when a transformed change produces no destination diff.

    Attributes:
        FAIL: Treat the change as failed
        SKIP: Skip the change with a NOOP effect
        ALLOW: Write the change anyway
    """

    FAIL = "fail"
    SKIP = "skip"
    ALLOW = "allow"


class RunMode(Enum):
    """
    How many pending changes a run processes.

    Attributes:
        SINGLE_CHANGE: Only the first pending change
        ITERATIVE: Every pending change, one at a time
    """

    SINGLE_CHANGE = "single_change"
    ITERATIVE = "iterative"


@dataclass(frozen=True)
class Change:
    """
    One unit of content plus metadata read from the origin.

    Changes are immutable. They are produced by the origin, consumed once
    by a ChangeMigrator, then discarded.

    Attributes:
        origin_ref: Origin identifier of the change
        revision: Revision id in the origin
        author: Author, usually "Name <email>"
        timestamp: When the change was authored
        message: Change description
        previous_ref: Origin identifier of the previous migrated change,
            None for the first change of a history
        labels: Labels parsed from the message (e.g. ``Change-Id``)
    """

    origin_ref: str
    revision: str
    author: str
    timestamp: datetime
    message: str
    previous_ref: str | None = None
    labels: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))

    @property
    def first_line(self) -> str:
        """First line of the change message."""
        return self.message.splitlines()[0] if self.message else ""


@dataclass(frozen=True)
class DestinationRef:
    """
    Reference to the object a change produced in the destination.

    Attributes:
        id: Destination identifier (commit sha, review number...)
        type: Kind of reference (e.g. "commit", "review")
        url: Optional URL pointing at the reference
    """

    id: str
    type: str
    url: str | None = None


@dataclass(frozen=True)
class DestinationEffect:
    """
    Outcome of applying one change to the destination.

    Effects are appended to a run's aggregator in commit order and never
    mutated.

    Attributes:
        type: Kind of outcome
        summary: Human-readable summary
        destination_ref: Destination-side reference, if any
        origin_refs: Origin identifiers of the change(s) that produced it
        errors: Error messages for ERROR effects
    """

    type: EffectType
    summary: str
    destination_ref: DestinationRef | None = None
    origin_refs: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()

    @classmethod
    def noop(cls, summary: str, origin_ref: str) -> DestinationEffect:
        """Create a NOOP effect for a change that was not written."""
        return cls(type=EffectType.NOOP, summary=summary, origin_refs=(origin_ref,))

    @classmethod
    def error(cls, summary: str, origin_ref: str, *errors: str) -> DestinationEffect:
        """Create an ERROR effect for a change that failed."""
        return cls(
            type=EffectType.ERROR,
            summary=summary,
            origin_refs=(origin_ref,),
            errors=tuple(errors),
        )

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for serialization."""
        return {
            "type": self.type.value,
            "summary": self.summary,
            "destination_ref": (
                {
                    "id": self.destination_ref.id,
                    "type": self.destination_ref.type,
                    "url": self.destination_ref.url,
                }
                if self.destination_ref
                else None
            ),
            "origin_refs": list(self.origin_refs),
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class MigrationReference:
    """
    Migration state of one origin label.

    Attributes:
        label: Name of the reference (e.g. the origin branch)
        last_migrated: Revision last migrated, None if nothing was migrated
        available_to_migrate: Pending revisions, oldest first
    """

    label: str
    last_migrated: str | None
    available_to_migrate: tuple[str, ...] = ()


@dataclass(frozen=True)
class MigrationInfo:
    """
    Result of the info operation for a workflow.

    Attributes:
        workflow_name: Name of the workflow
        references: One entry per origin label
    """

    workflow_name: str
    references: tuple[MigrationReference, ...] = ()

    @property
    def pending_count(self) -> int:
        return sum(len(ref.available_to_migrate) for ref in self.references)


__all__ = [
    "ChangeState",
    "VALID_TRANSITIONS",
    "is_valid_transition",
    "EffectType",
    "ExitCode",
    "FailurePolicy",
    "EmptyChangePolicy",
    "RunMode",
    "Change",
    "DestinationRef",
    "DestinationEffect",
    "MigrationReference",
    "MigrationInfo",
]
