"""
Per-change migration state machine.

A ChangeMigrator takes one change from PENDING to a terminal state:

    PENDING -> FETCHED -> TRANSFORMED -> VALIDATED -> COMMITTED
            -> EFFECT_RECORDED -> DONE

SKIPPED and FAILED are absorbing and reachable from PENDING, FETCHED and
VALIDATED. Every terminal outcome appends its effects to the run's
aggregator: the destination's effects for DONE, one NOOP for SKIPPED and
one ERROR for FAILED. Apart from infrastructure errors, any error a
collaborator raises fails the change, built-in exceptions included.

Infrastructure errors are not scoped to the change: they propagate out of
``migrate()`` after their retry budget and abort the run.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from repomigrate.effects import DestinationEffectAggregator
from repomigrate.exceptions import (
    ChangeStateError,
    DestinationError,
    EmptyChangeError,
    EventOrderError,
    InfraError,
    MigrationError,
    OriginError,
)
from repomigrate.models import (
    Change,
    ChangeState,
    DestinationEffect,
    EmptyChangePolicy,
    is_valid_transition,
)
from repomigrate.observability import Tracer, create_tracer
from repomigrate.observability.attributes import (
    ATTR_CHANGE_REF,
    ATTR_CHANGE_STATE,
    ATTR_EFFECT_COUNT,
    ATTR_WORKFLOW_NAME,
)
from repomigrate.retry import RetryConfig, RetryError, retry_async
from repomigrate.review.reader import ReviewStateReader
from repomigrate.workflow import Workflow

logger = logging.getLogger(__name__)

T = TypeVar("T")

ReviewIdResolver = Callable[[Change], str | None]

CHANGE_ID_LABEL = "Change-Id"


def change_id_label(change: Change) -> str | None:
    """Default review id resolver: the change's ``Change-Id`` label."""
    return change.labels.get(CHANGE_ID_LABEL)


@dataclass(frozen=True)
class ChangeOutcome:
    """
    Result of migrating one change.

    Attributes:
        change: The migrated change
        state: Terminal state (DONE, SKIPPED or FAILED)
        effects: Effects recorded for the change
        error: The error that failed the change, if any
    """

    change: Change
    state: ChangeState
    effects: tuple[DestinationEffect, ...] = ()
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == ChangeState.DONE

    @property
    def skipped(self) -> bool:
        return self.state == ChangeState.SKIPPED

    @property
    def failed(self) -> bool:
        return self.state == ChangeState.FAILED


class ChangeMigrator:
    """
    Migrates a single change.

    One instance per change; instances are not reused.

    Example:
        >>> migrator = ChangeMigrator(change, workflow, aggregator)
        >>> outcome = await migrator.migrate(workdir)
        >>> outcome.state
        <ChangeState.DONE: 'done'>
    """

    def __init__(
        self,
        change: Change,
        workflow: Workflow,
        aggregator: DestinationEffectAggregator,
        *,
        workflow_name: str = "",
        review_reader: ReviewStateReader | None = None,
        review_id_resolver: ReviewIdResolver = change_id_label,
        empty_change_policy: EmptyChangePolicy = EmptyChangePolicy.FAIL,
        retry_config: RetryConfig | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the migrator.

        Args:
            change: Change to migrate
            workflow: Origin, transformation, destination and checks
            aggregator: The run's effect aggregator
            workflow_name: Name used in logs and spans
            review_reader: Reader used to skip already landed changes
            review_id_resolver: Maps a change to its review id
            empty_change_policy: What to do when the change produces no diff
            retry_config: Retry budget for transient origin, destination
                and infrastructure errors
            tracer: Optional custom Tracer instance
            enable_tracing: Whether to enable OpenTelemetry tracing.
                          Ignored if tracer is explicitly provided.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._change = change
        self._workflow = workflow
        self._aggregator = aggregator
        self._workflow_name = workflow_name
        self._review_reader = review_reader
        self._review_id_resolver = review_id_resolver
        self._empty_change_policy = empty_change_policy
        self._retry_config = retry_config or RetryConfig()

        self._state = ChangeState.PENDING
        self._history: list[ChangeState] = [ChangeState.PENDING]
        self._effects: tuple[DestinationEffect, ...] = ()
        self._started = False

    @property
    def change(self) -> Change:
        return self._change

    @property
    def state(self) -> ChangeState:
        return self._state

    @property
    def history(self) -> tuple[ChangeState, ...]:
        """Every state visited, in order."""
        return tuple(self._history)

    @property
    def effects(self) -> tuple[DestinationEffect, ...]:
        """Effects recorded for this change so far."""
        return self._effects

    async def migrate(self, workdir: Path) -> ChangeOutcome:
        """
        Run the change through the state machine.

        Args:
            workdir: Working directory exclusively owned by this change

        Returns:
            ChangeOutcome with a terminal state

        Raises:
            InfraError: Infrastructure failure; the run must abort
            ChangeStateError: If the migrator was already used
        """
        if self._started:
            raise ChangeStateError(
                self._change.origin_ref, self._state.value, ChangeState.FETCHED.value
            )
        self._started = True

        with self._tracer.span(
            "repomigrate.change.migrate",
            {
                ATTR_WORKFLOW_NAME: self._workflow_name,
                ATTR_CHANGE_REF: self._change.origin_ref,
            },
        ) as span:
            try:
                outcome = await self._run(workdir)
            except InfraError as e:
                if span:
                    span.record_exception(e)
                self._effects = self._aggregator.record(
                    [
                        DestinationEffect.error(
                            f"Migration of {self._change.origin_ref} aborted",
                            self._change.origin_ref,
                            str(e),
                        )
                    ]
                )
                raise

            if span:
                span.set_attribute(ATTR_CHANGE_STATE, outcome.state.value)
                span.set_attribute(ATTR_EFFECT_COUNT, len(outcome.effects))
            return outcome

    async def _run(self, workdir: Path) -> ChangeOutcome:
        change = self._change
        workflow = self._workflow

        try:
            await self._retrying(
                lambda: workflow.origin.checkout(change, workdir),
                "origin checkout",
                lambda message: OriginError(change.origin_ref, message),
            )
            self._transition(ChangeState.FETCHED)

            if await self._already_landed():
                return self._skip("Change already landed in review")

            await workflow.transformation.apply(workdir, change)
            self._transition(ChangeState.TRANSFORMED)
        except (InfraError, ChangeStateError, EventOrderError):
            raise
        except Exception as e:
            return self._fail(e)

        failure: Exception | None = None
        empty = False
        try:
            empty = await self._check_consistency(workdir)
        except (InfraError, ChangeStateError, EventOrderError):
            raise
        except Exception as e:
            failure = e
        # The verdict is applied once VALIDATED is reached
        self._transition(ChangeState.VALIDATED)
        if failure is not None:
            return self._fail(failure)
        if empty:
            return self._skip("Change produces no destination changes")

        try:
            effects = await self._retrying(
                lambda: workflow.destination.write(workdir, change),
                "destination write",
                DestinationError,
            )
        except (InfraError, ChangeStateError, EventOrderError):
            raise
        except Exception as e:
            return self._fail(e)
        self._transition(ChangeState.COMMITTED)

        if not effects:
            effects = [DestinationEffect.noop("Destination reported no effects", change.origin_ref)]
        self._effects = self._aggregator.record(effects)
        self._transition(ChangeState.EFFECT_RECORDED)

        self._transition(ChangeState.DONE)
        logger.info(
            f"Migrated change {change.origin_ref}",
            extra={
                "workflow": self._workflow_name,
                "change": change.origin_ref,
                "effects": [effect.type.value for effect in self._effects],
            },
        )
        return ChangeOutcome(change=change, state=self._state, effects=self._effects)

    async def _already_landed(self) -> bool:
        if self._review_reader is None:
            return False
        review_id = self._review_id_resolver(self._change)
        if review_id is None:
            return False
        return await self._review_reader.is_landed(review_id)

    async def _check_consistency(self, workdir: Path) -> bool:
        """
        Evaluate the empty-change policy and the consistency checks.

        Returns:
            True if the change should be skipped as empty

        Raises:
            ValidationError: If a check fails or an empty change is not allowed
        """
        change = self._change
        if self._empty_change_policy != EmptyChangePolicy.ALLOW:
            has_changes = await self._retrying(
                lambda: self._workflow.destination.has_changes(workdir, change),
                "destination diff",
                DestinationError,
            )
            if not has_changes:
                if self._empty_change_policy == EmptyChangePolicy.SKIP:
                    return True
                raise EmptyChangeError(change.origin_ref)

        for check in self._workflow.checks:
            await check.check(workdir, change)
        return False

    async def _retrying(
        self,
        operation: Callable[[], Awaitable[T]],
        name: str,
        step_error: Callable[[str], MigrationError],
    ) -> T:
        """
        Retry transient errors until the retry budget runs out.

        A library error from the last attempt is re-raised as is. Anything
        else, such as a ConnectionError, is wrapped with ``step_error`` so
        it fails the change instead of escaping as an unknown error.
        """
        try:
            return await retry_async(
                operation,
                config=self._retry_config,
                operation_name=f"{name} for {self._change.origin_ref}",
            )
        except RetryError as e:
            if isinstance(e.last_error, MigrationError):
                raise e.last_error from e
            raise step_error(
                f"{name} gave up after {e.attempts} attempts: "
                f"{type(e.last_error).__name__}: {e.last_error}"
            ) from e.last_error

    def _transition(self, to_state: ChangeState) -> None:
        if not is_valid_transition(self._state, to_state):
            raise ChangeStateError(self._change.origin_ref, self._state.value, to_state.value)
        logger.debug(
            f"Change {self._change.origin_ref}: {self._state.value} -> {to_state.value}",
            extra={
                "change": self._change.origin_ref,
                "from_state": self._state.value,
                "to_state": to_state.value,
            },
        )
        self._state = to_state
        self._history.append(to_state)

    def _skip(self, reason: str) -> ChangeOutcome:
        self._transition(ChangeState.SKIPPED)
        self._effects = self._aggregator.record(
            [DestinationEffect.noop(reason, self._change.origin_ref)]
        )
        logger.info(
            f"Skipped change {self._change.origin_ref}: {reason}",
            extra={"workflow": self._workflow_name, "change": self._change.origin_ref},
        )
        return ChangeOutcome(change=self._change, state=self._state, effects=self._effects)

    def _fail(self, error: Exception) -> ChangeOutcome:
        self._transition(ChangeState.FAILED)
        detail = str(error)
        if not isinstance(error, MigrationError):
            detail = f"{type(error).__name__}: {error}"
        self._effects = self._aggregator.record(
            [
                DestinationEffect.error(
                    f"Migration of {self._change.origin_ref} failed",
                    self._change.origin_ref,
                    detail,
                )
            ]
        )
        logger.warning(
            f"Change {self._change.origin_ref} failed: {detail}",
            extra={
                "workflow": self._workflow_name,
                "change": self._change.origin_ref,
                "error_type": type(error).__name__,
                "error": detail,
            },
        )
        return ChangeOutcome(
            change=self._change,
            state=self._state,
            effects=self._effects,
            error=error,
        )


__all__ = [
    "CHANGE_ID_LABEL",
    "ChangeMigrator",
    "ChangeOutcome",
    "ReviewIdResolver",
    "change_id_label",
]
