"""
Workflow runner.

Drives one run of a workflow: pulls pending changes from the origin one at
a time, migrates each with a ChangeMigrator, applies the failure policy,
and fires lifecycle events to the registered monitors.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from uuid import UUID, uuid4

from repomigrate.cache.directories import DirectoryFactory
from repomigrate.config import WorkflowConfig
from repomigrate.effects import DestinationEffectAggregator
from repomigrate.events import (
    ChangeMigrationFinished,
    ChangeMigrationStarted,
    InfoFinished,
    MigrationFinished,
    MigrationStarted,
)
from repomigrate.migrator import (
    ChangeMigrator,
    ChangeOutcome,
    ReviewIdResolver,
    change_id_label,
)
from repomigrate.models import (
    Change,
    ExitCode,
    FailurePolicy,
    MigrationInfo,
    MigrationReference,
    RunMode,
)
from repomigrate.monitor.dispatcher import EventMonitorDispatcher
from repomigrate.monitor.interface import EventMonitor
from repomigrate.observability import Tracer, create_tracer
from repomigrate.observability.attributes import (
    ATTR_EFFECT_COUNT,
    ATTR_EXIT_CODE,
    ATTR_RUN_ID,
    ATTR_RUN_MODE,
    ATTR_WORKFLOW_NAME,
)
from repomigrate.review.reader import ReviewStateReader
from repomigrate.workflow import Workflow

logger = logging.getLogger(__name__)


@dataclass
class MigrationRun:
    """
    State of one run. Lives in memory only.

    Attributes:
        run_id: Unique identifier of the run
        workflow_name: Workflow being run
        changes: Outcomes of the processed changes, in processing order
        cursor: Index of the next change to process
        aggregator: Effects of every processed change, in commit order
        exit_code: Terminal status, None until the run finishes
        started_at: When the run started
        finished_at: When the run finished
    """

    workflow_name: str
    run_id: UUID = field(default_factory=uuid4)
    changes: list[ChangeOutcome] = field(default_factory=list)
    cursor: int = 0
    aggregator: DestinationEffectAggregator = field(default_factory=DestinationEffectAggregator)
    exit_code: ExitCode | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None

    @property
    def is_finished(self) -> bool:
        return self.exit_code is not None

    @property
    def done_count(self) -> int:
        return sum(1 for outcome in self.changes if outcome.succeeded)

    @property
    def skipped_count(self) -> int:
        return sum(1 for outcome in self.changes if outcome.skipped)

    @property
    def failed_count(self) -> int:
        return sum(1 for outcome in self.changes if outcome.failed)

    def record(self, outcome: ChangeOutcome) -> None:
        self.changes.append(outcome)
        self.cursor += 1


class WorkflowRunner:
    """
    Runs a workflow.

    Changes are processed strictly one at a time. Stop requests and
    cancellation are honored between changes only: a change already under
    way runs to its terminal state first, so the destination is never left
    half-written.

    Example:
        >>> runner = WorkflowRunner(
        ...     workflow,
        ...     WorkflowConfig(
        ...         workflow_name="export",
        ...         working_dir=Path("/tmp/work"),
        ...         failure_policy=FailurePolicy.BEST_EFFORT,
        ...     ),
        ...     monitors=[LoggingEventMonitor()],
        ... )
        >>> run = await runner.run()
        >>> run.exit_code
        <ExitCode.SUCCESS: 'success'>
    """

    def __init__(
        self,
        workflow: Workflow,
        config: WorkflowConfig,
        *,
        monitors: list[EventMonitor] | None = None,
        dispatcher: EventMonitorDispatcher | None = None,
        directory_factory: DirectoryFactory | None = None,
        review_reader: ReviewStateReader | None = None,
        review_id_resolver: ReviewIdResolver = change_id_label,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the runner.

        Args:
            workflow: Resolved workflow definition
            config: Policies and tuning
            monitors: Event monitors to register on the dispatcher
            dispatcher: Event dispatcher (a new one is created if None)
            directory_factory: Supplies per-change working directories
                (defaults to one rooted at ``config.working_dir``)
            review_reader: Review reader (built from ``workflow.review_api``
                if None and the workflow has one)
            review_id_resolver: Maps a change to its review id
            tracer: Optional custom Tracer instance
            enable_tracing: Whether to enable OpenTelemetry tracing.
                          Ignored if tracer is explicitly provided.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._workflow = workflow
        self._config = config
        self._dispatcher = dispatcher or EventMonitorDispatcher(tracer=self._tracer)
        for monitor in monitors or []:
            self._dispatcher.register(monitor)
        self._directories = directory_factory or DirectoryFactory(config.working_dir)

        if review_reader is None and workflow.review_api is not None:
            review_reader = ReviewStateReader(
                workflow.review_api,
                config.get_review_retry_config(),
                tracer=self._tracer,
            )
        self._review_reader = review_reader
        self._review_id_resolver = review_id_resolver
        self._retry_config = config.get_retry_config()
        self._stop_requested = False

    @property
    def dispatcher(self) -> EventMonitorDispatcher:
        return self._dispatcher

    @property
    def config(self) -> WorkflowConfig:
        return self._config

    def request_stop(self) -> None:
        """Stop the current run before its next change starts."""
        self._stop_requested = True

    async def run(self, since: str | None = None) -> MigrationRun:
        """
        Migrate pending changes.

        Args:
            since: Origin ref of the last migrated change, None to let the
                origin resume from its own state

        Returns:
            The finished MigrationRun

        Raises:
            InfraError: Infrastructure failure; MigrationFinished(ERROR) has
                been fired before the error propagates
        """
        config = self._config
        run = MigrationRun(workflow_name=config.workflow_name)
        self._stop_requested = False

        with self._tracer.span(
            "repomigrate.runner.run",
            {
                ATTR_WORKFLOW_NAME: config.workflow_name,
                ATTR_RUN_ID: str(run.run_id),
                ATTR_RUN_MODE: config.mode.value,
            },
        ) as span:
            await self._dispatcher.dispatch(
                MigrationStarted(workflow_name=config.workflow_name, run_id=run.run_id)
            )
            logger.info(
                f"Starting {config.mode.value} run of workflow {config.workflow_name}",
                extra={
                    "workflow": config.workflow_name,
                    "run_id": str(run.run_id),
                    "failure_policy": config.failure_policy.value,
                },
            )

            exit_code = ExitCode.ERROR
            try:
                exit_code = await self._process(run, since)
            except asyncio.CancelledError:
                exit_code = ExitCode.INTERRUPTED
                raise
            except Exception as e:
                if span:
                    span.record_exception(e)
                logger.error(
                    f"Run of workflow {config.workflow_name} aborted: {e}",
                    exc_info=True,
                    extra={
                        "workflow": config.workflow_name,
                        "run_id": str(run.run_id),
                        "error_type": type(e).__name__,
                    },
                )
                raise
            finally:
                run.exit_code = exit_code
                run.finished_at = datetime.now(UTC)
                if self._review_reader is not None:
                    self._review_reader.clear()
                if span:
                    span.set_attribute(ATTR_EXIT_CODE, exit_code.value)
                    span.set_attribute(ATTR_EFFECT_COUNT, len(run.aggregator))
                await self._dispatcher.dispatch(
                    MigrationFinished(workflow_name=config.workflow_name, exit_code=exit_code)
                )

        logger.info(
            f"Run of workflow {config.workflow_name} finished: {exit_code.value}",
            extra={
                "workflow": config.workflow_name,
                "run_id": str(run.run_id),
                "exit_code": exit_code.value,
                "effects": run.aggregator.summary(),
            },
        )
        return run

    async def _process(self, run: MigrationRun, since: str | None) -> ExitCode:
        config = self._config
        interrupted = False
        aborted = False

        changes = self._workflow.origin.changes(since, config.origin_page_size)
        try:
            async for change in changes:
                if self._stop_requested:
                    interrupted = True
                    break

                outcome = await self._migrate(run, change)

                if outcome.failed and config.failure_policy == FailurePolicy.FAIL_FAST:
                    logger.warning(
                        f"Stopping run after failed change {change.origin_ref}",
                        extra={"workflow": config.workflow_name, "change": change.origin_ref},
                    )
                    aborted = True
                    break

                if config.mode == RunMode.SINGLE_CHANGE:
                    break
        finally:
            aclose = getattr(changes, "aclose", None)
            if aclose is not None:
                await aclose()

        if interrupted:
            return ExitCode.INTERRUPTED
        if aborted:
            return ExitCode.ERROR
        if not run.changes or run.skipped_count == len(run.changes):
            return ExitCode.NO_OP
        if run.failed_count:
            return ExitCode.PARTIAL_SUCCESS
        return ExitCode.SUCCESS

    async def _migrate(self, run: MigrationRun, change: Change) -> ChangeOutcome:
        config = self._config
        workdir = self._directories.new_temp_dir("change-")
        migrator = ChangeMigrator(
            change,
            self._workflow,
            run.aggregator,
            workflow_name=config.workflow_name,
            review_reader=self._review_reader,
            review_id_resolver=self._review_id_resolver,
            empty_change_policy=config.empty_change_policy,
            retry_config=self._retry_config,
            tracer=self._tracer,
        )

        await self._dispatcher.dispatch(
            ChangeMigrationStarted(workflow_name=config.workflow_name, change=change)
        )
        migration = asyncio.ensure_future(migrator.migrate(workdir))
        try:
            try:
                outcome = await asyncio.shield(migration)
            except asyncio.CancelledError:
                if not migration.done():
                    await self._finish_in_flight(change, migration)
                    if not migration.cancelled() and migration.exception() is None:
                        run.record(migration.result())
                raise
            run.record(outcome)
            return outcome
        finally:
            await self._dispatcher.dispatch(
                ChangeMigrationFinished(
                    workflow_name=config.workflow_name, effects=migrator.effects
                )
            )
            await self._remove_workdir(workdir)

    async def _finish_in_flight(
        self, change: Change, migration: asyncio.Future[ChangeOutcome]
    ) -> None:
        """Let a change that is already under way reach its terminal state."""
        logger.info(
            f"Run cancelled, finishing change {change.origin_ref} first",
            extra={"workflow": self._config.workflow_name, "change": change.origin_ref},
        )
        while not migration.done():
            try:
                await asyncio.wait({migration})
            except asyncio.CancelledError:
                continue

    @staticmethod
    async def _remove_workdir(workdir: Path) -> None:
        await asyncio.to_thread(shutil.rmtree, workdir, ignore_errors=True)

    async def info(self) -> MigrationInfo:
        """
        Report what was last migrated and what is pending.

        Returns:
            MigrationInfo with one reference for the origin
        """
        config = self._config
        origin = self._workflow.origin

        with self._tracer.span(
            "repomigrate.runner.info",
            {ATTR_WORKFLOW_NAME: config.workflow_name},
        ):
            last_migrated = await origin.last_migrated()
            changes = origin.changes(last_migrated, config.origin_page_size)
            try:
                pending = tuple([change.origin_ref async for change in changes])
            finally:
                aclose = getattr(changes, "aclose", None)
                if aclose is not None:
                    await aclose()

            info = MigrationInfo(
                workflow_name=config.workflow_name,
                references=(
                    MigrationReference(
                        label=self._workflow.origin_label,
                        last_migrated=last_migrated,
                        available_to_migrate=pending,
                    ),
                ),
            )
            await self._dispatcher.dispatch(
                InfoFinished(workflow_name=config.workflow_name, info=info)
            )

        return info


__all__ = ["MigrationRun", "WorkflowRunner"]
