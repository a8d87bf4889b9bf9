"""Event monitor dispatcher.

Broadcasts lifecycle events to every registered EventMonitor, in
registration order, and enforces the well-nested event order of a run.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from repomigrate.events import (
    ChangeMigrationFinished,
    ChangeMigrationStarted,
    InfoFinished,
    MigrationEvent,
    MigrationFinished,
    MigrationStarted,
)
from repomigrate.exceptions import EventOrderError
from repomigrate.monitor.adapter import MonitorAdapter
from repomigrate.monitor.interface import EventMonitor
from repomigrate.observability import Tracer, create_tracer
from repomigrate.observability.attributes import (
    ATTR_EVENT_TYPE,
    ATTR_MONITOR_COUNT,
    ATTR_MONITOR_NAME,
    ATTR_MONITOR_SUCCESS,
    ATTR_WORKFLOW_NAME,
)

logger = logging.getLogger(__name__)


class DispatchPhase(Enum):
    """Position of the dispatcher in the event sequence of a run."""

    IDLE = "idle"
    RUNNING = "running"
    IN_CHANGE = "in_change"
    FINISHED = "finished"


@dataclass(frozen=True)
class MonitorFailure:
    """
    A monitor failure isolated by the dispatcher.

    Attributes:
        monitor_name: Name of the failing monitor
        event_type: Event being delivered
        error_type: Exception class name
        error_message: Exception message
        timestamp: When the failure happened
    """

    monitor_name: str
    event_type: str
    error_type: str
    error_message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class EventMonitorDispatcher:
    """
    Delivers lifecycle events to registered monitors.

    Features:
    - Synchronous delivery in registration order
    - Event order enforcement: one MigrationStarted first, matched
      ChangeMigrationStarted/ChangeMigrationFinished pairs, one
      MigrationFinished last
    - Error isolation: a failing monitor is recorded and logged, the
      other monitors still receive the event
    - Optional OpenTelemetry tracing

    Example:
        >>> dispatcher = EventMonitorDispatcher()
        >>> dispatcher.register(LoggingEventMonitor())
        >>> await dispatcher.dispatch(MigrationStarted(workflow_name="default"))
    """

    def __init__(
        self,
        monitors: list[EventMonitor] | None = None,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            monitors: Monitors to register up front
            tracer: Optional custom Tracer instance
            enable_tracing: Whether to enable OpenTelemetry tracing.
                          Ignored if tracer is explicitly provided.
        """
        self._monitors: list[MonitorAdapter] = []
        self._lock = threading.RLock()
        self._phase = DispatchPhase.IDLE
        self._failures: list[MonitorFailure] = []
        self._stats = {
            "events_dispatched": 0,
            "monitors_invoked": 0,
            "monitor_errors": 0,
        }

        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled

        for monitor in monitors or []:
            self.register(monitor)

    @property
    def phase(self) -> DispatchPhase:
        return self._phase

    @property
    def failures(self) -> tuple[MonitorFailure, ...]:
        """Monitor failures recorded so far."""
        return tuple(self._failures)

    def register(self, monitor: EventMonitor) -> None:
        """
        Register a monitor.

        Thread-safe: Can be called from any thread.

        Args:
            monitor: The monitor to register
        """
        adapter = MonitorAdapter(monitor)

        with self._lock:
            self._monitors.append(adapter)

        logger.debug(
            f"Registered event monitor {adapter.name}",
            extra={"monitor": adapter.name},
        )

    def unregister(self, monitor: EventMonitor) -> bool:
        """
        Unregister a monitor.

        Args:
            monitor: The monitor to remove

        Returns:
            True if the monitor was found and removed, False otherwise
        """
        with self._lock:
            for i, adapter in enumerate(self._monitors):
                if adapter == monitor:
                    self._monitors.pop(i)
                    return True
        return False

    def get_monitor_count(self) -> int:
        with self._lock:
            return len(self._monitors)

    def get_stats(self) -> dict[str, int]:
        """
        Get statistics about dispatching.

        Returns:
            Dictionary with counts:
            - events_dispatched: Total events dispatched
            - monitors_invoked: Total successful monitor invocations
            - monitor_errors: Total monitor errors
        """
        return dict(self._stats)

    def reset(self) -> None:
        """Return to the idle phase and forget recorded failures."""
        self._phase = DispatchPhase.IDLE
        self._failures.clear()

    async def dispatch(self, event: MigrationEvent) -> None:
        """
        Deliver an event to every registered monitor.

        Args:
            event: The lifecycle event

        Raises:
            EventOrderError: If the event would break the run's event order
        """
        next_phase = self._advance(event)

        with self._lock:
            monitors = list(self._monitors)

        with self._tracer.span(
            "repomigrate.monitor.dispatch",
            {
                ATTR_EVENT_TYPE: event.event_type,
                ATTR_WORKFLOW_NAME: event.workflow_name,
                ATTR_MONITOR_COUNT: len(monitors),
            },
        ):
            for adapter in monitors:
                await self._safe_handle(adapter, event)

        self._phase = next_phase
        self._stats["events_dispatched"] += 1

    def _advance(self, event: MigrationEvent) -> DispatchPhase:
        """Compute the phase after ``event``, rejecting out-of-order events."""
        phase = self._phase

        if isinstance(event, MigrationStarted):
            if phase in (DispatchPhase.IDLE, DispatchPhase.FINISHED):
                return DispatchPhase.RUNNING
            reason = "a migration is already running"
        elif isinstance(event, ChangeMigrationStarted):
            if phase == DispatchPhase.RUNNING:
                return DispatchPhase.IN_CHANGE
            reason = (
                "the previous change migration has not finished"
                if phase == DispatchPhase.IN_CHANGE
                else "no migration is running"
            )
        elif isinstance(event, ChangeMigrationFinished):
            if phase == DispatchPhase.IN_CHANGE:
                return DispatchPhase.RUNNING
            reason = "no change migration has started"
        elif isinstance(event, MigrationFinished):
            if phase == DispatchPhase.RUNNING:
                return DispatchPhase.FINISHED
            reason = (
                "a change migration is still in progress"
                if phase == DispatchPhase.IN_CHANGE
                else "no migration is running"
            )
        elif isinstance(event, InfoFinished):
            if phase in (DispatchPhase.IDLE, DispatchPhase.FINISHED):
                return phase
            reason = "a migration is running"
        else:
            reason = "unknown event type"

        raise EventOrderError(event.event_type, reason)

    async def _safe_handle(self, adapter: MonitorAdapter, event: MigrationEvent) -> None:
        """
        Safely execute a monitor hook, recording and logging exceptions.

        Args:
            adapter: The MonitorAdapter wrapping the monitor
            event: The event to deliver
        """
        with self._tracer.span(
            "repomigrate.monitor.handle",
            {
                ATTR_EVENT_TYPE: event.event_type,
                ATTR_MONITOR_NAME: adapter.name,
            },
        ) as span:
            try:
                await adapter.handle(event)
                if span:
                    span.set_attribute(ATTR_MONITOR_SUCCESS, True)
                self._stats["monitors_invoked"] += 1
            except Exception as e:
                if span:
                    span.set_attribute(ATTR_MONITOR_SUCCESS, False)
                    span.record_exception(e)
                self._stats["monitor_errors"] += 1
                self._failures.append(
                    MonitorFailure(
                        monitor_name=adapter.name,
                        event_type=event.event_type,
                        error_type=type(e).__name__,
                        error_message=str(e),
                    )
                )
                logger.error(
                    f"Monitor {adapter.name} failed processing {event.event_type}: {e}",
                    exc_info=True,
                    extra={
                        "monitor": adapter.name,
                        "event_type": event.event_type,
                        "error": str(e),
                    },
                )


__all__ = ["DispatchPhase", "EventMonitorDispatcher", "MonitorFailure"]
