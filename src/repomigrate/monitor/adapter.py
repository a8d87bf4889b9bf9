"""
Adapter normalizing event monitor hooks to a consistent async interface.

Monitor hooks may be synchronous methods or coroutines. The adapter maps
each event class to the hook that handles it and always returns an
awaitable, so the dispatcher never checks handler shapes at runtime.
"""

import asyncio
from typing import Any

from repomigrate.events import (
    ChangeMigrationFinished,
    ChangeMigrationStarted,
    InfoFinished,
    MigrationEvent,
    MigrationFinished,
    MigrationStarted,
)
from repomigrate.monitor.interface import EventMonitor

HOOKS: dict[type[MigrationEvent], str] = {
    MigrationStarted: "on_migration_started",
    ChangeMigrationStarted: "on_change_migration_started",
    ChangeMigrationFinished: "on_change_migration_finished",
    MigrationFinished: "on_migration_finished",
    InfoFinished: "on_info_finished",
}


def get_monitor_name(monitor: Any) -> str:
    """
    Get a descriptive name for a monitor for logging and debugging.

    Args:
        monitor: Any monitor object

    Returns:
        String name for the monitor
    """
    if hasattr(monitor, "name") and isinstance(monitor.name, str):
        return monitor.name
    return type(monitor).__name__


class MonitorAdapter:
    """
    Wraps an EventMonitor so every hook can be awaited.

    Attributes:
        original: The wrapped monitor
        name: Descriptive name for logging
    """

    def __init__(self, monitor: EventMonitor) -> None:
        if not isinstance(monitor, EventMonitor):
            raise TypeError(f"Monitor must be an EventMonitor, got {type(monitor)}")
        self._original = monitor
        self._name = get_monitor_name(monitor)

    @property
    def original(self) -> EventMonitor:
        return self._original

    @property
    def name(self) -> str:
        return self._name

    async def handle(self, event: MigrationEvent) -> None:
        """
        Deliver an event to the matching hook.

        Args:
            event: The lifecycle event
        """
        hook = getattr(self._original, HOOKS[type(event)])
        result = hook(event)
        if asyncio.iscoroutine(result) or isinstance(result, asyncio.Future):
            await result

    def __eq__(self, other: object) -> bool:
        """Check equality based on original monitor identity."""
        if isinstance(other, MonitorAdapter):
            return self._original is other._original
        return self._original is other

    def __hash__(self) -> int:
        return id(self._original)

    def __repr__(self) -> str:
        return f"MonitorAdapter({self._name})"


__all__ = ["HOOKS", "MonitorAdapter", "get_monitor_name"]
