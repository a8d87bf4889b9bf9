"""
Event monitor interface.

An EventMonitor reacts to the high-level lifecycle of a run. Every hook has
a no-op default, so monitors only override what they care about. Hooks may
be plain methods or coroutines.

Example:
    >>> class ReviewNotifier(EventMonitor):
    ...     async def on_change_migration_finished(self, event):
    ...         for effect in event.effects:
    ...             await notify(effect.summary)
"""

from __future__ import annotations

from collections.abc import Awaitable

from repomigrate.events import (
    ChangeMigrationFinished,
    ChangeMigrationStarted,
    InfoFinished,
    MigrationFinished,
    MigrationStarted,
)


class EventMonitor:
    """
    Base class for lifecycle observers with no-op hooks.

    Ordering guaranteed by the dispatcher:
        - on_migration_started: once, before anything else
        - on_change_migration_started / on_change_migration_finished:
          one matched pair per change, never interleaved
        - on_migration_finished: once, last
        - on_info_finished: once at the end of an info operation
    """

    def on_migration_started(self, event: MigrationStarted) -> Awaitable[None] | None:
        """Invoked when the migration starts."""
        return None

    def on_change_migration_started(
        self, event: ChangeMigrationStarted
    ) -> Awaitable[None] | None:
        """Invoked when each change migration starts."""
        return None

    def on_change_migration_finished(
        self, event: ChangeMigrationFinished
    ) -> Awaitable[None] | None:
        """Invoked when each change migration finishes."""
        return None

    def on_migration_finished(self, event: MigrationFinished) -> Awaitable[None] | None:
        """Invoked when the migration finishes."""
        return None

    def on_info_finished(self, event: InfoFinished) -> Awaitable[None] | None:
        """Invoked when an info operation finishes."""
        return None


__all__ = ["EventMonitor"]
