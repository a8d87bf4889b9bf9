"""
Lifecycle events fired while a workflow runs.

Events are immutable records delivered synchronously to the registered
event monitors, in this order for every run::

    MigrationStarted
    (ChangeMigrationStarted ChangeMigrationFinished)*
    MigrationFinished

``InfoFinished`` is fired once at the end of an info operation.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from repomigrate.models import Change, DestinationEffect, ExitCode, MigrationInfo


class MigrationEvent(BaseModel):
    """
    Base class for all lifecycle events.

    Attributes:
        event_id: Unique identifier for this event instance
        occurred_at: When the event occurred (UTC timestamp)
        workflow_name: Workflow the event belongs to
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    event_id: UUID = Field(default_factory=uuid4, description="Unique event identifier")
    occurred_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When event occurred (UTC)",
    )
    workflow_name: str = Field(default="", description="Workflow being run")

    @property
    def event_type(self) -> str:
        """Event class name."""
        return type(self).__name__


class MigrationStarted(MigrationEvent):
    """Fired once at the beginning of a run."""

    run_id: UUID | None = None


class ChangeMigrationStarted(MigrationEvent):
    """Fired before each change is migrated."""

    change: Change


class ChangeMigrationFinished(MigrationEvent):
    """Fired after each change is migrated, whatever its outcome."""

    effects: tuple[DestinationEffect, ...] = ()


class MigrationFinished(MigrationEvent):
    """Fired once at the end of a run, carrying its exit code."""

    exit_code: ExitCode


class InfoFinished(MigrationEvent):
    """Fired once at the end of an info operation."""

    info: MigrationInfo


__all__ = [
    "MigrationEvent",
    "MigrationStarted",
    "ChangeMigrationStarted",
    "ChangeMigrationFinished",
    "MigrationFinished",
    "InfoFinished",
]
