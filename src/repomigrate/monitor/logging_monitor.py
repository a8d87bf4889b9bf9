"""Event monitor that logs the lifecycle of a run."""

import logging

from repomigrate.events import (
    ChangeMigrationFinished,
    ChangeMigrationStarted,
    InfoFinished,
    MigrationFinished,
    MigrationStarted,
)
from repomigrate.models import EffectType
from repomigrate.monitor.interface import EventMonitor

logger = logging.getLogger(__name__)


class LoggingEventMonitor(EventMonitor):
    """
    Logs every lifecycle event.

    Failed changes are logged at WARNING, everything else at INFO.

    Args:
        log: Logger to write to (defaults to this module's logger)
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def on_migration_started(self, event: MigrationStarted) -> None:
        self._log.info(
            f"Migration started for workflow {event.workflow_name}",
            extra={"workflow": event.workflow_name, "run_id": str(event.run_id)},
        )

    def on_change_migration_started(self, event: ChangeMigrationStarted) -> None:
        self._log.info(
            f"Migrating change {event.change.origin_ref}: {event.change.first_line}",
            extra={"workflow": event.workflow_name, "change": event.change.origin_ref},
        )

    def on_change_migration_finished(self, event: ChangeMigrationFinished) -> None:
        for effect in event.effects:
            level = logging.WARNING if effect.type == EffectType.ERROR else logging.INFO
            self._log.log(
                level,
                f"{effect.type.value.upper()}: {effect.summary}",
                extra={
                    "workflow": event.workflow_name,
                    "effect_type": effect.type.value,
                    "origin_refs": list(effect.origin_refs),
                    "errors": list(effect.errors),
                },
            )

    def on_migration_finished(self, event: MigrationFinished) -> None:
        self._log.info(
            f"Migration finished for workflow {event.workflow_name}: {event.exit_code.value}",
            extra={"workflow": event.workflow_name, "exit_code": event.exit_code.value},
        )

    def on_info_finished(self, event: InfoFinished) -> None:
        for ref in event.info.references:
            self._log.info(
                f"{ref.label}: last migrated {ref.last_migrated or 'none'}, "
                f"{len(ref.available_to_migrate)} pending",
                extra={"workflow": event.workflow_name, "label": ref.label},
            )


__all__ = ["LoggingEventMonitor"]
