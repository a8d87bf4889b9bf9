"""Unit tests for LoggingEventMonitor."""

import logging

import pytest

from repomigrate.events import (
    ChangeMigrationFinished,
    ChangeMigrationStarted,
    InfoFinished,
    MigrationFinished,
    MigrationStarted,
)
from repomigrate.models import (
    DestinationEffect,
    ExitCode,
    MigrationInfo,
    MigrationReference,
)
from repomigrate.monitor import LoggingEventMonitor
from repomigrate.testing import build_change

LOGGER = "repomigrate.monitor.logging_monitor"


class TestLoggingEventMonitor:
    """Tests for log output of each hook."""

    @pytest.fixture
    def monitor(self) -> LoggingEventMonitor:
        return LoggingEventMonitor()

    def test_migration_started(self, monitor, caplog):
        with caplog.at_level(logging.INFO, logger=LOGGER):
            monitor.on_migration_started(MigrationStarted(workflow_name="export"))
        assert "Migration started for workflow export" in caplog.text

    def test_change_started_uses_first_line(self, monitor, caplog):
        change = build_change("c1", message="Fix parser\n\nLong body")
        with caplog.at_level(logging.INFO, logger=LOGGER):
            monitor.on_change_migration_started(ChangeMigrationStarted(change=change))
        assert "Migrating change c1: Fix parser" in caplog.text
        assert "Long body" not in caplog.text

    def test_error_effects_logged_as_warning(self, monitor, caplog):
        event = ChangeMigrationFinished(
            effects=(
                DestinationEffect.noop("already merged", "c1"),
                DestinationEffect.error("failed", "c2", "boom"),
            )
        )
        with caplog.at_level(logging.INFO, logger=LOGGER):
            monitor.on_change_migration_finished(event)

        levels = {record.getMessage(): record.levelno for record in caplog.records}
        assert levels["NOOP: already merged"] == logging.INFO
        assert levels["ERROR: failed"] == logging.WARNING

    def test_migration_finished(self, monitor, caplog):
        with caplog.at_level(logging.INFO, logger=LOGGER):
            monitor.on_migration_finished(
                MigrationFinished(workflow_name="export", exit_code=ExitCode.PARTIAL_SUCCESS)
            )
        assert "partial_success" in caplog.text

    def test_info_finished(self, monitor, caplog):
        info = MigrationInfo("export", (MigrationReference("origin", None, ("c1", "c2")),))
        with caplog.at_level(logging.INFO, logger=LOGGER):
            monitor.on_info_finished(InfoFinished(workflow_name="export", info=info))
        assert "origin: last migrated none, 2 pending" in caplog.text

    def test_custom_logger(self, caplog):
        custom = logging.getLogger("tests.custom_monitor")
        monitor = LoggingEventMonitor(custom)
        with caplog.at_level(logging.INFO, logger="tests.custom_monitor"):
            monitor.on_migration_started(MigrationStarted(workflow_name="export"))
        assert caplog.records[0].name == "tests.custom_monitor"
