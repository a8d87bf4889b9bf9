"""
Test utilities for repomigrate.

Components:
    MigrationTestHarness: In-memory collaborators wired into a runner
    InMemoryOrigin, InMemoryDestination, InMemoryReviewApi: Scriptable doubles
    RecordingTransformation, RecordingCheck: Pipeline doubles
    RecordingEventMonitor: Keeps every lifecycle event
    build_change, build_changes: Change builders

Note:
    This module is optional and intended for test code only. It should not
    be imported in production code paths.
"""

from repomigrate.testing.doubles import (
    InMemoryDestination,
    InMemoryOrigin,
    InMemoryReviewApi,
    RecordingCheck,
    RecordingEventMonitor,
    RecordingTransformation,
    build_change,
    build_changes,
)
from repomigrate.testing.harness import MigrationTestHarness

__all__ = [
    "MigrationTestHarness",
    "InMemoryOrigin",
    "InMemoryDestination",
    "InMemoryReviewApi",
    "RecordingTransformation",
    "RecordingCheck",
    "RecordingEventMonitor",
    "build_change",
    "build_changes",
]
