"""
Event monitors for the lifecycle of a migration run.

Example:
    >>> from repomigrate.monitor import EventMonitorDispatcher, LoggingEventMonitor
    >>>
    >>> dispatcher = EventMonitorDispatcher([LoggingEventMonitor()])
"""

from repomigrate.monitor.dispatcher import (
    DispatchPhase,
    EventMonitorDispatcher,
    MonitorFailure,
)
from repomigrate.monitor.interface import EventMonitor
from repomigrate.monitor.logging_monitor import LoggingEventMonitor

__all__ = [
    "DispatchPhase",
    "EventMonitor",
    "EventMonitorDispatcher",
    "LoggingEventMonitor",
    "MonitorFailure",
]
