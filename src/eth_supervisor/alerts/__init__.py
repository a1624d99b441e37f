"""Crash alerts emitted by the supervisor."""

from .events import CrashEvent, Severity, crash_severity
from .sink import AlertSink, LoggingAlertSink

__all__ = [
    "AlertSink",
    "CrashEvent",
    "LoggingAlertSink",
    "Severity",
    "crash_severity",
]
