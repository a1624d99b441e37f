"""
Alert sinks.

The supervisor hands every crash to an `AlertSink`. Delivering alerts to
external channels is left to sink implementations; the default sink writes to
the log at a level matching the event severity.
"""

from __future__ import annotations

import logging
from typing import Protocol

from .events import CrashEvent, Severity

logger = logging.getLogger(__name__)


class AlertSink(Protocol):
    """Receiver of crash events."""

    async def emit(self, event: CrashEvent) -> None:
        """Deliver one event. Must not raise for delivery failures."""
        ...


class LoggingAlertSink:
    """Writes crash events to the log."""

    async def emit(self, event: CrashEvent) -> None:
        level = logging.CRITICAL if event.severity is Severity.CRITICAL else logging.WARNING
        message = event.describe()
        if event.owner:
            message = f"[{event.owner}] {message}"
        logger.log(level, message)
