"""
Lifecycle events consumed by the supervisor's control loop.

Exit watchers, signal handlers and the startup sequence never touch process
state directly. They post one of these events to the supervisor's queue and
the control loop applies it.
"""

from __future__ import annotations

from dataclasses import dataclass

from eth_supervisor.roles import Role


@dataclass(frozen=True, slots=True)
class ProcessSpawned:
    """A role's child process was created."""

    role: Role
    """Role that started."""

    pid: int
    """Operating system process id."""


@dataclass(frozen=True, slots=True)
class ProcessSpawnFailed:
    """A role's child process could not be created."""

    role: Role
    """Role that failed to start."""

    error: str
    """Failure description."""


@dataclass(frozen=True, slots=True)
class ProcessExited:
    """A role's child process terminated."""

    role: Role
    """Role whose process exited."""

    exit_code: int | None
    """Exit status. Negative values are terminating signal numbers."""


@dataclass(frozen=True, slots=True)
class ShutdownRequested:
    """Coordinated shutdown was requested."""

    reason: str
    """What triggered the shutdown (signal name, error, operator)."""


@dataclass(frozen=True, slots=True)
class ShutdownCompleted:
    """Every role was stopped and shared resources were released."""

    duration: float
    """Seconds from the shutdown request until completion."""


SupervisorEvent = (
    ProcessSpawned | ProcessSpawnFailed | ProcessExited | ShutdownRequested | ShutdownCompleted
)
"""Union of all events the control loop handles."""
