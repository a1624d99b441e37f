"""Crash events and their severity."""

from __future__ import annotations

import socket
from dataclasses import dataclass, field
from enum import StrEnum

from eth_supervisor.roles import Role


class Severity(StrEnum):
    """How urgently an operator must react to an alert."""

    CRITICAL = "critical"
    """Money is at stake: a validator that is down misses duties and is penalized."""

    WARNING = "warning"
    """Degraded operation that needs attention."""


def crash_severity(role: Role) -> Severity:
    """Severity of an unexpected exit of `role`."""
    return Severity.CRITICAL if role is Role.VALIDATOR else Severity.WARNING


@dataclass(frozen=True, slots=True)
class CrashEvent:
    """An unexpected exit of a supervised process."""

    role: Role
    """Role whose process exited."""

    exit_code: int | None
    """Exit status as reported by the operating system."""

    severity: Severity
    """Derived from the role."""

    hostname: str = field(default_factory=socket.gethostname)
    """Machine on which the crash happened."""

    owner: str | None = None
    """Operator identifier from the run configuration."""

    @classmethod
    def for_exit(cls, role: Role, exit_code: int | None, *, owner: str | None = None) -> CrashEvent:
        """Build the event for an unexpected exit, deriving severity from the role."""
        return cls(role=role, exit_code=exit_code, severity=crash_severity(role), owner=owner)

    def describe(self) -> str:
        """Operator-facing one-line message."""
        match self.role:
            case Role.VALIDATOR:
                return (
                    f"CRITICAL: Validator client crashed on {self.hostname} "
                    f"(exit code {self.exit_code}). Missed duties may result in penalties."
                )
            case Role.RELAY:
                return (
                    f"MEV-Boost crashed on {self.hostname} (exit code {self.exit_code}). "
                    "Block proposals will fall back to local block building."
                )
            case _:
                return (
                    f"{self.role.value.capitalize()} client crashed on {self.hostname} "
                    f"(exit code {self.exit_code})."
                )
