"""Exception hierarchy for the node supervisor."""

from __future__ import annotations

from collections.abc import Iterable


class SupervisorError(Exception):
    """
    Base exception for all supervisor errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class ConfigurationError(SupervisorError):
    """
    Raised for invalid flags, invalid paths or malformed persisted state.

    Configuration errors are fatal and happen before any child process starts.
    """


class AlreadyRunningError(SupervisorError):
    """
    Raised when the instance lock is held by a live process.

    Attributes:
        owner_pid: PID recorded in the lock file.
    """

    def __init__(self, owner_pid: int) -> None:
        self.owner_pid = owner_pid
        super().__init__(f"Another supervisor is already running (pid {owner_pid})")


class SpawnError(SupervisorError):
    """
    Raised when a child process could not be started.

    Attributes:
        role: Role whose spawn failed.
        detail: Underlying failure description.
    """

    def __init__(self, role: str, detail: str) -> None:
        self.role = role
        self.detail = detail
        super().__init__(f"Failed to start {role}: {detail}")


class StartupAbortedError(SupervisorError):
    """
    Raised when a role cannot start because a hard dependency is not running.

    Attributes:
        role: Role that was about to start.
        missing: Dependencies that are not running.
    """

    def __init__(self, role: str, missing: Iterable[str]) -> None:
        self.role = role
        self.missing = tuple(missing)
        super().__init__(f"Cannot start {role}: dependency not running ({', '.join(self.missing)})")


class InvalidTransitionError(SupervisorError):
    """
    Raised when a state machine is asked to perform a forbidden transition.

    This always indicates a programming error in the caller.

    Attributes:
        subject: What changed state (a role name or "supervisor").
        source: Current state name.
        target: Requested state name.
    """

    def __init__(self, subject: str, source: str, target: str) -> None:
        self.subject = subject
        self.source = source
        self.target = target
        super().__init__(f"{subject}: invalid transition {source} -> {target}")


class SecretStoreError(SupervisorError):
    """Base class for secure directory and secret file errors."""


class SecretWriteError(SecretStoreError):
    """
    Raised when a secret file cannot be created or written.

    Fatal to starting the validator role.
    """


class PasswordTooShortError(SecretStoreError):
    """
    Raised when a password is shorter than the required minimum.

    Attributes:
        minimum: Minimum accepted length.
    """

    def __init__(self, minimum: int) -> None:
        self.minimum = minimum
        super().__init__(f"Password must be at least {minimum} characters")


class PasswordMismatchError(SecretStoreError):
    """Raised when the password confirmation does not match."""

    def __init__(self) -> None:
        super().__init__("Passwords do not match. Please restart and try again.")


class InvalidEntityIdentifierError(SecretStoreError):
    """
    Raised when an entity identifier is not a plain hexadecimal string.

    Identifiers are rejected rather than sanitized.

    Attributes:
        entity_id: The rejected identifier, truncated for display.
    """

    def __init__(self, entity_id: str) -> None:
        shown = entity_id if len(entity_id) <= 40 else entity_id[:37] + "..."
        self.entity_id = shown
        super().__init__(f"Invalid entity identifier {shown!r}: expected hexadecimal")


class PresenceCheckError(SupervisorError):
    """Raised when the physical presence check is not satisfied."""
