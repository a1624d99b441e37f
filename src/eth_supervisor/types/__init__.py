"""Shared base models and the exception hierarchy."""

from .base import CamelModel, StrictBaseModel
from .exceptions import (
    AlreadyRunningError,
    ConfigurationError,
    InvalidEntityIdentifierError,
    InvalidTransitionError,
    PasswordMismatchError,
    PasswordTooShortError,
    PresenceCheckError,
    SecretStoreError,
    SecretWriteError,
    SpawnError,
    StartupAbortedError,
    SupervisorError,
)

__all__ = [
    "AlreadyRunningError",
    "CamelModel",
    "ConfigurationError",
    "InvalidEntityIdentifierError",
    "InvalidTransitionError",
    "PasswordMismatchError",
    "PasswordTooShortError",
    "PresenceCheckError",
    "SecretStoreError",
    "SecretWriteError",
    "SpawnError",
    "StartupAbortedError",
    "StrictBaseModel",
    "SupervisorError",
]
