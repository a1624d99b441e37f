"""Memory-backed secret directory, secret files and the presence check."""

from .config import MIN_PASSWORD_LENGTH
from .presence import prompt_for_presence, require_physical_presence
from .store import SecretFile, SecureDirectory, SecureStore
from .strategies import (
    Backing,
    DevShmStrategy,
    MacRamDiskStrategy,
    StorageStrategy,
    TempDirStrategy,
    default_strategies,
)

__all__ = [
    "MIN_PASSWORD_LENGTH",
    "Backing",
    "DevShmStrategy",
    "MacRamDiskStrategy",
    "SecretFile",
    "SecureDirectory",
    "SecureStore",
    "StorageStrategy",
    "TempDirStrategy",
    "default_strategies",
    "prompt_for_presence",
    "require_physical_presence",
]
