"""
Persistence of the run configuration.

The owning instance writes the resolved configuration once its children are
started and removes it during shutdown. A leftover file therefore means the
previous owner died uncleanly; it is deleted at startup rather than resumed.

The file is readable by the owner only and is replaced atomically, so a reader
never observes a partially written document.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from eth_supervisor.types import ConfigurationError

from .model import RunConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RunConfigStore:
    """Reads and writes the options file."""

    path: Path
    """Location of the options file."""

    def save(self, config: RunConfig) -> None:
        """
        Persist the configuration with owner-only permissions.

        Args:
            config: Validated configuration to write.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = config.model_dump_json(by_alias=True, indent=2).encode()

        # Write to a sibling file and rename over the target.
        tmp_path = self.path.with_name(f".{self.path.name}.{os.getpid()}.tmp")
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.debug("Saved run configuration to %s", self.path)

    def load(self) -> RunConfig | None:
        """
        Load and validate the persisted configuration.

        Returns:
            The configuration, or None if no file exists.

        Raises:
            ConfigurationError: If the file is unreadable or fails validation.
        """
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise ConfigurationError(f"Cannot read {self.path}: {e}") from e

        try:
            return RunConfig.model_validate_json(raw)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid options file {self.path}: {e}") from e

    def delete(self) -> bool:
        """
        Remove the options file if present.

        Returns:
            True if a file was removed.
        """
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        logger.debug("Removed run configuration %s", self.path)
        return True
