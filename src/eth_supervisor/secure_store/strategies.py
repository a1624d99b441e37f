"""
Storage strategies for the secure directory.

Strategies are tried in order. Each reports whether it can work on this
machine and, when asked, prepares the parent directory in which the secure
directory is created.

1. Linux `/dev/shm`: tmpfs, always memory-backed.
2. macOS RAM disk: created with `hdiutil` and formatted with `diskutil`.
3. System temporary directory: on disk. Used only when nothing else works.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
import tempfile
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Protocol

from eth_supervisor.types import SecretStoreError

from .config import EXTERNAL_TOOL_TIMEOUT, RAM_DISK_SECTORS, RAM_DISK_VOLUME, STALE_DIR_PATTERN

logger = logging.getLogger(__name__)


class Backing(Enum):
    """Where secret bytes physically live."""

    MEMORY_BACKED = auto()
    """RAM only; nothing reaches a persistent disk."""

    DISK_FALLBACK = auto()
    """A regular filesystem; secrets may persist on the device after deletion."""


class StorageStrategy(Protocol):
    """One way of obtaining a parent directory for secrets."""

    name: str
    backing: Backing

    def available(self) -> bool:
        """Whether this strategy can work on the current machine."""
        ...

    def prepare(self) -> Path:
        """
        Make the parent directory ready.

        Raises:
            SecretStoreError: If preparation fails.
        """
        ...

    def teardown(self) -> None:
        """Undo `prepare`. Must be safe to call when `prepare` failed."""
        ...


def _run_tool(argv: list[str]) -> str:
    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            check=True,
            timeout=EXTERNAL_TOOL_TIMEOUT,
        )
    except subprocess.CalledProcessError as e:
        raise SecretStoreError(f"{argv[0]} failed: {e.stderr.strip() or e.returncode}") from e
    except (OSError, subprocess.TimeoutExpired) as e:
        raise SecretStoreError(f"{argv[0]} failed: {e}") from e
    return result.stdout


@dataclass(slots=True)
class DevShmStrategy:
    """Linux shared memory filesystem."""

    root: Path = Path("/dev/shm")
    name: str = "tmpfs"
    backing: Backing = Backing.MEMORY_BACKED

    def available(self) -> bool:
        return (
            sys.platform.startswith("linux")
            and self.root.is_dir()
            and os.access(self.root, os.W_OK | os.X_OK)
        )

    def prepare(self) -> Path:
        return self.root

    def teardown(self) -> None:
        return None


def _device_of(mount_point: Path) -> str:
    """Device node of the volume mounted at `mount_point`."""
    for line in _run_tool(["diskutil", "info", str(mount_point)]).splitlines():
        key, _, value = line.partition(":")
        if key.strip() == "Device Node" and value.strip():
            return value.strip()
    raise SecretStoreError(f"No device found for {mount_point}")


@dataclass(slots=True)
class MacRamDiskStrategy:
    """
    A small HFS+ RAM disk attached for the lifetime of the supervisor.

    A volume already mounted under the same name was left by a run that did
    not clean up. It is adopted rather than attached again, so teardown
    detaches it. Teardown leaves the volume attached while another
    supervisor's directory is still on it.
    """

    volume_name: str = RAM_DISK_VOLUME
    volumes_root: Path = Path("/Volumes")
    sectors: int = RAM_DISK_SECTORS
    name: str = "ramdisk"
    backing: Backing = Backing.MEMORY_BACKED
    _device: str | None = field(default=None, init=False)

    @property
    def mount_point(self) -> Path:
        return self.volumes_root / self.volume_name

    def available(self) -> bool:
        return (
            sys.platform == "darwin"
            and shutil.which("hdiutil") is not None
            and shutil.which("diskutil") is not None
        )

    def prepare(self) -> Path:
        if self.mount_point.is_dir():
            self._device = _device_of(self.mount_point)
            logger.info("Adopting RAM disk %s left at %s", self._device, self.mount_point)
            return self.mount_point

        device = _run_tool(["hdiutil", "attach", "-nomount", f"ram://{self.sectors}"]).split()[0]
        self._device = device
        _run_tool(["diskutil", "erasevolume", "HFS+", self.volume_name, device])
        logger.debug("Attached RAM disk %s at %s", device, self.mount_point)
        return self.mount_point

    def teardown(self) -> None:
        if self._device is None:
            return
        device, self._device = self._device, None
        if self._holds_other_directories():
            logger.warning("RAM disk %s holds another supervisor's secrets, leaving it", device)
            return
        try:
            _run_tool(["hdiutil", "detach", device, "-force"])
        except SecretStoreError as e:
            logger.error("Failed to detach RAM disk %s: %s", device, e)

    def _holds_other_directories(self) -> bool:
        try:
            return any(STALE_DIR_PATTERN.fullmatch(e.name) for e in self.mount_point.iterdir())
        except OSError:
            return False


@dataclass(slots=True)
class TempDirStrategy:
    """System temporary directory. Disk-backed."""

    root: Path | None = None
    name: str = "tempdir"
    backing: Backing = Backing.DISK_FALLBACK

    def available(self) -> bool:
        return True

    def prepare(self) -> Path:
        return self.root if self.root is not None else Path(tempfile.gettempdir())

    def teardown(self) -> None:
        return None


def default_strategies() -> list[StorageStrategy]:
    """Strategies in preference order."""
    return [DevShmStrategy(), MacRamDiskStrategy(), TempDirStrategy()]
