"""
Single-instance lock.

Only one supervisor may own an installation at a time. Ownership is a file
holding the owner's PID. Acquisition never checks and then creates: the lock
content is written to a private temporary file first and then hard-linked
into place, which fails atomically when the lock already exists. A reader
therefore never sees a half-written lock.

A lock whose PID is no longer alive is stale. Stale locks are removed only
by the holder of a second exclusive file, the reclaim guard, after it has
confirmed that the lock still holds the stale content. A fresh lock can only
appear once the stale one is gone, so a reclaimer never removes a live lock.
"""

from __future__ import annotations

import logging
import os
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

import psutil

from eth_supervisor.types import AlreadyRunningError

logger = logging.getLogger(__name__)

MAX_ACQUIRE_ATTEMPTS: Final = 8
"""Create/reclaim rounds before giving up on a contended lock."""

RETRY_DELAY: Final = 0.05
"""Pause between rounds while another process is reclaiming."""


def process_alive(pid: int) -> bool:
    """Return True if a process with this PID exists."""
    return pid > 0 and psutil.pid_exists(pid)


def read_lock_owner(path: Path) -> int | None:
    """
    Read the PID stored in a lock file.

    Returns:
        The PID, or None if the file is missing or does not hold a PID.
    """
    try:
        raw = path.read_text().strip()
    except (FileNotFoundError, UnicodeDecodeError):
        return None
    return int(raw) if raw.isdigit() else None


def _parse_owner(content: bytes) -> int | None:
    raw = content.decode(errors="replace").strip()
    return int(raw) if raw.isdigit() else None


def _read_identity(path: Path) -> tuple[bytes, int] | None:
    """Content and inode of `path`, or None if it is missing."""
    try:
        with path.open("rb") as f:
            return f.read(), os.fstat(f.fileno()).st_ino
    except FileNotFoundError:
        return None


def _create_exclusive(path: Path, pid: int) -> bool:
    """Publish a file naming `pid`. Returns False if it already exists."""
    tmp = path.with_name(f".{path.name}.{os.getpid()}.{secrets.token_hex(6)}.tmp")
    fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
    try:
        with os.fdopen(fd, "w") as f:
            f.write(str(pid))
            f.flush()
            os.fsync(f.fileno())
        try:
            os.link(tmp, path)
        except FileExistsError:
            return False
        return True
    finally:
        tmp.unlink(missing_ok=True)


def _reclaim(path: Path, stale: bytes, pid: int, pid_alive: Callable[[int], bool]) -> bool:
    """
    Remove the lock at `path` if it still holds `stale`.

    Returns:
        False if another process is reclaiming and the caller should wait.
    """
    guard = path.with_name(f"{path.name}.reclaim")
    if not _create_exclusive(guard, pid):
        seen = _read_identity(guard)
        if seen is None:
            return False
        holder = _parse_owner(seen[0])
        if holder is None or (holder != pid and pid_alive(holder)):
            return False
        # The holder died between taking and dropping the guard. Only that guard is removed.
        if _read_identity(guard) == seen:
            logger.warning("Removing abandoned reclaim guard %s (pid %s)", guard, holder)
            guard.unlink(missing_ok=True)
        return False

    try:
        try:
            current = path.read_bytes()
        except FileNotFoundError:
            return True
        if current == stale:
            path.unlink(missing_ok=True)
            logger.info("Removed stale instance lock %s (pid %s)", path, _parse_owner(stale))
        return True
    finally:
        guard.unlink(missing_ok=True)


@dataclass(slots=True)
class InstanceLock:
    """
    Ownership token for one installation.

    Obtain one with `acquire`; give it up with `release`.
    """

    path: Path
    """Lock file location."""

    owner_pid: int
    """PID written into the lock file."""

    _released: bool = field(default=False, init=False)

    @classmethod
    def acquire(
        cls,
        path: Path,
        *,
        pid: int | None = None,
        pid_alive: Callable[[int], bool] = process_alive,
    ) -> InstanceLock:
        """
        Take ownership of the lock file.

        Args:
            path: Lock file location.
            pid: PID to record. Defaults to the current process.
            pid_alive: Liveness check for the PID found in an existing lock.

        Returns:
            The held lock.

        Raises:
            AlreadyRunningError: If a live process owns the lock.
        """
        pid = os.getpid() if pid is None else pid
        path.parent.mkdir(parents=True, exist_ok=True)

        for _ in range(MAX_ACQUIRE_ATTEMPTS):
            if _create_exclusive(path, pid):
                logger.debug("Acquired instance lock %s (pid %d)", path, pid)
                return cls(path=path, owner_pid=pid)

            try:
                stale = path.read_bytes()
            except FileNotFoundError:
                continue

            owner = _parse_owner(stale)
            # A lock naming our own PID was left by an earlier process that had the same PID.
            if owner is not None and owner != pid and pid_alive(owner):
                raise AlreadyRunningError(owner)

            if not _reclaim(path, stale, pid, pid_alive):
                time.sleep(RETRY_DELAY)

        raise AlreadyRunningError(read_lock_owner(path) or -1)

    def release(self) -> bool:
        """
        Remove the lock file if it still names this owner.

        Safe to call more than once.

        Returns:
            True if the file was removed by this call.
        """
        if self._released:
            return False
        self._released = True

        if read_lock_owner(self.path) != self.owner_pid:
            logger.warning("Instance lock %s no longer owned by pid %d", self.path, self.owner_pid)
            return False

        self.path.unlink(missing_ok=True)
        logger.debug("Released instance lock %s", self.path)
        return True

    @property
    def held(self) -> bool:
        """Whether this token has not been released yet."""
        return not self._released
