"""
Secure secret lifecycle.

The keystore password is the one secret the supervisor handles. It exists on
the filesystem only because validator clients read it from files. The store
keeps that exposure short and contained:

- Secrets are written only inside one directory per supervisor process,
  preferably on memory-backed storage, with owner-only permissions.
- Directories of earlier supervisors that died without cleaning up are
  removed before a new one is created.
- `destroy()` removes the directory exactly once and is called on every
  shutdown path. Writes that race with it from another thread are refused
  once it has run.
- Validator identifiers become file names, so anything that is not plain
  hexadecimal is rejected instead of sanitized.
"""

from __future__ import annotations

import hmac
import logging
import os
import shutil
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from eth_supervisor.metrics import secure_dir_memory_backed
from eth_supervisor.supervisor.lock import process_alive
from eth_supervisor.types import (
    InvalidEntityIdentifierError,
    PasswordMismatchError,
    PasswordTooShortError,
    SecretStoreError,
    SecretWriteError,
)

from .config import (
    DIR_PREFIX,
    ENTITY_ID_PATTERN,
    MIN_PASSWORD_LENGTH,
    PASSWORD_FILE_NAME,
    SECRETS_DIR_NAME,
    STALE_DIR_PATTERN,
)
from .strategies import Backing, StorageStrategy, default_strategies

logger = logging.getLogger(__name__)

MASTER_ENTITY = "master"
"""Owner label of the master password file."""


@dataclass(frozen=True, slots=True)
class SecureDirectory:
    """The directory holding this run's secrets."""

    path: Path
    """Absolute path of the directory."""

    backing: Backing
    """Whether the directory is memory-backed."""

    owner_pid: int
    """PID encoded in the directory name."""

    strategy: str
    """Name of the strategy that produced it."""

    @property
    def password_path(self) -> Path:
        return self.path / PASSWORD_FILE_NAME

    @property
    def secrets_dir(self) -> Path:
        return self.path / SECRETS_DIR_NAME

    @property
    def memory_backed(self) -> bool:
        return self.backing is Backing.MEMORY_BACKED


@dataclass(frozen=True, slots=True)
class SecretFile:
    """A file containing a secret."""

    path: Path
    """Location inside the secure directory."""

    owner_entity: str
    """`master` or the validator identifier the file belongs to."""


def _write_secret(path: Path, content: str) -> None:
    """Write `content` to `path`, readable and writable by the owner only."""
    flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC | getattr(os, "O_NOFOLLOW", 0)
    try:
        fd = os.open(path, flags, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        # O_CREAT mode does not apply to a file that already existed.
        os.chmod(path, 0o600)
    except OSError as e:
        raise SecretWriteError(f"Cannot write secret file {path.name}: {e.strerror or e}") from e


def _make_private_dir(path: Path) -> None:
    """Create `path` with mode 0700, replacing anything already there."""
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)
    path.mkdir(mode=0o700)
    os.chmod(path, 0o700)


@dataclass(slots=True)
class SecureStore:
    """Owns the secure directory of one supervisor process."""

    strategies: Sequence[StorageStrategy] = field(default_factory=default_strategies)
    """Storage strategies in preference order."""

    pid: int = field(default_factory=os.getpid)
    """PID encoded in the directory name."""

    pid_alive: Callable[[int], bool] = process_alive
    """Liveness check used when sweeping stale directories."""

    _directory: SecureDirectory | None = field(default=None, init=False)
    _strategy: StorageStrategy | None = field(default=None, init=False)
    _destroyed: bool = field(default=False, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def directory(self) -> SecureDirectory | None:
        """The created directory, if any."""
        return self._directory

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def create_secure_directory(self) -> SecureDirectory:
        """
        Create this process's secure directory.

        Returns the same directory on repeated calls.

        Raises:
            SecretStoreError: If the store was destroyed or no strategy works.
        """
        with self._lock:
            return self._create()

    def _create(self) -> SecureDirectory:
        if self._destroyed:
            raise SecretStoreError("Secure store was already destroyed")
        if self._directory is not None:
            return self._directory

        for strategy in self.strategies:
            if not strategy.available():
                logger.debug("Secure storage %s not available", strategy.name)
                continue

            try:
                parent = strategy.prepare()
                self._sweep_stale(parent)
                path = parent / f"{DIR_PREFIX}{self.pid}"
                _make_private_dir(path)
            except (OSError, SecretStoreError) as e:
                logger.warning("Secure storage %s failed: %s", strategy.name, e)
                strategy.teardown()
                continue

            directory = SecureDirectory(
                path=path,
                backing=strategy.backing,
                owner_pid=self.pid,
                strategy=strategy.name,
            )
            self._directory = directory
            self._strategy = strategy
            secure_dir_memory_backed.set(1 if directory.memory_backed else 0)

            if directory.memory_backed:
                logger.info("Secure directory on %s: %s", strategy.name, path)
            else:
                logger.warning(
                    "No memory-backed storage available. Validator passwords will be "
                    "written to disk at %s and removed on exit.",
                    path,
                )
            return directory

        raise SecretStoreError("No usable storage for the secure directory")

    def _sweep_stale(self, parent: Path) -> None:
        """Remove secure directories whose owner PID is dead."""
        try:
            entries = list(parent.iterdir())
        except OSError as e:
            logger.debug("Cannot list %s for stale directories: %s", parent, e)
            return

        for entry in entries:
            match = STALE_DIR_PATTERN.fullmatch(entry.name)
            if match is None or entry.is_symlink() or not entry.is_dir():
                continue
            owner = int(match.group(1))
            if owner == self.pid or self.pid_alive(owner):
                continue
            try:
                shutil.rmtree(entry)
                logger.info("Removed stale secure directory %s", entry)
            except OSError as e:
                logger.warning("Cannot remove stale secure directory %s: %s", entry, e)

    def _require_current(self, directory: SecureDirectory) -> None:
        if self._destroyed or directory != self._directory:
            raise SecretStoreError("Secure directory is not active")

    def write_password(
        self,
        directory: SecureDirectory,
        password: str,
        confirmation: str | None = None,
    ) -> SecretFile:
        """
        Write the master password file.

        Args:
            directory: This store's active directory.
            password: The keystore password.
            confirmation: Second entry of the password, checked when given.

        Raises:
            PasswordMismatchError: If the confirmation differs.
            PasswordTooShortError: If the password is too short.
            SecretWriteError: If the file cannot be written.
        """
        if confirmation is not None and not hmac.compare_digest(
            password.encode(), confirmation.encode()
        ):
            raise PasswordMismatchError()
        if len(password) < MIN_PASSWORD_LENGTH:
            raise PasswordTooShortError(MIN_PASSWORD_LENGTH)

        with self._lock:
            self._require_current(directory)
            _write_secret(directory.password_path, password)
        logger.debug("Wrote master password file")
        return SecretFile(path=directory.password_path, owner_entity=MASTER_ENTITY)

    def materialize_entity_secret(
        self,
        directory: SecureDirectory,
        entity_id: str,
        password: str,
    ) -> SecretFile:
        """
        Write one validator's password file, named `0x<hex>`.

        Raises:
            InvalidEntityIdentifierError: If `entity_id` is not hexadecimal.
            SecretWriteError: If the file cannot be written.
        """
        if not ENTITY_ID_PATTERN.fullmatch(entity_id):
            raise InvalidEntityIdentifierError(entity_id)

        hex_part = entity_id.removeprefix("0x").lower()
        secrets_dir = directory.secrets_dir
        with self._lock:
            self._require_current(directory)
            try:
                secrets_dir.mkdir(mode=0o700, exist_ok=True)
            except OSError as e:
                raise SecretWriteError(f"Cannot create secrets directory: {e}") from e

            target = secrets_dir / f"0x{hex_part}"
            if target.resolve().parent != secrets_dir.resolve():
                raise InvalidEntityIdentifierError(entity_id)

            _write_secret(target, password)
        return SecretFile(path=target, owner_entity=f"0x{hex_part}")

    def materialize_entity_secrets(
        self,
        directory: SecureDirectory,
        entity_ids: Iterable[str],
        password: str,
    ) -> list[SecretFile]:
        """
        Write password files for many validators.

        Invalid identifiers are logged and skipped.
        """
        written = []
        for entity_id in entity_ids:
            try:
                written.append(self.materialize_entity_secret(directory, entity_id, password))
            except InvalidEntityIdentifierError as e:
                logger.warning("Skipping validator: %s", e.message)
        logger.info("Wrote %d validator password files", len(written))
        return written

    def destroy(self) -> bool:
        """
        Remove the secure directory and release its storage.

        Only the first call does anything.

        Returns:
            True if this call performed the teardown.
        """
        with self._lock:
            return self._destroy()

    def _destroy(self) -> bool:
        if self._destroyed:
            return False
        self._destroyed = True

        if self._directory is not None:
            try:
                shutil.rmtree(self._directory.path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.error("Failed to remove secure directory %s: %s", self._directory.path, e)
            else:
                logger.info("Removed secure directory %s", self._directory.path)

        if self._strategy is not None:
            self._strategy.teardown()

        secure_dir_memory_backed.set(0)
        return True
