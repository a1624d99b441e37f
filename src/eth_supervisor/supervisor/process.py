"""
Child process records and the launcher that creates them.

The supervisor talks to children through the small `ProcessHandle` surface,
which `asyncio.subprocess.Process` already provides. Tests substitute their
own launcher and handles.

Output capture
--------------
Each child's stdout and stderr are merged and read line by line:

- ANSI escape sequences are stripped and the line is appended to a
  timestamped log file in the client's log directory.
- The line is forwarded to the `eth_supervisor.proc.<role>` logger at DEBUG.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Final, Protocol

from eth_supervisor.clients import LaunchSpec
from eth_supervisor.roles import Role
from eth_supervisor.types import InvalidTransitionError

from .state import ProcessState

logger = logging.getLogger(__name__)

_ANSI_ESCAPE: Final = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")

STREAM_LIMIT: Final = 1 << 20
"""Longest output line accepted from a child, in bytes."""


class ProcessHandle(Protocol):
    """The part of a child process the supervisor uses."""

    @property
    def pid(self) -> int: ...

    @property
    def returncode(self) -> int | None: ...

    def send_signal(self, sig: int) -> None: ...

    def kill(self) -> None: ...

    async def wait(self) -> int: ...


class ProcessLauncher(Protocol):
    """Creates child processes from launch specs."""

    async def spawn(self, spec: LaunchSpec) -> ProcessHandle:
        """
        Start the process.

        Raises:
            OSError: If the executable cannot be started.
        """
        ...


@dataclass(slots=True)
class ManagedProcess:
    """
    One supervised child and its lifecycle state.

    Only the supervisor changes `state`, always through `transition`.
    """

    role: Role
    """Role this process fills."""

    spec: LaunchSpec
    """How the process was launched."""

    handle: ProcessHandle | None = None
    """Live handle, set once the spawn succeeded."""

    state: ProcessState = ProcessState.NOT_STARTED
    """Current lifecycle state."""

    exit_code: int | None = None
    """Exit status once EXITED. None if the process never started."""

    started_at: float | None = None
    """Wall-clock time the spawn succeeded."""

    def transition(self, target: ProcessState) -> None:
        """
        Move to `target`.

        Raises:
            InvalidTransitionError: If the state machine forbids the move.
        """
        if not self.state.can_transition_to(target):
            raise InvalidTransitionError(self.role.value, self.state.name, target.name)
        logger.debug("%s: %s -> %s", self.role.value, self.state.name, target.name)
        self.state = target

    @property
    def pid(self) -> int | None:
        return self.handle.pid if self.handle is not None else None

    def snapshot(self) -> dict[str, Any]:
        """JSON-friendly view for the status API."""
        return {
            "role": self.role.value,
            "client": self.spec.client,
            "state": self.state.name,
            "pid": self.pid,
            "exitCode": self.exit_code,
            "startedAt": self.started_at,
        }


def strip_ansi(text: str) -> str:
    """Remove terminal escape sequences."""
    return _ANSI_ESCAPE.sub("", text)


def log_file_path(spec: LaunchSpec, now: datetime | None = None) -> Path:
    """Timestamped log file for one run of a client."""
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return spec.log_dir / f"{spec.client}_{stamp}.log"


@dataclass(slots=True)
class SubprocessLauncher:
    """Starts clients as operating system processes and captures their output."""

    _pumps: set[asyncio.Task[None]] = field(default_factory=set)
    """Output readers, kept referenced until they finish."""

    async def spawn(self, spec: LaunchSpec) -> ProcessHandle:
        spec.log_dir.mkdir(parents=True, exist_ok=True)

        # New session: a terminal Ctrl+C reaches the supervisor only, which then stops
        # children in order.
        process = await asyncio.create_subprocess_exec(
            *spec.argv,
            env=dict(spec.env),
            cwd=spec.cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            start_new_session=True,
            limit=STREAM_LIMIT,
        )
        logger.info("Started %s (pid %d)", spec.describe(), process.pid)

        if process.stdout is not None:
            task = asyncio.create_task(
                _pump_output(spec, process.stdout, log_file_path(spec)),
                name=f"output-{spec.role.value}",
            )
            self._pumps.add(task)
            task.add_done_callback(self._pumps.discard)

        return process


async def _pump_output(spec: LaunchSpec, stream: asyncio.StreamReader, log_path: Path) -> None:
    """Copy a child's output into its log file and logger until EOF."""
    proc_logger = logging.getLogger(f"eth_supervisor.proc.{spec.role.value}")
    with log_path.open("a", encoding="utf-8", buffering=1) as log_file:
        while True:
            try:
                raw = await stream.readline()
            except ValueError:
                # Line longer than STREAM_LIMIT: take what is buffered.
                raw = await stream.read(STREAM_LIMIT)
            if not raw:
                break
            line = strip_ansi(raw.decode(errors="replace")).rstrip()
            log_file.write(f"{time.strftime('%Y-%m-%d %H:%M:%S')} {line}\n")
            proc_logger.debug("%s", line)
