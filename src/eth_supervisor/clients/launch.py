"""Launch descriptions for supervised processes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from eth_supervisor.roles import Role
from eth_supervisor.settings import InstallLayout

BINARY_NAMES: Final[dict[str, str]] = {
    "reth": "reth",
    "geth": "geth",
    "lighthouse": "lighthouse",
    "prysm": "prysm.sh",
    "mev-boost": "mev-boost",
}
"""Executable name inside each client's install directory."""

DEFAULT_TERM: Final = "xterm-color"
"""TERM passed to children when the parent has none."""


@dataclass(frozen=True, slots=True)
class LaunchSpec:
    """
    Everything needed to start one role.

    The argument vector is passed to the operating system as-is; it is never
    joined into a shell command line.
    """

    role: Role
    """Role this process fills."""

    client: str
    """Client name, used for log file naming."""

    argv: tuple[str, ...]
    """Executable followed by its arguments."""

    env: Mapping[str, str]
    """Complete environment of the child."""

    cwd: Path
    """Working directory of the child."""

    log_dir: Path
    """Directory receiving the captured output."""

    def describe(self) -> str:
        """Short human-readable summary for logs."""
        return f"{self.role.value}={self.client} ({self.argv[0]}, {len(self.argv) - 1} args)"


def binary_path(layout: InstallLayout, client: str) -> Path:
    """Path of a client's executable."""
    return layout.client_dir(client) / BINARY_NAMES[client]


def minimal_environment(
    install_dir: Path, parent: Mapping[str, str] | None = None
) -> dict[str, str]:
    """
    Build the environment handed to children.

    Only the variables a client needs are forwarded. Credentials and other
    secrets that may sit in the supervisor's own environment are not.

    Args:
        install_dir: Installation root, exported as INSTALL_DIR.
        parent: Environment to copy from. Defaults to the current process.
    """
    source = os.environ if parent is None else parent
    return {
        "HOME": source.get("HOME", str(Path.home())),
        "PATH": source.get("PATH", os.defpath),
        "TERM": source.get("TERM", DEFAULT_TERM),
        "INSTALL_DIR": str(install_dir),
    }
