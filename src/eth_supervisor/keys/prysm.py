"""Import keystores into a Prysm wallet."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable
from pathlib import Path
from typing import Any, Final

from eth_supervisor.clients import binary_path, minimal_environment
from eth_supervisor.settings import InstallLayout
from eth_supervisor.types import SpawnError

logger = logging.getLogger(__name__)

IMPORT_TIMEOUT: Final[float] = 300.0
"""Bound on the wallet import, in seconds. Decrypting many keystores is slow."""


def prysm_import_argv(layout: InstallLayout, password_file: Path) -> list[str]:
    """Argument vector of `prysm.sh validator accounts import`."""
    return [
        str(binary_path(layout, "prysm")),
        "validator",
        "accounts",
        "import",
        f"--keys-dir={layout.keystores_dir}",
        f"--wallet-dir={layout.validator_database_dir('prysm')}",
        f"--wallet-password-file={password_file}",
        f"--account-password-file={password_file}",
        "--mainnet",
        "--accept-terms-of-use",
    ]


def wallet_exists(layout: InstallLayout) -> bool:
    wallet_dir = layout.validator_database_dir("prysm")
    return wallet_dir.is_dir() and any(wallet_dir.iterdir())


def import_into_prysm_wallet(
    layout: InstallLayout,
    password_file: Path,
    run: Callable[..., Any] = subprocess.run,
) -> None:
    """
    Create or extend the Prysm wallet from the installed keystores.

    The wallet and the keystores share the password in `password_file`.

    Raises:
        SpawnError: If the import fails.
    """
    argv = prysm_import_argv(layout, password_file)
    logger.info("Importing keystores into the Prysm wallet")
    try:
        run(
            argv,
            cwd=layout.client_dir("prysm"),
            env=minimal_environment(layout.install_dir),
            check=True,
            timeout=IMPORT_TIMEOUT,
        )
    except subprocess.CalledProcessError as e:
        raise SpawnError("validator", f"prysm wallet import exited with {e.returncode}") from e
    except (OSError, subprocess.TimeoutExpired) as e:
        raise SpawnError("validator", f"prysm wallet import failed: {e}") from e
