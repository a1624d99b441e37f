"""
Validator keystores on disk.

Keystores are EIP-2335 JSON files named `keystore*.json`. Only the public key
is read here; decryption is the validator client's job.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ValidationError

from eth_supervisor.settings import InstallLayout
from eth_supervisor.types import ConfigurationError

logger = logging.getLogger(__name__)

KEYSTORE_GLOB: Final = "keystore*.json"
"""File name pattern of keystores."""

DEPOSIT_DATA_GLOB: Final = "deposit_data*.json"
"""File name pattern of deposit data files copied alongside keystores."""

SLASHING_WARNING: Final = (
    "WARNING: Running the same validator keys on two machines at the same time "
    "will get them slashed. Make sure these keys are not active anywhere else. "
    "Continue? [y/N] "
)
"""Shown before keys are imported."""


class KeystoreFile(BaseModel):
    """The EIP-2335 fields the supervisor reads. Other fields are ignored."""

    pubkey: str
    """BLS public key, hex without 0x prefix."""

    version: int
    """Keystore format version."""

    path: str | None = None
    """EIP-2334 derivation path."""


def list_keystores(directory: Path) -> list[Path]:
    """Keystore files in `directory`, sorted by name."""
    return sorted(p for p in directory.glob(KEYSTORE_GLOB) if p.is_file())


def has_existing_keys(layout: InstallLayout) -> bool:
    return layout.keystores_dir.is_dir() and bool(list_keystores(layout.keystores_dir))


def read_keystore_pubkeys(directory: Path) -> list[str]:
    """
    Public keys of all readable keystores in `directory`.

    Unreadable or malformed files are logged and skipped.
    """
    pubkeys = []
    for path in list_keystores(directory):
        try:
            keystore = KeystoreFile.model_validate_json(path.read_bytes())
        except (OSError, ValidationError) as e:
            logger.warning("Skipping unreadable keystore %s: %s", path.name, e)
            continue
        pubkeys.append(keystore.pubkey)
    return pubkeys


def confirm_slashing_risk(read: Callable[[str], str] = input) -> bool:
    """Ask the operator to confirm the keys are not running elsewhere."""
    return read(SLASHING_WARNING).strip().lower() in {"y", "yes"}


def import_validator_keys(
    source_dir: Path,
    layout: InstallLayout,
    confirm: Callable[[], bool] = confirm_slashing_risk,
) -> int:
    """
    Copy keystores and deposit data from `source_dir` into the installation.

    Args:
        source_dir: Directory containing `keystore*.json` files.
        layout: Installation layout.
        confirm: Asks the operator to accept the slashing risk.

    Returns:
        Number of keystores imported.

    Raises:
        ConfigurationError: If no valid keystore is found or the operator declines.
    """
    keystores = list_keystores(source_dir)
    if not keystores:
        raise ConfigurationError(f"No keystore files ({KEYSTORE_GLOB}) found in {source_dir}")

    for path in keystores:
        try:
            KeystoreFile.model_validate_json(path.read_bytes())
        except (OSError, ValidationError) as e:
            raise ConfigurationError(f"Invalid keystore {path.name}: {e}") from e

    if not confirm():
        raise ConfigurationError("Key import cancelled")

    layout.keystores_dir.mkdir(parents=True, exist_ok=True)
    layout.deposit_data_dir.mkdir(parents=True, exist_ok=True)

    for path in keystores:
        target = layout.keystores_dir / path.name
        shutil.copyfile(path, target)
        os.chmod(target, 0o600)

    for path in sorted(source_dir.glob(DEPOSIT_DATA_GLOB)):
        shutil.copyfile(path, layout.deposit_data_dir / path.name)

    logger.info("Imported %d keystores from %s", len(keystores), source_dir)
    return len(keystores)
