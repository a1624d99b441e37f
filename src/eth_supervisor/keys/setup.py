"""
Validator key setup for one run.

Brings keys and their password into the shape the validator client expects:

1. Import keys from `--validator-keys-dir`, or require keys already installed.
2. Ask for the keystore password. Fresh imports ask twice and require a match;
   routine restarts ask once.
3. Write the password and, for Lighthouse, one password file per validator
   into the secure directory. Prysm instead imports the keys into its wallet
   when the wallet is new.
"""

from __future__ import annotations

import getpass
import logging
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from eth_supervisor.secure_store import SecureDirectory, SecureStore
from eth_supervisor.settings import InstallLayout, RunConfig
from eth_supervisor.types import ConfigurationError

from .keystores import (
    confirm_slashing_risk,
    has_existing_keys,
    import_validator_keys,
    read_keystore_pubkeys,
)
from .prysm import import_into_prysm_wallet, wallet_exists

logger = logging.getLogger(__name__)

SecretReader = Callable[[str], str]
"""Reads one line without echo, like `getpass.getpass`."""


@dataclass(frozen=True, slots=True)
class ValidatorSecrets:
    """Outcome of key setup."""

    pubkeys: tuple[str, ...]
    """Public keys of the installed keystores."""

    first_time: bool
    """Whether keys were imported during this run."""

    secure_dir: SecureDirectory
    """Directory holding the password files."""


def obtain_password(
    first_time: bool, read_secret: SecretReader = getpass.getpass
) -> tuple[str, str | None]:
    """
    Prompt for the keystore password.

    Returns:
        The password and, on first-time setup, its confirmation.
    """
    password = read_secret("Enter keystore password: ")
    if not first_time:
        return password, None
    return password, read_secret("Confirm keystore password: ")


def prepare_validator_secrets(
    config: RunConfig,
    store: SecureStore,
    *,
    confirm: Callable[[], bool] = confirm_slashing_risk,
    read_secret: SecretReader = getpass.getpass,
    run: Callable[..., Any] = subprocess.run,
) -> ValidatorSecrets:
    """
    Set up keys and write password files for the validator client.

    Args:
        config: Run configuration with validator mode enabled.
        store: Secure store owning this run's secret directory.
        confirm: Slashing-risk confirmation used when importing keys.
        read_secret: Password prompt.
        run: Runs the Prysm wallet import.

    Raises:
        ConfigurationError: If no keys are available or the import is declined.
        PasswordMismatchError: If the confirmation does not match.
        PasswordTooShortError: If the password is too short.
        SecretWriteError: If a password file cannot be written.
    """
    layout = InstallLayout(config.install_dir)
    layout.ensure_validator_dirs(config.consensus_client)

    first_time = False
    if config.validator_keys_dir is not None:
        import_validator_keys(config.validator_keys_dir, layout, confirm)
        first_time = True
    elif not has_existing_keys(layout):
        raise ConfigurationError(
            f"No validator keystores in {layout.keystores_dir}. "
            "Pass --validator-keys-dir to import existing keys."
        )

    pubkeys = read_keystore_pubkeys(layout.keystores_dir)
    if not pubkeys:
        raise ConfigurationError(f"No readable keystores in {layout.keystores_dir}")
    logger.info("Found %d validator keystores", len(pubkeys))

    password, confirmation = obtain_password(first_time, read_secret)

    secure_dir = store.create_secure_directory()
    store.write_password(secure_dir, password, confirmation)

    match config.consensus_client:
        case "lighthouse":
            store.materialize_entity_secrets(secure_dir, pubkeys, password)
        case "prysm":
            if first_time or not wallet_exists(layout):
                import_into_prysm_wallet(layout, secure_dir.password_path, run)

    return ValidatorSecrets(pubkeys=tuple(pubkeys), first_time=first_time, secure_dir=secure_dir)
