"""Validator keystores, password prompting and wallet import."""

from .keystores import (
    KeystoreFile,
    confirm_slashing_risk,
    has_existing_keys,
    import_validator_keys,
    list_keystores,
    read_keystore_pubkeys,
)
from .prysm import import_into_prysm_wallet, prysm_import_argv
from .setup import ValidatorSecrets, obtain_password, prepare_validator_secrets

__all__ = [
    "KeystoreFile",
    "ValidatorSecrets",
    "confirm_slashing_risk",
    "has_existing_keys",
    "import_into_prysm_wallet",
    "import_validator_keys",
    "list_keystores",
    "obtain_password",
    "prepare_validator_secrets",
    "prysm_import_argv",
    "read_keystore_pubkeys",
]
