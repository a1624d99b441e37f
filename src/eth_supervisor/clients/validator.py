"""
Validator client argument vectors.

Both clients read keystore passwords from the secure directory:

- Lighthouse expects `--secrets-dir` to hold one file per validator named
  `0x<pubkey>` whose content is that keystore's password.
- Prysm decrypts its wallet with the single password file.

Doppelganger protection is always on, so a key running elsewhere is detected
before this client signs anything.
"""

from __future__ import annotations

from pathlib import Path
from typing import Final

from eth_supervisor.settings import InstallLayout, RunConfig

from .consensus import LIGHTHOUSE_HTTP_PORT

VALIDATOR_METRICS_PORT: Final = 5064
"""Metrics port of either validator client."""

PRYSM_BEACON_RPC: Final = "localhost:4000"
"""gRPC endpoint of the prysm beacon node."""


def lighthouse_vc_args(config: RunConfig, layout: InstallLayout, secrets_dir: Path) -> list[str]:
    """Arguments for `lighthouse vc`."""
    args = [
        "vc",
        "--network",
        "mainnet",
        "--beacon-nodes",
        f"http://localhost:{LIGHTHOUSE_HTTP_PORT}",
        "--datadir",
        str(layout.validator_database_dir("lighthouse")),
        "--validators-dir",
        str(layout.keystores_dir),
        "--secrets-dir",
        str(secrets_dir),
        "--metrics",
        "--metrics-address",
        "127.0.0.1",
        "--metrics-port",
        str(VALIDATOR_METRICS_PORT),
        "--enable-doppelganger-protection",
    ]
    if config.fee_recipient is not None:
        args += ["--suggested-fee-recipient", config.fee_recipient]
    if config.graffiti:
        args += ["--graffiti", config.graffiti]
    if config.mev_boost_enabled:
        args.append("--builder-proposals")
    return args


def prysm_validator_args(
    config: RunConfig, layout: InstallLayout, password_file: Path
) -> list[str]:
    """Arguments for `prysm.sh validator`."""
    args = [
        "validator",
        "--mainnet",
        f"--beacon-rpc-provider={PRYSM_BEACON_RPC}",
        "--grpc-gateway-host=127.0.0.1",
        "--grpc-gateway-port=7500",
        f"--wallet-dir={layout.validator_database_dir('prysm')}",
        f"--wallet-password-file={password_file}",
        "--accept-terms-of-use",
        "--monitoring-host",
        "127.0.0.1",
        "--monitoring-port",
        str(VALIDATOR_METRICS_PORT),
        "--enable-doppelganger",
    ]
    if config.fee_recipient is not None:
        args.append(f"--suggested-fee-recipient={config.fee_recipient}")
    if config.graffiti:
        args.append(f"--graffiti={config.graffiti}")
    if config.mev_boost_enabled:
        args.append("--enable-builder")
    return args
