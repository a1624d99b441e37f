"""Beacon node argument vectors."""

from __future__ import annotations

from typing import Final

from eth_supervisor.settings import InstallLayout, RunConfig

from .execution import ENGINE_API_PORT
from .relay import RELAY_LISTEN_URL

ENGINE_ENDPOINT: Final = f"http://localhost:{ENGINE_API_PORT}"
"""Where the beacon node reaches the execution client."""

LIGHTHOUSE_HTTP_PORT: Final = 5052
"""Beacon API port of lighthouse. The lighthouse validator client connects here."""

PRYSM_HTTP_PORT: Final = 3500
"""Beacon API port of prysm."""


def lighthouse_bn_args(
    config: RunConfig, layout: InstallLayout, checkpoint_url: str | None
) -> list[str]:
    """Arguments for `lighthouse bn`."""
    tcp_port, quic_port = config.peer_ports
    args = [
        "bn",
        "--network",
        "mainnet",
        "--datadir",
        str(layout.database_dir("lighthouse")),
        "--execution-endpoint",
        ENGINE_ENDPOINT,
        "--execution-jwt",
        str(layout.jwt_path),
        "--port",
        str(tcp_port),
        "--quic-port",
        str(quic_port),
        "--http",
        "--http-address",
        "127.0.0.1",
        "--http-port",
        str(LIGHTHOUSE_HTTP_PORT),
        "--metrics",
        "--metrics-address",
        "127.0.0.1",
        "--metrics-port",
        "5054",
    ]
    if checkpoint_url is not None:
        args += ["--checkpoint-sync-url", checkpoint_url]
    if config.validator_enabled and config.fee_recipient is not None:
        args += ["--suggested-fee-recipient", config.fee_recipient]
    if config.mev_boost_enabled:
        args += ["--builder", RELAY_LISTEN_URL]
    return args


def prysm_beacon_args(
    config: RunConfig, layout: InstallLayout, checkpoint_url: str | None
) -> list[str]:
    """Arguments for `prysm.sh beacon-chain`."""
    tcp_port, udp_port = config.peer_ports
    args = [
        "beacon-chain",
        "--mainnet",
        "--datadir",
        str(layout.database_dir("prysm")),
        "--execution-endpoint",
        ENGINE_ENDPOINT,
        "--jwt-secret",
        str(layout.jwt_path),
        "--p2p-tcp-port",
        str(tcp_port),
        "--p2p-udp-port",
        str(udp_port),
        "--grpc-gateway-host",
        "127.0.0.1",
        "--grpc-gateway-port",
        str(PRYSM_HTTP_PORT),
        "--accept-terms-of-use",
    ]
    # Prysm needs the genesis state from the same source as the checkpoint.
    if checkpoint_url is not None:
        args += [
            "--checkpoint-sync-url",
            checkpoint_url,
            "--genesis-beacon-api-url",
            checkpoint_url,
        ]
    if config.validator_enabled and config.fee_recipient is not None:
        args += ["--suggested-fee-recipient", config.fee_recipient]
    if config.mev_boost_enabled:
        args += ["--http-mev-relay", RELAY_LISTEN_URL]
    return args
