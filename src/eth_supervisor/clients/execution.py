"""Execution client argument vectors."""

from __future__ import annotations

from typing import Final

from eth_supervisor.settings import InstallLayout, RunConfig

ENGINE_API_PORT: Final = 8551
"""Authenticated engine API port the beacon node connects to."""

EXECUTION_HTTP_PORT: Final = 8545
"""JSON-RPC port, bound to localhost only."""


def reth_args(config: RunConfig, layout: InstallLayout) -> list[str]:
    """Arguments for `reth node`."""
    port = str(config.execution_peer_port)
    args = [
        "node",
        "--chain",
        "mainnet",
        "--datadir",
        str(layout.database_dir("reth")),
        "--port",
        port,
        "--discovery.port",
        port,
        "--http",
        "--http.addr",
        "127.0.0.1",
        "--http.port",
        str(EXECUTION_HTTP_PORT),
        "--http.api",
        "eth,net,web3",
        "--authrpc.addr",
        "127.0.0.1",
        "--authrpc.port",
        str(ENGINE_API_PORT),
        "--authrpc.jwtsecret",
        str(layout.jwt_path),
    ]
    # reth keeps archive history unless told to prune.
    if config.execution_type == "full":
        args.append("--full")
    return args


def geth_args(config: RunConfig, layout: InstallLayout) -> list[str]:
    """Arguments for `geth`."""
    port = str(config.execution_peer_port)
    archive = config.execution_type == "archive"
    return [
        "--mainnet",
        "--datadir",
        str(layout.database_dir("geth")),
        "--port",
        port,
        "--discovery.port",
        port,
        "--syncmode",
        "full" if archive else "snap",
        "--gcmode",
        "archive" if archive else "full",
        "--http",
        "--http.addr",
        "127.0.0.1",
        "--http.port",
        str(EXECUTION_HTTP_PORT),
        "--http.api",
        "eth,net,web3",
        "--authrpc.addr",
        "127.0.0.1",
        "--authrpc.port",
        str(ENGINE_API_PORT),
        "--authrpc.jwtsecret",
        str(layout.jwt_path),
    ]
