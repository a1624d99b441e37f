"""Run configuration: schema, on-disk layout and persistence."""

from .layout import InstallLayout
from .model import (
    DEFAULT_CONSENSUS_PEER_PORTS,
    DEFAULT_EXECUTION_PEER_PORT,
    DEFAULT_GRAFFITI,
    DEFAULT_STATUS_PORT,
    ConsensusClient,
    ExecutionClient,
    ExecutionType,
    RunConfig,
)
from .paths import validate_operator_dir
from .store import RunConfigStore

__all__ = [
    "DEFAULT_CONSENSUS_PEER_PORTS",
    "DEFAULT_EXECUTION_PEER_PORT",
    "DEFAULT_GRAFFITI",
    "DEFAULT_STATUS_PORT",
    "ConsensusClient",
    "ExecutionClient",
    "ExecutionType",
    "InstallLayout",
    "RunConfig",
    "RunConfigStore",
    "validate_operator_dir",
]
