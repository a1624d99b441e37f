"""
Run configuration schema.

One validated record describes everything needed to launch the node: which
clients run, on which ports, where they live on disk and how the validator is
configured. The same record is persisted to the options file so that a second
invocation can observe what the owning instance is running.

Every downstream argument vector is built from these fields only, so the
schema is where untrusted input stops.
"""

from __future__ import annotations

import re
import sys
from pathlib import Path
from typing import Annotated, Any, Final, Literal

from pydantic import Field, Strict, StrictInt, field_validator, model_validator

from eth_supervisor.types import StrictBaseModel

ExecutionClient = Literal["reth", "geth"]
"""Supported execution-layer clients."""

ConsensusClient = Literal["lighthouse", "prysm"]
"""Supported consensus-layer clients."""

ExecutionType = Literal["full", "archive"]
"""Execution client history mode."""

PeerPorts = Annotated[tuple[StrictInt, StrictInt], Strict(False)]
"""(tcp, udp) port pair. Accepts the JSON array the options file stores."""

DEFAULT_GRAFFITI: Final = "BuidlGuidl"
"""Graffiti used when the operator does not supply one."""

DEFAULT_EXECUTION_PEER_PORT: Final = 30303
"""Default devp2p port for the execution client."""

DEFAULT_CONSENSUS_PEER_PORTS: Final[dict[str, tuple[int, int]]] = {
    "lighthouse": (9000, 9001),
    "prysm": (12000, 13000),
}
"""Default (tcp, udp/quic) peer ports per consensus client."""

DEFAULT_STATUS_PORT: Final = 5059
"""Default port of the local status API."""

MAX_GRAFFITI_LENGTH: Final = 32
"""Graffiti is stored in a 32-byte block field."""

_FEE_RECIPIENT_PATTERN: Final = re.compile(r"^0x[0-9a-fA-F]{40}$")
_GRAFFITI_PATTERN: Final = re.compile(r"^[a-zA-Z0-9 _\-.:!@#]+$")
_CHECKPOINT_URL_PATTERN: Final = re.compile(r"^https?://[^\s/$.?#][^\s]*$")

_RESERVED_KEYS: Final = frozenset({"__proto__", "constructor", "prototype"})
"""Keys that have no meaning here and indicate a crafted options file."""


class RunConfig(StrictBaseModel):
    """Validated launch configuration for one supervisor run."""

    install_dir: Path
    """Root directory under which `ethereum_clients/` lives."""

    execution_client: ExecutionClient = "reth"
    """Execution client binary to launch."""

    execution_type: ExecutionType = "full"
    """Whether the execution client keeps full or archive history."""

    consensus_client: ConsensusClient = "lighthouse"
    """Consensus client binary to launch."""

    execution_peer_port: int = Field(default=DEFAULT_EXECUTION_PEER_PORT, ge=1, le=65535)
    """Execution client peer-to-peer port."""

    consensus_peer_ports: PeerPorts | None = None
    """Consensus client peer ports. None selects the client's defaults."""

    consensus_checkpoint: str | None = None
    """Operator-provided checkpoint sync URL. Skips endpoint probing when set."""

    owner: str | None = None
    """Free-form operator identifier shown in logs and alerts."""

    validator_enabled: bool = False
    """Whether the validator client runs."""

    fee_recipient: str | None = None
    """Address receiving priority fees and MEV rewards."""

    graffiti: str = DEFAULT_GRAFFITI
    """Graffiti attached to proposed blocks."""

    validator_keys_dir: Path | None = None
    """Directory of keystores to import on this run."""

    mev_boost_enabled: bool = False
    """Whether the block-builder relay process runs."""

    require_presence: bool = False
    """Whether validator startup requires the physical presence check."""

    status_port: int = Field(default=DEFAULT_STATUS_PORT, ge=1, le=65535)
    """Port of the local status API."""

    @model_validator(mode="before")
    @classmethod
    def _reject_reserved_keys(cls, data: Any) -> Any:
        """Reject prototype-style keys before field validation."""
        if isinstance(data, dict):
            reserved = _RESERVED_KEYS.intersection(data)
            if reserved:
                raise ValueError(f"reserved keys are not allowed: {sorted(reserved)}")
        return data

    @field_validator("install_dir", "validator_keys_dir")
    @classmethod
    def _require_absolute(cls, value: Path | None) -> Path | None:
        if value is not None and not value.is_absolute():
            raise ValueError(f"path must be absolute: {value}")
        return value

    @field_validator("consensus_peer_ports")
    @classmethod
    def _validate_peer_ports(cls, value: tuple[int, int] | None) -> tuple[int, int] | None:
        if value is not None:
            for port in value:
                if not 1 <= port <= 65535:
                    raise ValueError(f"port out of range 1-65535: {port}")
        return value

    @field_validator("consensus_checkpoint")
    @classmethod
    def _validate_checkpoint(cls, value: str | None) -> str | None:
        if value is not None and not _CHECKPOINT_URL_PATTERN.match(value):
            raise ValueError("checkpoint URL must be an http(s) URL")
        return value

    @field_validator("fee_recipient")
    @classmethod
    def _validate_fee_recipient(cls, value: str | None) -> str | None:
        if value is not None and not _FEE_RECIPIENT_PATTERN.match(value):
            raise ValueError("fee recipient must be a 0x-prefixed 40 hex character address")
        return value

    @field_validator("graffiti")
    @classmethod
    def _validate_graffiti(cls, value: str) -> str:
        if len(value) > MAX_GRAFFITI_LENGTH:
            raise ValueError(f"graffiti must be at most {MAX_GRAFFITI_LENGTH} characters")
        if not _GRAFFITI_PATTERN.match(value):
            raise ValueError("graffiti may only contain letters, digits, spaces and _-.:!@#")
        return value

    @model_validator(mode="after")
    def _check_combinations(self) -> RunConfig:
        if self.validator_enabled and self.fee_recipient is None:
            raise ValueError("a fee recipient is required when the validator is enabled")
        if self.execution_client == "geth" and sys.platform == "darwin":
            raise ValueError("geth is not supported on macOS, use reth")
        return self

    @property
    def peer_ports(self) -> tuple[int, int]:
        """Consensus peer ports with client defaults applied."""
        if self.consensus_peer_ports is not None:
            return self.consensus_peer_ports
        return DEFAULT_CONSENSUS_PEER_PORTS[self.consensus_client]
