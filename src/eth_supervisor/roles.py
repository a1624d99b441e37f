"""Supervised roles and their ordering rules."""

from __future__ import annotations

from enum import StrEnum
from typing import Final


class Role(StrEnum):
    """A kind of long-running child process. At most one runs per role."""

    EXECUTION = "execution"
    """Execution-layer client (reth or geth)."""

    CONSENSUS = "consensus"
    """Consensus-layer beacon node (lighthouse or prysm)."""

    VALIDATOR = "validator"
    """Validator client attached to the beacon node."""

    RELAY = "relay"
    """Block-builder relay multiplexer (mev-boost)."""


STARTUP_ORDER: Final[tuple[Role, ...]] = (
    Role.RELAY,
    Role.EXECUTION,
    Role.CONSENSUS,
    Role.VALIDATOR,
)
"""Roles are launched in this order. The beacon node connects to the relay on start."""

SHUTDOWN_TIERS: Final[tuple[tuple[Role, ...], ...]] = (
    (Role.VALIDATOR,),
    (Role.EXECUTION, Role.CONSENSUS),
    (Role.RELAY,),
)
"""
Roles are stopped tier by tier.

The validator stops first so it cannot sign against a beacon node that is
going away. Execution and consensus stop together. The relay stops last.
"""

HARD_DEPENDENCIES: Final[dict[Role, frozenset[Role]]] = {
    Role.RELAY: frozenset(),
    Role.EXECUTION: frozenset(),
    Role.CONSENSUS: frozenset({Role.EXECUTION}),
    Role.VALIDATOR: frozenset({Role.CONSENSUS}),
}
"""
Roles that must be running before a role may start.

The relay is not a hard dependency of the beacon node: without it proposals
fall back to local block building.
"""
