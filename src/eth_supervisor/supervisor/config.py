"""Supervisor timing constants and runtime configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

VALIDATOR_GRACE_DELAY: Final[float] = 0.5
"""Pause before interrupting the validator client on shutdown."""

CLIENT_GRACE_DELAY: Final[float] = 0.75
"""Pause before interrupting the execution and consensus clients."""

RELAY_GRACE_DELAY: Final[float] = 0.75
"""Pause before interrupting the relay."""

EXIT_POLL_INTERVAL: Final[float] = 1.0
"""How often shutdown checks whether children have exited."""

TIER_EXIT_TIMEOUT: Final[float] = 30.0
"""How long one shutdown tier may take before the next tier is interrupted anyway."""

SHUTDOWN_TIMEOUT: Final[float] = 180.0
"""Upper bound on the whole shutdown. Remaining children are killed afterwards."""

KILL_WAIT: Final[float] = 5.0
"""How long to wait for killed children to be reaped."""

RELAY_SETTLE_DELAY: Final[float] = 2.0
"""Pause after launching the relay so it listens before the beacon node connects."""

VALIDATOR_SETTLE_DELAY: Final[float] = 5.0
"""Pause before launching the validator so the beacon node API is up."""


@dataclass(frozen=True, slots=True)
class SupervisorConfig:
    """Timing knobs of the supervisor. Defaults suit real clients; tests shrink them."""

    validator_grace: float = VALIDATOR_GRACE_DELAY
    """Delay before the validator tier is interrupted."""

    client_grace: float = CLIENT_GRACE_DELAY
    """Delay before the execution/consensus tier is interrupted."""

    relay_grace: float = RELAY_GRACE_DELAY
    """Delay before the relay tier is interrupted."""

    poll_interval: float = EXIT_POLL_INTERVAL
    """Exit polling period during shutdown."""

    tier_exit_timeout: float = TIER_EXIT_TIMEOUT
    """Per-tier wait bound."""

    shutdown_timeout: float = SHUTDOWN_TIMEOUT
    """Whole-shutdown wait bound before escalation to SIGKILL."""

    kill_wait: float = KILL_WAIT
    """Wait bound after SIGKILL."""

    relay_settle_delay: float = RELAY_SETTLE_DELAY
    """Startup pause after the relay."""

    validator_settle_delay: float = VALIDATOR_SETTLE_DELAY
    """Startup pause before the validator."""

    @property
    def tier_grace_delays(self) -> tuple[float, float, float]:
        """Grace delays matching the shutdown tiers, in order."""
        return (self.validator_grace, self.client_grace, self.relay_grace)
