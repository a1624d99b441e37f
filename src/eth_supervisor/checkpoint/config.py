"""Checkpoint selection constants."""

from __future__ import annotations

from typing import Final

MAINNET_GENESIS_TIME: Final[int] = 1606824023
"""Unix time of mainnet slot 0."""

SECONDS_PER_SLOT: Final[int] = 12
"""Mainnet slot duration."""

HEADER_ENDPOINT: Final = "/eth/v1/beacon/headers/finalized"
"""Beacon API path probed on every candidate. Checkpoint providers serve finalized data."""

PER_REQUEST_TIMEOUT: Final[float] = 5.0
"""Bound on one probe, in seconds."""

OVERALL_BUDGET: Final[float] = 10.0
"""Bound on the whole selection, in seconds."""

FRESHNESS_THRESHOLD: Final[float] = 1800.0
"""
Maximum age of a candidate's finalized slot, in seconds.

With healthy finality the finalized slot trails the wall clock by two to three
epochs, about 13 to 20 minutes.
"""

MAX_CLOCK_SKEW: Final[float] = 12.0
"""
How far in the future a reported slot may start before the response is rejected.

Finalized slots are always in the past. One slot of tolerance absorbs local
clock drift.
"""

MAINNET_CHECKPOINT_URLS: Final[tuple[str, ...]] = (
    "https://mainnet.checkpoint.sigp.io",
    "https://beaconstate.ethstaker.cc",
    "https://sync-mainnet.beaconcha.in",
    "https://mainnet-checkpoint-sync.attestant.io",
    "https://beaconstate.info",
    "https://checkpointz.pietjepuk.net",
    "https://mainnet-checkpoint-sync.stakely.io",
    "https://sync.invis.tools",
)
"""Public mainnet checkpoint sync providers probed when no override is given."""
