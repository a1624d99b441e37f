"""MEV-Boost relay multiplexer arguments."""

from __future__ import annotations

from typing import Final

RELAY_LISTEN_URL: Final = "http://localhost:18550"
"""Address mev-boost listens on by default. Beacon nodes use it as their builder."""

MAINNET_RELAYS: Final[tuple[str, ...]] = (
    # Flashbots
    "https://0xac6e77dfe25ecd6110b8e780608cce0dab71fdd5ebea22a16c0205200f2f8e2e3ad3b71d3499c54ad14d6c21b41a37ae@boost-relay.flashbots.net",
    # bloXroute max-profit
    "https://0x8b5d2e73e2a3a55c6c87b8b6eb92e0149a125c852751db1422fa951e42a09b82c142c3ea98d0d9930b056a3bc9896b8f@bloxroute.max-profit.blxrbdn.com",
    # Agnostic
    "https://0xa7ab7a996c8584251c8f925da3170bdfd6ebc75d50f5ddc4050a6fdc77f2a3b5fce2cc750d0865e05d7228af97d69561@agnostic-relay.net",
    # Ultra Sound
    "https://0xa1559ace749633b997cb3fdacffb890aeebdb0f5a3b6aaa7eeeaf1a38af0a8fe88b9e4b1f61f236d2e64d95733327a62@relay.ultrasound.money",
)
"""Relays queried for builder bids, each as `https://<pubkey>@<host>`."""


def mev_boost_args(relays: tuple[str, ...] = MAINNET_RELAYS) -> list[str]:
    """Arguments for `mev-boost`."""
    return ["-mainnet", "-relay-check", "-relays", ",".join(relays)]
