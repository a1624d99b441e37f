"""Probe results and ranking."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

from .config import MAINNET_GENESIS_TIME, SECONDS_PER_SLOT


def slot_start_time(slot: int) -> int:
    """Unix time at which `slot` began on mainnet."""
    return MAINNET_GENESIS_TIME + slot * SECONDS_PER_SLOT


@dataclass(frozen=True, slots=True)
class CheckpointCandidate:
    """One probed checkpoint endpoint."""

    url: str
    """Base URL of the endpoint."""

    reachable: bool
    """Whether the probe returned a usable header."""

    head_slot: int | None = None
    """Finalized slot reported by the endpoint."""

    head_slot_age: float | None = None
    """Seconds between the reported slot's start and the probe."""

    latency: float | None = None
    """Round-trip time of the probe in seconds."""

    error: str | None = None
    """Why the probe failed, if it did."""

    rank: int | None = None
    """Position after ranking. 0 is best. None when ineligible."""

    @classmethod
    def unreachable(cls, url: str, error: str) -> CheckpointCandidate:
        return cls(url=url, reachable=False, error=error)

    def is_eligible(self, freshness_threshold: float) -> bool:
        """Reachable and reporting a slot younger than the threshold."""
        return (
            self.reachable
            and self.head_slot is not None
            and self.head_slot_age is not None
            and self.head_slot_age < freshness_threshold
        )


def rank_candidates(
    candidates: Iterable[CheckpointCandidate], freshness_threshold: float
) -> list[CheckpointCandidate]:
    """
    Order eligible candidates from best to worst.

    Freshest (smallest slot age) first; equal ages are ordered by lower latency.
    Ineligible candidates are dropped.

    Returns:
        Eligible candidates with `rank` filled in.
    """
    eligible = [c for c in candidates if c.is_eligible(freshness_threshold)]
    eligible.sort(key=lambda c: (c.head_slot_age or 0.0, c.latency or 0.0))
    return [replace(c, rank=i) for i, c in enumerate(eligible)]
