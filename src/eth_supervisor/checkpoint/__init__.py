"""Checkpoint sync endpoint probing and selection."""

from .candidate import CheckpointCandidate, rank_candidates, slot_start_time
from .config import (
    FRESHNESS_THRESHOLD,
    HEADER_ENDPOINT,
    MAINNET_CHECKPOINT_URLS,
    MAINNET_GENESIS_TIME,
    MAX_CLOCK_SKEW,
    OVERALL_BUDGET,
    PER_REQUEST_TIMEOUT,
    SECONDS_PER_SLOT,
)
from .selector import (
    HeaderResponse,
    probe_all,
    probe_candidate,
    select_best,
    select_checkpoint_url,
)

__all__ = [
    "FRESHNESS_THRESHOLD",
    "HEADER_ENDPOINT",
    "MAINNET_CHECKPOINT_URLS",
    "MAINNET_GENESIS_TIME",
    "MAX_CLOCK_SKEW",
    "OVERALL_BUDGET",
    "PER_REQUEST_TIMEOUT",
    "SECONDS_PER_SLOT",
    "CheckpointCandidate",
    "HeaderResponse",
    "probe_all",
    "probe_candidate",
    "rank_candidates",
    "select_best",
    "select_checkpoint_url",
    "slot_start_time",
]
