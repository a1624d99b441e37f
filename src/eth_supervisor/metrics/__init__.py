"""Prometheus metrics for the supervisor."""

from .registry import (
    REGISTRY,
    checkpoint_eligible_candidates,
    checkpoint_probe_time,
    generate_metrics,
    role_crashes,
    role_up,
    secure_dir_memory_backed,
    shutdown_duration,
)

__all__ = [
    "REGISTRY",
    "checkpoint_eligible_candidates",
    "checkpoint_probe_time",
    "generate_metrics",
    "role_crashes",
    "role_up",
    "secure_dir_memory_backed",
    "shutdown_duration",
]
