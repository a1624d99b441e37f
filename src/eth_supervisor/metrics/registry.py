"""
Metric registry using prometheus_client.

Provides pre-defined metrics for the supervised processes, checkpoint
selection and the secure directory. Exposed in Prometheus text format via the
status API's /metrics endpoint.
"""

from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Dedicated registry, free of the default Python process collectors.
REGISTRY = CollectorRegistry()

# -----------------------------------------------------------------------------
# Supervised Processes
# -----------------------------------------------------------------------------

role_up = Gauge(
    "eth_supervisor_role_up",
    "Whether the role's process is running (1) or not (0)",
    ["role"],
    registry=REGISTRY,
)

role_crashes = Counter(
    "eth_supervisor_role_crashes_total",
    "Unexpected exits of a role's process",
    ["role"],
    registry=REGISTRY,
)

shutdown_duration = Histogram(
    "eth_supervisor_shutdown_seconds",
    "Time from shutdown request until every role exited",
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Checkpoint Selection
# -----------------------------------------------------------------------------

checkpoint_probe_time = Histogram(
    "eth_supervisor_checkpoint_probe_seconds",
    "Latency of successful checkpoint endpoint probes",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
    registry=REGISTRY,
)

checkpoint_eligible_candidates = Gauge(
    "eth_supervisor_checkpoint_eligible_candidates",
    "Checkpoint endpoints that passed the last health check",
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Secure Directory
# -----------------------------------------------------------------------------

secure_dir_memory_backed = Gauge(
    "eth_supervisor_secure_dir_memory_backed",
    "Whether the secret directory is memory-backed (1) or on disk (0)",
    registry=REGISTRY,
)


def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics output.

    Returns:
        Prometheus text format output as bytes.
    """
    return generate_latest(REGISTRY)
