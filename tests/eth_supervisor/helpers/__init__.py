"""Test helpers for eth_supervisor unit tests."""

from __future__ import annotations

from .mocks import (
    CountingStore,
    FakeHandle,
    FakeLauncher,
    RecordingAlertSink,
    make_plan,
    make_spec,
    wait_until,
)

__all__ = [
    "CountingStore",
    "FakeHandle",
    "FakeLauncher",
    "RecordingAlertSink",
    "make_plan",
    "make_spec",
    "wait_until",
]
