"""
Shared pytest fixtures for all eth_supervisor tests.

Provides fast supervisor timings, fake launchers and run configurations
rooted in a temporary install directory.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from eth_supervisor.settings import InstallLayout, RunConfig
from eth_supervisor.supervisor import Supervisor, SupervisorConfig
from tests.eth_supervisor.helpers import FakeLauncher, RecordingAlertSink

FEE_RECIPIENT = "0x" + "ab" * 20


@pytest.fixture
def fast_config() -> SupervisorConfig:
    """Supervisor timings shrunk for tests."""
    return SupervisorConfig(
        validator_grace=0.0,
        client_grace=0.0,
        relay_grace=0.0,
        poll_interval=0.01,
        tier_exit_timeout=0.2,
        shutdown_timeout=0.5,
        kill_wait=0.1,
        relay_settle_delay=0.0,
        validator_settle_delay=0.0,
    )


@pytest.fixture
def launcher() -> FakeLauncher:
    """Launcher handing out fake processes."""
    return FakeLauncher()


@pytest.fixture
def alert_sink() -> RecordingAlertSink:
    """Alert sink recording crash events."""
    return RecordingAlertSink()


@pytest.fixture
def supervisor(
    fast_config: SupervisorConfig,
    launcher: FakeLauncher,
    alert_sink: RecordingAlertSink,
) -> Supervisor:
    """Supervisor wired to fakes, without lock or secret store."""
    return Supervisor(config=fast_config, launcher=launcher, alert_sink=alert_sink)


@pytest.fixture
def install_dir(tmp_path: Path) -> Path:
    """Empty install directory."""
    path = tmp_path / "install"
    path.mkdir()
    return path


@pytest.fixture
def layout(install_dir: Path) -> InstallLayout:
    """Layout of the temporary installation."""
    return InstallLayout(install_dir)


@pytest.fixture
def run_config_factory(install_dir: Path) -> Callable[..., RunConfig]:
    """Factory for run configurations rooted in the temporary install directory."""

    def _create(**overrides: Any) -> RunConfig:
        fields: dict[str, Any] = {"install_dir": install_dir}
        if overrides.get("validator_enabled"):
            fields["fee_recipient"] = FEE_RECIPIENT
        fields.update(overrides)
        return RunConfig(**fields)

    return _create
