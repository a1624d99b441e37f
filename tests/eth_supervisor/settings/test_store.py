"""Tests for run configuration persistence."""

from __future__ import annotations

import json
import stat
from collections.abc import Callable

import pytest

from eth_supervisor.settings import InstallLayout, RunConfig, RunConfigStore
from eth_supervisor.types import ConfigurationError


@pytest.fixture
def options(layout: InstallLayout) -> RunConfigStore:
    return RunConfigStore(layout.options_path)


class TestSaveAndLoad:
    """Tests for writing and reading the options file."""

    def test_saved_config_loads_back(
        self, options: RunConfigStore, run_config_factory: Callable[..., RunConfig]
    ) -> None:
        """A saved configuration is read back unchanged."""
        config = run_config_factory(
            validator_enabled=True,
            mev_boost_enabled=True,
            consensus_peer_ports=(9100, 9101),
            owner="alice",
        )

        options.save(config)

        assert options.load() == config

    def test_file_is_owner_only_camel_case(
        self, options: RunConfigStore, run_config_factory: Callable[..., RunConfig]
    ) -> None:
        """The file is mode 0600 and uses camelCase keys."""
        options.save(run_config_factory())

        assert stat.S_IMODE(options.path.stat().st_mode) == 0o600
        data = json.loads(options.path.read_text())
        assert "executionClient" in data
        assert "execution_client" not in data

    def test_no_temporary_file_left(
        self, options: RunConfigStore, run_config_factory: Callable[..., RunConfig]
    ) -> None:
        """Only the options file remains after an atomic save."""
        options.save(run_config_factory())

        assert [p.name for p in options.path.parent.iterdir()] == ["options.json"]

    def test_missing_file_loads_none(self, options: RunConfigStore) -> None:
        """No file means no persisted run."""
        assert options.load() is None

    @pytest.mark.parametrize(
        "content",
        [
            "not json",
            '{"installDir": "relative", "executionClient": "reth"}',
            '{"installDir": "/tmp", "__proto__": {"polluted": true}}',
            '{"installDir": "/tmp", "executionClient": "reth; rm -rf /"}',
        ],
        ids=["not-json", "relative", "proto", "injection"],
    )
    def test_malformed_file_is_configuration_error(
        self, options: RunConfigStore, content: str
    ) -> None:
        """Invalid content is reported, never partially applied."""
        options.path.parent.mkdir(parents=True, exist_ok=True)
        options.path.write_text(content)

        with pytest.raises(ConfigurationError, match="Invalid options file"):
            options.load()


class TestDelete:
    """Tests for removing the options file."""

    def test_delete_existing(
        self, options: RunConfigStore, run_config_factory: Callable[..., RunConfig]
    ) -> None:
        """Deleting reports whether a file was removed."""
        options.save(run_config_factory())

        assert options.delete() is True
        assert options.delete() is False
        assert not options.path.exists()
