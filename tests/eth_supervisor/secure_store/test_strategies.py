"""Tests for secure directory storage strategies."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from eth_supervisor.secure_store import (
    Backing,
    DevShmStrategy,
    MacRamDiskStrategy,
    TempDirStrategy,
    default_strategies,
)
from eth_supervisor.secure_store import strategies as strategies_module
from eth_supervisor.types import SecretStoreError


class TestDefaultStrategies:
    """Tests for strategy preference."""

    def test_memory_backed_first(self) -> None:
        """Memory-backed options are tried before the disk fallback."""
        names = [s.name for s in default_strategies()]

        assert names == ["tmpfs", "ramdisk", "tempdir"]
        assert default_strategies()[-1].backing is Backing.DISK_FALLBACK


class TestDevShmStrategy:
    """Tests for the Linux tmpfs strategy."""

    def test_missing_root_unavailable(self, tmp_path: Path) -> None:
        """Without the mount point the strategy does not apply."""
        assert not DevShmStrategy(root=tmp_path / "missing").available()

    def test_prepare_returns_root(self, tmp_path: Path) -> None:
        """Secrets go directly under the tmpfs root."""
        assert DevShmStrategy(root=tmp_path).prepare() == tmp_path


class TestTempDirStrategy:
    """Tests for the disk fallback."""

    def test_always_available_and_on_disk(self) -> None:
        """The fallback works everywhere and says it is disk-backed."""
        strategy = TempDirStrategy()

        assert strategy.available()
        assert strategy.backing is Backing.DISK_FALLBACK
        assert strategy.prepare() == Path(tempfile.gettempdir())


class TestMacRamDiskStrategy:
    """Tests for the macOS RAM disk, with the external tools replaced."""

    def test_attach_format_detach(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The RAM disk is attached, formatted, and detached on teardown."""
        calls: list[list[str]] = []

        def fake_tool(argv: list[str]) -> str:
            calls.append(argv)
            return "/dev/disk9          \t\n" if argv[0] == "hdiutil" else ""

        monkeypatch.setattr(strategies_module, "_run_tool", fake_tool)
        strategy = MacRamDiskStrategy(volume_name="EthSupervisorTest", sectors=4096)

        assert strategy.prepare() == Path("/Volumes/EthSupervisorTest")
        strategy.teardown()
        strategy.teardown()

        assert calls == [
            ["hdiutil", "attach", "-nomount", "ram://4096"],
            ["diskutil", "erasevolume", "HFS+", "EthSupervisorTest", "/dev/disk9"],
            ["hdiutil", "detach", "/dev/disk9", "-force"],
        ]

    def test_left_over_volume_is_adopted_and_detached(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A volume mounted by an earlier run is detached on teardown."""
        calls: list[list[str]] = []

        def fake_tool(argv: list[str]) -> str:
            calls.append(argv)
            if argv[:2] == ["diskutil", "info"]:
                return "   Device Identifier:   disk7\n   Device Node:         /dev/disk7\n"
            return ""

        monkeypatch.setattr(strategies_module, "_run_tool", fake_tool)
        mount_point = tmp_path / "EthSupervisorSecure"
        mount_point.mkdir()
        strategy = MacRamDiskStrategy(volumes_root=tmp_path)

        assert strategy.prepare() == mount_point
        strategy.teardown()

        assert calls == [
            ["diskutil", "info", str(mount_point)],
            ["hdiutil", "detach", "/dev/disk7", "-force"],
        ]

    def test_unknown_device_fails_prepare(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A mount point whose device cannot be found is not used."""
        monkeypatch.setattr(strategies_module, "_run_tool", lambda argv: "")
        (tmp_path / "EthSupervisorSecure").mkdir()

        with pytest.raises(SecretStoreError, match="No device"):
            MacRamDiskStrategy(volumes_root=tmp_path).prepare()

    def test_volume_in_use_is_left_attached(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Another supervisor's directory keeps the volume attached."""
        calls: list[list[str]] = []

        def fake_tool(argv: list[str]) -> str:
            calls.append(argv)
            return "/dev/disk9\n" if argv[0] == "hdiutil" else ""

        monkeypatch.setattr(strategies_module, "_run_tool", fake_tool)
        strategy = MacRamDiskStrategy(volumes_root=tmp_path)
        strategy.prepare()
        (tmp_path / "EthSupervisorSecure" / "ethsup-424242").mkdir(parents=True)

        strategy.teardown()

        assert ["hdiutil", "detach", "/dev/disk9", "-force"] not in calls

    def test_teardown_without_prepare_is_noop(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Nothing is detached if nothing was attached."""

        def fail(argv: list[str]) -> str:
            raise AssertionError(f"unexpected call {argv}")

        monkeypatch.setattr(strategies_module, "_run_tool", fail)

        MacRamDiskStrategy().teardown()


class TestRunTool:
    """Tests for external tool invocation."""

    def test_missing_tool_raises_store_error(self) -> None:
        """A tool that cannot be executed is a store error."""
        with pytest.raises(SecretStoreError):
            strategies_module._run_tool(["/nonexistent/hdiutil"])

    def test_failing_tool_raises_store_error(self) -> None:
        """A non-zero exit is a store error."""
        with pytest.raises(SecretStoreError, match="false failed"):
            strategies_module._run_tool(["false"])
