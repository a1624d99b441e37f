"""Tests for launch plan construction."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from eth_supervisor.clients import MAINNET_RELAYS, LaunchSpec, build_launch_plan
from eth_supervisor.roles import Role
from eth_supervisor.secure_store import Backing, SecureDirectory
from eth_supervisor.settings import InstallLayout, RunConfig
from eth_supervisor.types import ConfigurationError

CHECKPOINT = "https://sync.example.org"

PARENT_ENV = {
    "HOME": "/home/alice",
    "PATH": "/usr/bin:/bin",
    "AWS_SECRET_ACCESS_KEY": "hunter2",
    "PASSWORD": "not-for-children",
}


@pytest.fixture
def secure_dir(tmp_path: Path) -> SecureDirectory:
    return SecureDirectory(
        path=tmp_path / "ethsup-4242",
        backing=Backing.MEMORY_BACKED,
        owner_pid=4242,
        strategy="tmpfs",
    )


def by_role(plan: list[LaunchSpec]) -> dict[Role, LaunchSpec]:
    return {spec.role: spec for spec in plan}


def flag_value(argv: tuple[str, ...], flag: str) -> str:
    return argv[argv.index(flag) + 1]


class TestPlanShape:
    """Tests for which roles are planned and in what order."""

    def test_node_only(self, run_config_factory: Callable[..., RunConfig]) -> None:
        """Without validator or relay only the two clients run."""
        plan = build_launch_plan(run_config_factory(), CHECKPOINT, env=PARENT_ENV)

        assert [s.role for s in plan] == [Role.EXECUTION, Role.CONSENSUS]

    def test_everything_in_startup_order(
        self,
        run_config_factory: Callable[..., RunConfig],
        secure_dir: SecureDirectory,
    ) -> None:
        """The relay starts first and the validator last."""
        config = run_config_factory(validator_enabled=True, mev_boost_enabled=True)

        plan = build_launch_plan(config, CHECKPOINT, secure_dir, env=PARENT_ENV)

        assert [s.role for s in plan] == [
            Role.RELAY,
            Role.EXECUTION,
            Role.CONSENSUS,
            Role.VALIDATOR,
        ]

    def test_validator_without_secure_dir(
        self, run_config_factory: Callable[..., RunConfig]
    ) -> None:
        """Validator mode cannot be planned without a password directory."""
        with pytest.raises(ConfigurationError, match="secure password directory"):
            build_launch_plan(run_config_factory(validator_enabled=True), None)

    def test_binaries_under_install_dir(
        self, run_config_factory: Callable[..., RunConfig], layout: InstallLayout
    ) -> None:
        """Executables are resolved inside the installation, never from PATH."""
        plan = by_role(
            build_launch_plan(run_config_factory(consensus_client="prysm"), None, env=PARENT_ENV)
        )

        assert plan[Role.EXECUTION].argv[0] == str(layout.client_dir("reth") / "reth")
        assert plan[Role.CONSENSUS].argv[0] == str(layout.client_dir("prysm") / "prysm.sh")
        assert plan[Role.CONSENSUS].log_dir == layout.logs_dir("prysm")


class TestEnvironment:
    """Tests for the environment handed to children."""

    def test_only_allowlisted_variables(
        self, run_config_factory: Callable[..., RunConfig], install_dir: Path
    ) -> None:
        """Secrets in the parent environment are not forwarded."""
        plan = build_launch_plan(run_config_factory(), None, env=PARENT_ENV)

        for spec in plan:
            assert dict(spec.env) == {
                "HOME": "/home/alice",
                "PATH": "/usr/bin:/bin",
                "TERM": "xterm-color",
                "INSTALL_DIR": str(install_dir),
            }


class TestExecutionArgs:
    """Tests for execution client arguments."""

    def test_reth_full(self, run_config_factory: Callable[..., RunConfig]) -> None:
        """reth prunes history in full mode and binds RPC to localhost."""
        plan = by_role(
            build_launch_plan(run_config_factory(execution_peer_port=30404), None, env=PARENT_ENV)
        )
        argv = plan[Role.EXECUTION].argv

        assert argv[1] == "node"
        assert "--full" in argv
        assert flag_value(argv, "--port") == "30404"
        assert flag_value(argv, "--http.addr") == "127.0.0.1"
        assert flag_value(argv, "--authrpc.port") == "8551"

    def test_reth_archive(self, run_config_factory: Callable[..., RunConfig]) -> None:
        """Archive mode keeps all history."""
        config = run_config_factory(execution_type="archive")

        argv = by_role(build_launch_plan(config, None, env=PARENT_ENV))[Role.EXECUTION].argv

        assert "--full" not in argv

    @pytest.mark.parametrize(
        ("execution_type", "syncmode", "gcmode"),
        [("full", "snap", "full"), ("archive", "full", "archive")],
    )
    def test_geth_modes(
        self,
        run_config_factory: Callable[..., RunConfig],
        monkeypatch: pytest.MonkeyPatch,
        execution_type: str,
        syncmode: str,
        gcmode: str,
    ) -> None:
        """geth maps the history mode onto sync and gc modes."""
        monkeypatch.setattr("sys.platform", "linux")
        config = run_config_factory(execution_client="geth", execution_type=execution_type)

        argv = by_role(build_launch_plan(config, None, env=PARENT_ENV))[Role.EXECUTION].argv

        assert flag_value(argv, "--syncmode") == syncmode
        assert flag_value(argv, "--gcmode") == gcmode


class TestConsensusArgs:
    """Tests for beacon node arguments."""

    def test_lighthouse_checkpoint_and_ports(
        self, run_config_factory: Callable[..., RunConfig], layout: InstallLayout
    ) -> None:
        """Lighthouse gets the checkpoint URL, peer ports and the JWT path."""
        plan = by_role(build_launch_plan(run_config_factory(), CHECKPOINT, env=PARENT_ENV))
        argv = plan[Role.CONSENSUS].argv

        assert argv[1] == "bn"
        assert flag_value(argv, "--checkpoint-sync-url") == CHECKPOINT
        assert flag_value(argv, "--port") == "9000"
        assert flag_value(argv, "--quic-port") == "9001"
        assert flag_value(argv, "--execution-jwt") == str(layout.jwt_path)
        assert "--builder" not in argv
        assert "--suggested-fee-recipient" not in argv

    def test_genesis_sync_without_checkpoint(
        self, run_config_factory: Callable[..., RunConfig]
    ) -> None:
        """No checkpoint flag is passed when none was selected."""
        plan = by_role(build_launch_plan(run_config_factory(), None, env=PARENT_ENV))

        assert "--checkpoint-sync-url" not in plan[Role.CONSENSUS].argv

    def test_prysm_checkpoint_and_genesis(
        self, run_config_factory: Callable[..., RunConfig]
    ) -> None:
        """Prysm fetches the genesis state from the checkpoint source too."""
        config = run_config_factory(consensus_client="prysm", consensus_peer_ports=(12100, 13100))

        argv = by_role(build_launch_plan(config, CHECKPOINT, env=PARENT_ENV))[Role.CONSENSUS].argv

        assert argv[1] == "beacon-chain"
        assert flag_value(argv, "--checkpoint-sync-url") == CHECKPOINT
        assert flag_value(argv, "--genesis-beacon-api-url") == CHECKPOINT
        assert flag_value(argv, "--p2p-tcp-port") == "12100"
        assert flag_value(argv, "--p2p-udp-port") == "13100"

    @pytest.mark.parametrize(
        ("client", "builder_flag"),
        [("lighthouse", "--builder"), ("prysm", "--http-mev-relay")],
    )
    def test_relay_wired_into_beacon_node(
        self,
        run_config_factory: Callable[..., RunConfig],
        client: str,
        builder_flag: str,
    ) -> None:
        """With mev-boost enabled the beacon node uses it as builder."""
        config = run_config_factory(consensus_client=client, mev_boost_enabled=True)

        plan = by_role(build_launch_plan(config, None, env=PARENT_ENV))

        assert flag_value(plan[Role.CONSENSUS].argv, builder_flag) == "http://localhost:18550"


class TestRelayArgs:
    """Tests for mev-boost arguments."""

    def test_relays_joined(self, run_config_factory: Callable[..., RunConfig]) -> None:
        """All mainnet relays are passed as one comma-separated list."""
        config = run_config_factory(mev_boost_enabled=True)

        argv = by_role(build_launch_plan(config, None, env=PARENT_ENV))[Role.RELAY].argv

        relays = flag_value(argv, "-relays").split(",")
        assert relays == list(MAINNET_RELAYS)
        assert all(r.startswith("https://0x") for r in relays)
        assert "-mainnet" in argv


class TestValidatorArgs:
    """Tests for validator client arguments."""

    def test_lighthouse_reads_secrets_dir(
        self,
        run_config_factory: Callable[..., RunConfig],
        secure_dir: SecureDirectory,
        layout: InstallLayout,
    ) -> None:
        """Lighthouse reads per-validator passwords from the secure directory."""
        config = run_config_factory(validator_enabled=True, graffiti="hello world")

        vc = by_role(build_launch_plan(config, None, secure_dir, env=PARENT_ENV))[Role.VALIDATOR]

        assert vc.argv[1] == "vc"
        assert vc.client == "lighthouse-validator"
        assert flag_value(vc.argv, "--secrets-dir") == str(secure_dir.secrets_dir)
        assert flag_value(vc.argv, "--validators-dir") == str(layout.keystores_dir)
        assert flag_value(vc.argv, "--graffiti") == "hello world"
        assert flag_value(vc.argv, "--suggested-fee-recipient") == config.fee_recipient
        assert "--enable-doppelganger-protection" in vc.argv
        assert "--builder-proposals" not in vc.argv
        assert vc.log_dir == layout.validator_logs_dir("lighthouse")

    def test_prysm_reads_password_file(
        self,
        run_config_factory: Callable[..., RunConfig],
        secure_dir: SecureDirectory,
    ) -> None:
        """Prysm decrypts its wallet with the master password file."""
        config = run_config_factory(
            validator_enabled=True, consensus_client="prysm", mev_boost_enabled=True
        )

        vc = by_role(build_launch_plan(config, None, secure_dir, env=PARENT_ENV))[Role.VALIDATOR]

        assert vc.argv[1] == "validator"
        assert f"--wallet-password-file={secure_dir.password_path}" in vc.argv
        assert "--enable-doppelganger" in vc.argv
        assert "--enable-builder" in vc.argv

    def test_fee_recipient_on_beacon_node(
        self,
        run_config_factory: Callable[..., RunConfig],
        secure_dir: SecureDirectory,
    ) -> None:
        """The beacon node also receives the fee recipient in validator mode."""
        config = run_config_factory(validator_enabled=True)

        plan = by_role(build_launch_plan(config, None, secure_dir, env=PARENT_ENV))

        argv = plan[Role.CONSENSUS].argv
        assert flag_value(argv, "--suggested-fee-recipient") == config.fee_recipient
