"""Turn a run configuration into the ordered list of processes to launch."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from eth_supervisor.roles import STARTUP_ORDER, Role
from eth_supervisor.settings import InstallLayout, RunConfig
from eth_supervisor.types import ConfigurationError

from .consensus import lighthouse_bn_args, prysm_beacon_args
from .execution import geth_args, reth_args
from .launch import LaunchSpec, binary_path, minimal_environment
from .relay import mev_boost_args
from .validator import lighthouse_vc_args, prysm_validator_args

if TYPE_CHECKING:
    from eth_supervisor.secure_store import SecureDirectory


def build_launch_plan(
    config: RunConfig,
    checkpoint_url: str | None,
    secure_dir: SecureDirectory | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> list[LaunchSpec]:
    """
    Build launch specs for every enabled role, in startup order.

    Args:
        config: Validated run configuration.
        checkpoint_url: Selected checkpoint sync URL, or None for genesis sync.
        secure_dir: Directory holding validator passwords. Required in validator mode.
        env: Environment to derive the child environment from.

    Returns:
        Launch specs ordered relay, execution, consensus, validator.

    Raises:
        ConfigurationError: If validator mode is enabled without a secure directory.
    """
    layout = InstallLayout(config.install_dir)
    child_env = minimal_environment(config.install_dir, env)

    def spec(role: Role, client: str, args: list[str]) -> LaunchSpec:
        return LaunchSpec(
            role=role,
            client=client,
            argv=(str(binary_path(layout, client)), *args),
            env=child_env,
            cwd=layout.client_dir(client),
            log_dir=layout.logs_dir(client),
        )

    specs: dict[Role, LaunchSpec] = {}

    if config.mev_boost_enabled:
        specs[Role.RELAY] = spec(Role.RELAY, "mev-boost", mev_boost_args())

    match config.execution_client:
        case "reth":
            specs[Role.EXECUTION] = spec(Role.EXECUTION, "reth", reth_args(config, layout))
        case "geth":
            specs[Role.EXECUTION] = spec(Role.EXECUTION, "geth", geth_args(config, layout))

    match config.consensus_client:
        case "lighthouse":
            bn = lighthouse_bn_args(config, layout, checkpoint_url)
        case "prysm":
            bn = prysm_beacon_args(config, layout, checkpoint_url)
    specs[Role.CONSENSUS] = spec(Role.CONSENSUS, config.consensus_client, bn)

    if config.validator_enabled:
        if secure_dir is None:
            raise ConfigurationError("validator mode requires a secure password directory")
        match config.consensus_client:
            case "lighthouse":
                vc = lighthouse_vc_args(config, layout, secure_dir.secrets_dir)
            case "prysm":
                vc = prysm_validator_args(config, layout, secure_dir.password_path)
        specs[Role.VALIDATOR] = LaunchSpec(
            role=Role.VALIDATOR,
            client=f"{config.consensus_client}-validator",
            argv=(str(binary_path(layout, config.consensus_client)), *vc),
            env=child_env,
            cwd=layout.validator_dir,
            log_dir=layout.validator_logs_dir(config.consensus_client),
        )

    return [specs[role] for role in STARTUP_ORDER if role in specs]
