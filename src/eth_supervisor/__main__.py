"""
Ethereum node supervisor CLI entry point.

Runs an execution client, a consensus client and optionally a validator client
and MEV-Boost, starting them in dependency order and stopping them in reverse
on SIGINT, SIGTERM, SIGHUP or SIGUSR2.

Usage::

    python -m eth_supervisor -e reth -c lighthouse
    python -m eth_supervisor -e geth -c prysm --archive -d /srv/eth
    python -m eth_supervisor --validator -fr 0xYourAddress --mev-boost
    python -m eth_supervisor --validator -fr 0xYourAddress --validator-keys-dir ~/keys

Options:
    -e, --execution-client      reth or geth (default: reth)
    -c, --consensus-client      lighthouse or prysm (default: lighthouse)
    --archive                   Run the execution client as an archive node
    -ep, --execution-peer-port  Execution client peer port (default: 30303)
    -cp, --consensus-peer-ports Consensus client peer ports as "tcp,udp"
    -cc, --consensus-checkpoint Checkpoint sync URL, skips endpoint health checks
    -d, --directory             Install directory (default: home directory)
    -o, --owner                 Operator name shown in alerts
    --validator                 Run a validator client
    -fr, --fee-recipient        Fee recipient address (required with --validator)
    --graffiti                  Block graffiti (default: BuidlGuidl)
    --validator-keys-dir        Import keystores from this directory
    --mev-boost                 Run MEV-Boost and build blocks with relays
    --require-presence          Ask for a 6-digit code before unlocking validator keys

A second invocation against an installation that is already running shows the
running supervisor's status and exits.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import functools
import getpass
import logging
import subprocess
import sys
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Any, NoReturn, TypeVar

from pydantic import ValidationError

from eth_supervisor.api import (
    StatusError,
    StatusServer,
    StatusServerConfig,
    fetch_status,
    format_status,
)
from eth_supervisor.checkpoint import MAINNET_CHECKPOINT_URLS, select_checkpoint_url
from eth_supervisor.clients import LaunchSpec, build_launch_plan, ensure_jwt_secret
from eth_supervisor.keys import confirm_slashing_risk, prepare_validator_secrets
from eth_supervisor.secure_store import SecureDirectory, SecureStore, prompt_for_presence
from eth_supervisor.settings import (
    DEFAULT_GRAFFITI,
    DEFAULT_STATUS_PORT,
    InstallLayout,
    RunConfig,
    RunConfigStore,
    validate_operator_dir,
)
from eth_supervisor.supervisor import (
    InstanceLock,
    ProcessLauncher,
    Supervisor,
    SupervisorConfig,
    SupervisorPhase,
    read_lock_owner,
    run_blocking,
)
from eth_supervisor.types import AlreadyRunningError, ConfigurationError, SupervisorError

logger = logging.getLogger(__name__)

T = TypeVar("T")

EXIT_OK = 0
"""Graceful shutdown, help, or observer mode."""

EXIT_FAILURE = 1
"""Invalid options or a fatal startup error."""


class ColoredFormatter(logging.Formatter):
    """Logging formatter with ANSI colors for better readability."""

    # ANSI color codes
    GREY = "\x1b[38;5;244m"
    BLUE = "\x1b[38;5;39m"
    GREEN = "\x1b[38;5;40m"
    YELLOW = "\x1b[38;5;220m"
    RED = "\x1b[38;5;196m"
    BOLD_RED = "\x1b[38;5;196;1m"
    CYAN = "\x1b[38;5;51m"
    RESET = "\x1b[0m"

    LEVEL_COLORS = {
        logging.DEBUG: GREY,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: BOLD_RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        timestamp = f"{self.CYAN}{self.formatTime(record, self.datefmt)}{self.RESET}"
        levelname = f"{color}{record.levelname:8}{self.RESET}"
        name = f"{self.BLUE}{record.name}{self.RESET}"
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return f"{timestamp} {levelname} {name}: {message}"


def setup_logging(verbose: bool = False, no_color: bool = False) -> None:
    """Configure logging with optional colors."""
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    handler.setLevel(level)

    if no_color:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = ColoredFormatter(datefmt="%Y-%m-%d %H:%M:%S")

    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


# -----------------------------------------------------------------------------
# Argument Parsing
# -----------------------------------------------------------------------------


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser that exits with status 1 on invalid options."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_FAILURE, f"{self.prog}: error: {message}\n")


def parse_peer_ports(value: str) -> tuple[int, int]:
    """Parse "tcp,udp" into two ports."""
    parts = [p.strip() for p in value.split(",")]
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise argparse.ArgumentTypeError("expected two comma-separated ports, e.g. 9000,9001")
    return int(parts[0]), int(parts[1])


def build_parser() -> argparse.ArgumentParser:
    """Create the command line parser."""
    parser = _ArgumentParser(
        prog="eth-supervisor",
        description="Ethereum node supervisor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "-e",
        "--execution-client",
        choices=("reth", "geth"),
        default="reth",
        help="Execution client (default: reth)",
    )
    parser.add_argument(
        "-c",
        "--consensus-client",
        choices=("lighthouse", "prysm"),
        default="lighthouse",
        help="Consensus client (default: lighthouse)",
    )
    parser.add_argument(
        "--archive",
        action="store_true",
        help="Run the execution client as an archive node",
    )
    parser.add_argument(
        "-ep",
        "--execution-peer-port",
        type=int,
        default=30303,
        help="Execution client peer port (default: 30303)",
    )
    parser.add_argument(
        "-cp",
        "--consensus-peer-ports",
        type=parse_peer_ports,
        default=None,
        help="Consensus client peer ports as tcp,udp (default: client specific)",
    )
    parser.add_argument(
        "-cc",
        "--consensus-checkpoint",
        default=None,
        help="Checkpoint sync URL. Skips endpoint health checks.",
    )
    parser.add_argument(
        "-d",
        "--directory",
        type=Path,
        default=None,
        help="Install directory (default: home directory)",
    )
    parser.add_argument("-o", "--owner", default=None, help="Operator name shown in alerts")
    parser.add_argument("--validator", action="store_true", help="Run a validator client")
    parser.add_argument(
        "-fr",
        "--fee-recipient",
        default=None,
        help="Fee recipient address (required with --validator)",
    )
    parser.add_argument(
        "--graffiti",
        default=DEFAULT_GRAFFITI,
        help=f"Block graffiti, at most 32 characters (default: {DEFAULT_GRAFFITI})",
    )
    parser.add_argument(
        "--validator-keys-dir",
        type=Path,
        default=None,
        help="Directory of keystore*.json files to import",
    )
    parser.add_argument(
        "--mev-boost",
        action="store_true",
        help="Run MEV-Boost and source blocks from relays",
    )
    parser.add_argument(
        "--require-presence",
        action="store_true",
        help="Require a 6-digit code before unlocking validator keys",
    )
    parser.add_argument(
        "--status-port",
        type=int,
        default=DEFAULT_STATUS_PORT,
        help=f"Port of the local status API (default: {DEFAULT_STATUS_PORT})",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--no-color", action="store_true", help="Disable colored logging output")
    return parser


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(p) for p in detail["loc"]) or "options"
        parts.append(f"{location}: {detail['msg']}")
    return "; ".join(parts)


def config_from_args(
    args: argparse.Namespace,
    *,
    allowed_roots: Sequence[Path] | None = None,
) -> RunConfig:
    """
    Validate parsed arguments into a run configuration.

    Raises:
        ConfigurationError: If any option is invalid.
    """
    install_dir = validate_operator_dir(
        args.directory if args.directory is not None else Path.home(),
        label="Install directory",
        allowed_roots=allowed_roots,
    )
    keys_dir = None
    if args.validator_keys_dir is not None:
        keys_dir = validate_operator_dir(
            args.validator_keys_dir,
            label="Validator keys directory",
            allowed_roots=allowed_roots,
        )

    try:
        return RunConfig(
            install_dir=install_dir,
            execution_client=args.execution_client,
            execution_type="archive" if args.archive else "full",
            consensus_client=args.consensus_client,
            execution_peer_port=args.execution_peer_port,
            consensus_peer_ports=args.consensus_peer_ports,
            consensus_checkpoint=args.consensus_checkpoint,
            owner=args.owner,
            validator_enabled=args.validator,
            fee_recipient=args.fee_recipient,
            graffiti=args.graffiti,
            validator_keys_dir=keys_dir,
            mev_boost_enabled=args.mev_boost,
            require_presence=args.require_presence,
            status_port=args.status_port,
        )
    except ValidationError as e:
        raise ConfigurationError(_format_validation_error(e)) from e


# -----------------------------------------------------------------------------
# Running
# -----------------------------------------------------------------------------


def log_validator_banner(config: RunConfig) -> None:
    """Summarize validator settings before keys are unlocked."""
    logger.info("Validator mode enabled")
    logger.info("  Fee recipient: %s", config.fee_recipient)
    logger.info("  Graffiti:      %s", config.graffiti)
    logger.info("  MEV-Boost:     %s", "enabled" if config.mev_boost_enabled else "disabled")
    logger.warning(
        "Never run the same validator keys on more than one machine. "
        "Doing so will get them slashed."
    )


async def observe(layout: InstallLayout, default_status_port: int) -> int:
    """
    Show the status of the supervisor that owns `layout`.

    Never starts or stops anything.

    Raises:
        ConfigurationError: If the persisted run configuration is malformed.
    """
    owner = read_lock_owner(layout.lock_path)
    logger.info("Supervisor already running (pid %s), showing its status", owner)

    persisted = RunConfigStore(layout.options_path).load()
    port = persisted.status_port if persisted is not None else default_status_port

    try:
        status = await fetch_status(f"http://127.0.0.1:{port}")
    except StatusError as e:
        logger.warning("Cannot read status of the running supervisor: %s", e)
        return EXIT_OK

    for line in format_status(status):
        logger.info("%s", line)
    return EXIT_OK


async def prepare_launch(
    config: RunConfig,
    layout: InstallLayout,
    store: SecureStore,
    *,
    checkpoint_candidates: Sequence[str],
    read_secret: Callable[[str], str],
    read_line: Callable[[str], str],
    run_command: Callable[..., Any],
) -> list[LaunchSpec]:
    """
    Everything that happens between taking the lock and launching the first role.

    Prompts and the Prysm wallet import run on daemon threads so that signals
    are handled while they wait.

    Returns:
        The launch plan.
    """
    ensure_jwt_secret(layout.jwt_path)
    checkpoint_url = await select_checkpoint_url(config.consensus_checkpoint, checkpoint_candidates)
    if checkpoint_url is None:
        logger.warning("Starting without checkpoint sync, the beacon node syncs from genesis")

    secure_dir: SecureDirectory | None = None
    if config.validator_enabled:
        log_validator_banner(config)
        if config.require_presence:
            await run_blocking(prompt_for_presence, read_line, name="presence-prompt")
        secrets = await run_blocking(
            functools.partial(
                prepare_validator_secrets,
                config,
                store,
                confirm=lambda: confirm_slashing_risk(read_line),
                read_secret=read_secret,
                run=run_command,
            ),
            name="validator-keys",
        )
        secure_dir = secrets.secure_dir

    return build_launch_plan(config, checkpoint_url, secure_dir)


async def _unless_shutdown(supervisor: Supervisor, work: Awaitable[T]) -> T | None:
    """
    Await `work` unless shutdown is requested first.

    Returns:
        The result of `work`, or None if shutdown cancelled it.
    """
    task = asyncio.ensure_future(work)
    requested = asyncio.create_task(supervisor.wait_shutdown_requested())
    try:
        await asyncio.wait({task, requested}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        requested.cancel()

    if task.done():
        return task.result()

    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
    logger.info("Startup cancelled by shutdown")
    return None


async def run_supervisor(
    config: RunConfig,
    *,
    launcher: ProcessLauncher | None = None,
    supervisor_config: SupervisorConfig | None = None,
    secure_store: SecureStore | None = None,
    checkpoint_candidates: Sequence[str] = MAINNET_CHECKPOINT_URLS,
    read_secret: Callable[[str], str] = getpass.getpass,
    read_line: Callable[[str], str] = input,
    run_command: Callable[..., Any] = subprocess.run,
    install_signal_handlers: bool = True,
    serve_status: bool = True,
) -> int:
    """
    Run the node until shutdown.

    Termination signals are handled from the moment the lock is held. One
    arriving during startup cancels the remaining startup steps and releases
    the lock and any secrets already written.

    Returns:
        The process exit code.
    """
    layout = InstallLayout(config.install_dir)
    try:
        lock = InstanceLock.acquire(layout.lock_path)
    except AlreadyRunningError:
        return await observe(layout, config.status_port)

    options = RunConfigStore(layout.options_path)
    store = secure_store if secure_store is not None else SecureStore()
    supervisor = Supervisor(
        config=supervisor_config or SupervisorConfig(),
        secure_store=store,
        run_config_store=options,
        instance_lock=lock,
        owner=config.owner,
    )
    if launcher is not None:
        supervisor.launcher = launcher
    status_server = StatusServer(
        StatusServerConfig(port=config.status_port, enabled=serve_status),
        status_provider=supervisor.snapshot,
    )

    control = asyncio.create_task(
        supervisor.run(install_signal_handlers=install_signal_handlers),
        name="supervisor",
    )
    exit_code = EXIT_OK
    reason = "exiting"
    try:
        if options.delete():
            logger.info("Removed run configuration left by a previous run")

        plan = await _unless_shutdown(
            supervisor,
            prepare_launch(
                config,
                layout,
                store,
                checkpoint_candidates=checkpoint_candidates,
                read_secret=read_secret,
                read_line=read_line,
                run_command=run_command,
            ),
        )
        if plan is not None:
            await supervisor.start_all(plan)

        if supervisor.phase is SupervisorPhase.RUNNING:
            options.save(config)
            try:
                await status_server.start()
            except OSError as e:
                logger.warning("Status API unavailable on port %d: %s", config.status_port, e)

        await supervisor.wait_stopped()
    except SupervisorError as e:
        logger.error("%s", e.message)
        exit_code = EXIT_FAILURE
        reason = "startup failed"
    except Exception as e:
        logger.exception("Unexpected error")
        exit_code = EXIT_FAILURE
        reason = f"uncaught {type(e).__name__}"
    finally:
        supervisor.request_shutdown(reason, failure=exit_code != EXIT_OK)
        await control
        await status_server.stop()

    if supervisor.failed and exit_code == EXIT_OK:
        logger.error("Stopped after an error: %s", supervisor.shutdown_reason)
        exit_code = EXIT_FAILURE
    return exit_code


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(args.verbose, args.no_color)

    try:
        config = config_from_args(args)
    except ConfigurationError as e:
        logger.error("%s", e.message)
        sys.exit(EXIT_FAILURE)

    try:
        exit_code = asyncio.run(run_supervisor(config))
    except SupervisorError as e:
        logger.error("%s", e.message)
        exit_code = EXIT_FAILURE
    except KeyboardInterrupt:
        logger.info("Interrupted")
        exit_code = EXIT_FAILURE

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
