"""
Process supervisor.

Owns every child process of a node installation and is the only component
that changes their state.

How It Works
------------
All lifecycle news arrives as events on one queue:

- the startup sequence posts spawn results,
- one watcher task per child posts its exit,
- signal handlers and the loop exception handler post a shutdown request,
- the shutdown driver posts its completion.

`run()` consumes the queue and applies each event. Nothing else mutates
process records, so there are no flags shared between callbacks.

Shutdown
--------
Shutdown is requested at most once; later requests are ignored. It proceeds
tier by tier (validator, then execution with consensus, then relay), each tier
preceded by a short grace delay and interrupted with SIGINT exactly once.
Exit is polled until every child is gone or the overall bound passes, after
which remaining children are killed. Only then are the secret directory
destroyed and the instance lock released.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Final

from eth_supervisor.alerts import AlertSink, CrashEvent, LoggingAlertSink
from eth_supervisor.clients import LaunchSpec
from eth_supervisor.metrics import role_crashes, role_up, shutdown_duration
from eth_supervisor.roles import HARD_DEPENDENCIES, SHUTDOWN_TIERS, Role
from eth_supervisor.types import InvalidTransitionError, SpawnError, StartupAbortedError

from .config import SupervisorConfig
from .events import (
    ProcessExited,
    ProcessSpawned,
    ProcessSpawnFailed,
    ShutdownCompleted,
    ShutdownRequested,
    SupervisorEvent,
)
from .lock import InstanceLock
from .process import ManagedProcess, ProcessHandle, ProcessLauncher, SubprocessLauncher
from .state import ProcessState, SupervisorPhase

if TYPE_CHECKING:
    from eth_supervisor.secure_store import SecureStore
    from eth_supervisor.settings import RunConfigStore

logger = logging.getLogger(__name__)

HANDLED_SIGNALS: Final[tuple[signal.Signals, ...]] = (
    signal.SIGINT,
    signal.SIGTERM,
    signal.SIGHUP,
    signal.SIGUSR2,
)
"""Signals that trigger a coordinated shutdown."""

_PENDING_STATES: Final = frozenset(
    {ProcessState.STARTING, ProcessState.RUNNING, ProcessState.EXIT_REQUESTED}
)


@dataclass(slots=True)
class Supervisor:
    """Starts, watches and stops the node's child processes."""

    config: SupervisorConfig = field(default_factory=SupervisorConfig)
    """Timing configuration."""

    launcher: ProcessLauncher = field(default_factory=SubprocessLauncher)
    """Creates child processes."""

    alert_sink: AlertSink = field(default_factory=LoggingAlertSink)
    """Receives crash events."""

    secure_store: SecureStore | None = None
    """Secret directory destroyed on shutdown."""

    run_config_store: RunConfigStore | None = None
    """Persisted configuration removed on shutdown."""

    instance_lock: InstanceLock | None = None
    """Lock released once shutdown completes."""

    owner: str | None = None
    """Operator identifier attached to alerts."""

    _processes: dict[Role, ManagedProcess] = field(default_factory=dict, init=False)
    """Process records by role. Written only by this class."""

    _events: asyncio.Queue[SupervisorEvent] = field(default_factory=asyncio.Queue, init=False)
    """The single lifecycle event channel."""

    _phase: SupervisorPhase = field(default=SupervisorPhase.IDLE, init=False)
    """Current supervisor phase."""

    _shutdown_reason: str | None = field(default=None, init=False)
    """Reason given by the first shutdown request."""

    _shutdown_started: float | None = field(default=None, init=False)
    """Monotonic time of the first shutdown request."""

    _shutdown_failed: bool = field(default=False, init=False)
    """Whether the first shutdown request reported a failure."""

    _shutdown_requested: asyncio.Event = field(default_factory=asyncio.Event, init=False)
    """Set by the first shutdown request."""

    _interrupted: set[Role] = field(default_factory=set, init=False)
    """Roles that already received their interrupt."""

    _tasks: set[asyncio.Task[None]] = field(default_factory=set, init=False)
    """Exit watchers and the shutdown driver."""

    _shutdown_task: asyncio.Task[None] | None = field(default=None, init=False)
    """The running shutdown driver."""

    _resources_released: bool = field(default=False, init=False)
    """Whether the secret directory and lock were already handled."""

    _stopped: asyncio.Event = field(default_factory=asyncio.Event, init=False)
    """Set once the phase reaches STOPPED."""

    _installed_signals: list[signal.Signals] = field(default_factory=list, init=False)
    """Signals whose handlers this supervisor installed."""

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def phase(self) -> SupervisorPhase:
        return self._phase

    @property
    def processes(self) -> Mapping[Role, ManagedProcess]:
        """Read-only view of the process records."""
        return MappingProxyType(self._processes)

    @property
    def shutdown_reason(self) -> str | None:
        return self._shutdown_reason

    @property
    def failed(self) -> bool:
        """Whether shutdown was caused by an error rather than a signal or request."""
        return self._shutdown_failed

    def snapshot(self) -> dict[str, Any]:
        """JSON-friendly view of the supervisor for the status API."""
        return {
            "phase": self._phase.name,
            "shutdownReason": self._shutdown_reason,
            "roles": [mp.snapshot() for mp in self._processes.values()],
        }

    def _set_phase(self, target: SupervisorPhase) -> None:
        if not self._phase.can_transition_to(target):
            raise InvalidTransitionError("supervisor", self._phase.name, target.name)
        logger.debug("Supervisor: %s -> %s", self._phase.name, target.name)
        self._phase = target
        if target is SupervisorPhase.STOPPED:
            self._stopped.set()

    def _spawn_task(self, coro: Any, name: str) -> asyncio.Task[None]:
        task: asyncio.Task[None] = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # -------------------------------------------------------------------------
    # Startup
    # -------------------------------------------------------------------------

    async def start_role(self, spec: LaunchSpec) -> ManagedProcess:
        """
        Launch one role and start watching it.

        Args:
            spec: How to launch the role.

        Returns:
            The RUNNING process record.

        Raises:
            SpawnError: If the role already exists, the supervisor no longer
                accepts starts, or the process could not be created.
        """
        role = spec.role
        if not self._phase.accepts_starts:
            raise SpawnError(role.value, f"supervisor is {self._phase.name}")
        if role in self._processes:
            raise SpawnError(role.value, "role already started")

        if self._phase is SupervisorPhase.IDLE:
            self._set_phase(SupervisorPhase.STARTING)

        mp = ManagedProcess(role=role, spec=spec)
        self._processes[role] = mp
        mp.transition(ProcessState.STARTING)

        try:
            handle = await self.launcher.spawn(spec)
        except OSError as e:
            mp.transition(ProcessState.EXITED)
            self._events.put_nowait(ProcessSpawnFailed(role=role, error=str(e)))
            raise SpawnError(role.value, str(e)) from e

        mp.handle = handle
        mp.started_at = time.time()
        mp.transition(ProcessState.RUNNING)
        role_up.labels(role=role.value).set(1)
        self._events.put_nowait(ProcessSpawned(role=role, pid=handle.pid))
        self._spawn_task(self._watch(role, handle), name=f"watch-{role.value}")

        # Shutdown began while the spawn was in flight.
        if self._phase is SupervisorPhase.SHUTTING_DOWN:
            self._interrupt(mp)

        return mp

    async def start_all(self, plan: Iterable[LaunchSpec]) -> None:
        """
        Launch roles in order, honoring dependencies and settle delays.

        A role whose spawn fails is reported and skipped. Roles depending on
        it then abort startup.

        Args:
            plan: Launch specs in startup order.

        Raises:
            StartupAbortedError: If a hard dependency of a role is not running.
        """
        for spec in plan:
            if not self._phase.accepts_starts:
                logger.info("Startup interrupted by shutdown before %s", spec.role.value)
                return

            missing = [
                dep.value
                for dep in sorted(HARD_DEPENDENCIES[spec.role])
                if self._state_of(dep) is not ProcessState.RUNNING
            ]
            if missing:
                raise StartupAbortedError(spec.role.value, missing)

            if spec.role is Role.VALIDATOR and self.config.validator_settle_delay > 0:
                logger.info(
                    "Waiting %.0fs for the beacon node before starting the validator",
                    self.config.validator_settle_delay,
                )
                await asyncio.sleep(self.config.validator_settle_delay)
                if not self._phase.accepts_starts:
                    return

            try:
                await self.start_role(spec)
            except SpawnError as e:
                logger.error("%s", e)
                continue

            if spec.role is Role.RELAY and self.config.relay_settle_delay > 0:
                await asyncio.sleep(self.config.relay_settle_delay)

        if self._phase is SupervisorPhase.IDLE:
            self._set_phase(SupervisorPhase.STARTING)
        if self._phase is SupervisorPhase.STARTING:
            self._set_phase(SupervisorPhase.RUNNING)
            logger.info("All roles launched: %s", ", ".join(r.value for r in self._processes))

    def _state_of(self, role: Role) -> ProcessState:
        mp = self._processes.get(role)
        return mp.state if mp is not None else ProcessState.NOT_STARTED

    async def _watch(self, role: Role, handle: ProcessHandle) -> None:
        exit_code = await handle.wait()
        self._events.put_nowait(ProcessExited(role=role, exit_code=exit_code))

    # -------------------------------------------------------------------------
    # Control Loop
    # -------------------------------------------------------------------------

    async def run(self, *, install_signal_handlers: bool = True) -> None:
        """
        Consume lifecycle events until shutdown completes.

        Args:
            install_signal_handlers: Whether to route termination signals into
                `request_shutdown`. Disable for tests or non-main threads.
        """
        loop = asyncio.get_running_loop()
        previous_handler = loop.get_exception_handler()
        loop.set_exception_handler(self._on_loop_exception)
        if install_signal_handlers:
            self._install_signal_handlers(loop)

        try:
            while self._phase is not SupervisorPhase.STOPPED:
                event = await self._events.get()
                await self._apply(event)
        finally:
            while self._installed_signals:
                loop.remove_signal_handler(self._installed_signals.pop())
            loop.set_exception_handler(previous_handler)
            self._release_resources()

    async def _apply(self, event: SupervisorEvent) -> None:
        match event:
            case ProcessSpawned(role=role, pid=pid):
                logger.debug("%s spawned with pid %d", role.value, pid)

            case ProcessSpawnFailed(role=role, error=error):
                logger.error("%s failed to start: %s", role.value, error)

            case ProcessExited(role=role, exit_code=exit_code):
                await self._on_exit(role, exit_code)

            case ShutdownRequested(reason=reason):
                if self._shutdown_task is None:
                    logger.info("Shutting down (%s)", reason)
                    self._shutdown_task = self._spawn_task(self._drive_shutdown(), name="shutdown")

            case ShutdownCompleted(duration=duration):
                shutdown_duration.observe(duration)
                self._set_phase(SupervisorPhase.STOPPED)
                logger.info("Shutdown complete in %.1fs", duration)

    async def _on_exit(self, role: Role, exit_code: int | None) -> None:
        mp = self._processes[role]
        if mp.state is ProcessState.EXITED:
            return
        expected = (
            mp.state is ProcessState.EXIT_REQUESTED
            or self._phase is SupervisorPhase.SHUTTING_DOWN
        )
        mp.exit_code = exit_code
        mp.transition(ProcessState.EXITED)
        role_up.labels(role=role.value).set(0)

        if expected:
            logger.info("%s exited with code %s", role.value, exit_code)
            return

        # Unexpected exit. Nothing is restarted automatically.
        role_crashes.labels(role=role.value).inc()
        event = CrashEvent.for_exit(role, exit_code, owner=self.owner)
        try:
            await self.alert_sink.emit(event)
        except Exception:
            logger.exception("Alert sink failed for %s crash", role.value)

    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------

    def request_shutdown(self, reason: str, *, failure: bool = False) -> bool:
        """
        Begin coordinated shutdown.

        Idempotent: only the first request has any effect.

        Args:
            reason: What triggered the shutdown.
            failure: Whether an error triggered it.

        Returns:
            True if this call started the shutdown.
        """
        if self._shutdown_reason is not None:
            logger.debug("Shutdown already requested, ignoring: %s", reason)
            return False

        self._shutdown_reason = reason
        self._shutdown_failed = failure
        self._shutdown_started = time.monotonic()
        self._shutdown_requested.set()
        if self._phase is not SupervisorPhase.STOPPED:
            self._set_phase(SupervisorPhase.SHUTTING_DOWN)
        self._events.put_nowait(ShutdownRequested(reason=reason))
        return True

    def handle_signal(self, sig: signal.Signals) -> None:
        """Signal handler body. Routes every handled signal into shutdown."""
        if not self.request_shutdown(f"received {sig.name}"):
            logger.info("Received %s, shutdown already in progress", sig.name)

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in HANDLED_SIGNALS:
            try:
                loop.add_signal_handler(sig, self.handle_signal, sig)
                self._installed_signals.append(sig)
            except (ValueError, RuntimeError, NotImplementedError):
                # Cannot add handlers outside the main thread.
                logger.debug("Cannot install handler for %s", sig.name)

    def _on_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        """Route unobserved task failures into shutdown."""
        loop.default_exception_handler(context)
        exc = context.get("exception")
        detail = repr(exc) if exc is not None else context.get("message", "unknown error")
        self.request_shutdown(f"unhandled error: {detail}", failure=True)

    async def wait_shutdown_requested(self) -> None:
        """Wait until shutdown has been requested."""
        await self._shutdown_requested.wait()

    async def wait_stopped(self) -> None:
        """Wait until shutdown has completed."""
        await self._stopped.wait()

    async def _drive_shutdown(self) -> None:
        loop = asyncio.get_running_loop()
        started = self._shutdown_started or time.monotonic()
        deadline = loop.time() + self.config.shutdown_timeout

        try:
            if self.run_config_store is not None:
                self.run_config_store.delete()

            for tier, grace in zip(SHUTDOWN_TIERS, self.config.tier_grace_delays, strict=True):
                targets = [
                    mp
                    for role in tier
                    if (mp := self._processes.get(role)) is not None
                    and mp.state is ProcessState.RUNNING
                ]
                if not targets:
                    continue
                await asyncio.sleep(grace)
                for mp in targets:
                    self._interrupt(mp)
                tier_deadline = min(deadline, loop.time() + self.config.tier_exit_timeout)
                await self._wait_for_exit(targets, tier_deadline)

            # Also covers roles whose spawn was still in flight when shutdown began.
            await self._wait_for_exit(list(self._processes.values()), deadline)

            stragglers = [mp for mp in self._processes.values() if mp.state in _PENDING_STATES]
            if stragglers:
                for mp in stragglers:
                    self._kill(mp)
                await self._wait_for_exit(stragglers, loop.time() + self.config.kill_wait)
                for mp in stragglers:
                    if mp.state is not ProcessState.EXITED:
                        logger.error(
                            "%s (pid %s) did not exit after SIGKILL", mp.role.value, mp.pid
                        )
        finally:
            self._release_resources()
            self._events.put_nowait(ShutdownCompleted(duration=time.monotonic() - started))

    def _interrupt(self, mp: ManagedProcess) -> None:
        """Send the role its single SIGINT."""
        if mp.role in self._interrupted or mp.handle is None:
            return
        self._interrupted.add(mp.role)
        mp.transition(ProcessState.EXIT_REQUESTED)
        logger.info("Stopping %s (pid %d)", mp.role.value, mp.handle.pid)
        try:
            mp.handle.send_signal(signal.SIGINT)
        except ProcessLookupError:
            # Already gone; its exit event is on the way.
            logger.debug("%s exited before SIGINT", mp.role.value)

    def _kill(self, mp: ManagedProcess) -> None:
        if mp.handle is None:
            return
        logger.warning("%s (pid %d) did not stop in time, killing", mp.role.value, mp.handle.pid)
        try:
            mp.handle.kill()
        except ProcessLookupError:
            logger.debug("%s exited before SIGKILL", mp.role.value)

    async def _wait_for_exit(self, targets: list[ManagedProcess], deadline: float) -> None:
        loop = asyncio.get_running_loop()
        while any(mp.state in _PENDING_STATES for mp in targets):
            remaining = deadline - loop.time()
            if remaining <= 0:
                return
            await asyncio.sleep(min(self.config.poll_interval, remaining))

    def _release_resources(self) -> None:
        """Destroy the secret directory, then release the lock. Runs once."""
        if self._resources_released:
            return
        self._resources_released = True

        if self.secure_store is not None:
            self.secure_store.destroy()
        if self.instance_lock is not None:
            self.instance_lock.release()
