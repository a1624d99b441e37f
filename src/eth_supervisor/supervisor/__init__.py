"""Process supervision: lifecycle state machines, instance lock and the supervisor."""

from .blocking import run_blocking
from .config import SupervisorConfig
from .events import (
    ProcessExited,
    ProcessSpawned,
    ProcessSpawnFailed,
    ShutdownCompleted,
    ShutdownRequested,
    SupervisorEvent,
)
from .lock import InstanceLock, process_alive, read_lock_owner
from .process import ManagedProcess, ProcessHandle, ProcessLauncher, SubprocessLauncher
from .state import ProcessState, SupervisorPhase
from .supervisor import HANDLED_SIGNALS, Supervisor

__all__ = [
    "HANDLED_SIGNALS",
    "InstanceLock",
    "ManagedProcess",
    "ProcessExited",
    "ProcessHandle",
    "ProcessLauncher",
    "ProcessSpawnFailed",
    "ProcessSpawned",
    "ProcessState",
    "ShutdownCompleted",
    "ShutdownRequested",
    "Supervisor",
    "SupervisorConfig",
    "SupervisorEvent",
    "SupervisorPhase",
    "process_alive",
    "read_lock_owner",
    "run_blocking",
]
