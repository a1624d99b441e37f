"""Process and supervisor state machines."""

from __future__ import annotations

from enum import Enum, auto


class ProcessState(Enum):
    """
    Lifecycle of one supervised process.

    State Machine Diagram
    ---------------------
    ::

        NOT_STARTED --> STARTING --> RUNNING --> EXIT_REQUESTED --> EXITED
                           |            |                             ^
                           +------------+-----------------------------+

    Transitions
    -----------
    NOT_STARTED -> STARTING
        - Triggered when: the supervisor begins spawning the role

    STARTING -> RUNNING
        - Triggered when: the operating system reports the child was created

    STARTING -> EXITED
        - Triggered when: the spawn failed

    RUNNING -> EXIT_REQUESTED
        - Triggered when: shutdown sent the role its interrupt signal

    RUNNING -> EXITED
        - Triggered when: the child exited on its own (a crash)

    EXIT_REQUESTED -> EXITED
        - Triggered when: the child exited after being asked to

    EXITED is absorbing. Nothing restarts a role.
    """

    NOT_STARTED = auto()
    """Known to the supervisor, spawn not attempted yet."""

    STARTING = auto()
    """Spawn in progress."""

    RUNNING = auto()
    """Child process is alive."""

    EXIT_REQUESTED = auto()
    """Interrupt signal sent, waiting for the child to exit."""

    EXITED = auto()
    """Child is gone, or never came up."""

    def can_transition_to(self, target: ProcessState) -> bool:
        """
        Check if transition to target state is valid.

        Args:
            target: The proposed target state.

        Returns:
            True if the transition is allowed by the state machine rules.
        """
        return target in _PROCESS_TRANSITIONS.get(self, set())

    @property
    def is_alive(self) -> bool:
        """Whether a child process may currently exist for this state."""
        return self in {ProcessState.RUNNING, ProcessState.EXIT_REQUESTED}


_PROCESS_TRANSITIONS: dict[ProcessState, set[ProcessState]] = {
    ProcessState.NOT_STARTED: {ProcessState.STARTING},
    ProcessState.STARTING: {ProcessState.RUNNING, ProcessState.EXITED},
    ProcessState.RUNNING: {ProcessState.EXIT_REQUESTED, ProcessState.EXITED},
    ProcessState.EXIT_REQUESTED: {ProcessState.EXITED},
    ProcessState.EXITED: set(),
}
"""Valid state transitions for a supervised process."""


class SupervisorPhase(Enum):
    """
    Lifecycle of the supervisor itself.

    ::

        IDLE --> STARTING --> RUNNING --> SHUTTING_DOWN --> STOPPED
          |         |                          ^
          +---------+--------------------------+

    IDLE may also go straight to STOPPED when nothing was ever launched.
    Once SHUTTING_DOWN is entered no process is started again.
    """

    IDLE = auto()
    """Constructed, nothing launched."""

    STARTING = auto()
    """Launching roles in order."""

    RUNNING = auto()
    """All planned roles launched, watching for exits."""

    SHUTTING_DOWN = auto()
    """Stopping roles tier by tier."""

    STOPPED = auto()
    """Every role exited, resources released."""

    def can_transition_to(self, target: SupervisorPhase) -> bool:
        """Check if transition to target phase is valid."""
        return target in _PHASE_TRANSITIONS.get(self, set())

    @property
    def accepts_starts(self) -> bool:
        """Whether new roles may be launched in this phase."""
        return self in {SupervisorPhase.IDLE, SupervisorPhase.STARTING}


_PHASE_TRANSITIONS: dict[SupervisorPhase, set[SupervisorPhase]] = {
    SupervisorPhase.IDLE: {
        SupervisorPhase.STARTING,
        SupervisorPhase.SHUTTING_DOWN,
        SupervisorPhase.STOPPED,
    },
    SupervisorPhase.STARTING: {SupervisorPhase.RUNNING, SupervisorPhase.SHUTTING_DOWN},
    SupervisorPhase.RUNNING: {SupervisorPhase.SHUTTING_DOWN},
    SupervisorPhase.SHUTTING_DOWN: {SupervisorPhase.STOPPED},
    SupervisorPhase.STOPPED: set(),
}
"""Valid transitions for the supervisor phase."""
