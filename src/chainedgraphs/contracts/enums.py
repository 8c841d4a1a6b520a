"""Status codes, phases, and policies used across subsystem boundaries."""

from enum import StrEnum


class NodeState(StrEnum):
    """Lifecycle state of one node within one run.

    PENDING is initial for every node. SUCCEEDED, FAILED and SKIPPED
    are terminal. SKIPPED is only ever entered from PENDING.
    """

    PENDING = "pending"
    READY = "ready"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({NodeState.SUCCEEDED, NodeState.FAILED, NodeState.SKIPPED})


class NodePhase(StrEnum):
    """Phase carried by a node report event."""

    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class SkipReason(StrEnum):
    """Why a node was never started.

    Values:
        DEPENDENCY_FAILED: A direct dependency failed or was itself skipped
        RUN_ABORTED: Fail-fast stopped the run after another node failed
        CANCELLED: The caller cancelled the run
    """

    DEPENDENCY_FAILED = "dependency_failed"
    RUN_ABORTED = "run_aborted"
    CANCELLED = "cancelled"


class FailurePolicy(StrEnum):
    """How the executor reacts to a node failure.

    FAIL_FAST: Start nothing new once a failure is observed; nodes already
        running finish.
    BEST_EFFORT: Run every node whose dependencies succeeded; skip the rest.
    """

    FAIL_FAST = "fail_fast"
    BEST_EFFORT = "best_effort"


class RunStatus(StrEnum):
    """Final status of a chain run."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
