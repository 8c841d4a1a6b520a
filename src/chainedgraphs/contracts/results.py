"""Per-node results and the aggregate outcome of a run.

Both are frozen: a NodeResult is written once by the worker that ran the
node and is read-only afterwards, including by dependents.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from chainedgraphs.contracts.enums import FailurePolicy, NodeState, RunStatus, SkipReason
from chainedgraphs.contracts.errors import CancelledError, NodeExecutionError, RunFailedError
from chainedgraphs.contracts.types import NodeRef


@dataclass(frozen=True, slots=True)
class NodeResult:
    """Outcome of one node: succeeded with output, failed with error, or skipped.

    Use the factory classmethods; they keep the fields consistent with
    the state.
    """

    ref: NodeRef
    state: NodeState
    output: Any = None
    error: NodeExecutionError | None = None
    skip_reason: SkipReason | None = None
    duration_ms: float = 0.0

    @classmethod
    def success(cls, ref: NodeRef, output: Any, *, duration_ms: float) -> NodeResult:
        return cls(ref=ref, state=NodeState.SUCCEEDED, output=output, duration_ms=duration_ms)

    @classmethod
    def failure(cls, ref: NodeRef, error: NodeExecutionError, *, duration_ms: float) -> NodeResult:
        return cls(ref=ref, state=NodeState.FAILED, error=error, duration_ms=duration_ms)

    @classmethod
    def skip(cls, ref: NodeRef, reason: SkipReason) -> NodeResult:
        return cls(ref=ref, state=NodeState.SKIPPED, skip_reason=reason)

    @property
    def succeeded(self) -> bool:
        return self.state is NodeState.SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.state is NodeState.FAILED

    @property
    def skipped(self) -> bool:
        return self.state is NodeState.SKIPPED


@dataclass(frozen=True, slots=True)
class RunOutcome:
    """Aggregate result of one chain run.

    Attributes:
        run_id: Identifier shared with every report event of the run
        status: COMPLETED, FAILED or CANCELLED
        policy: Failure policy the run executed under
        results: NodeResult for every node in the plan, in plan order
        duration_seconds: Wall-clock duration of execution
    """

    run_id: str
    status: RunStatus
    policy: FailurePolicy
    results: Mapping[NodeRef, NodeResult]
    duration_seconds: float

    @property
    def success(self) -> bool:
        return self.status is RunStatus.COMPLETED

    @property
    def failures(self) -> tuple[NodeExecutionError, ...]:
        """Node failures in plan order."""
        return tuple(r.error for r in self.results.values() if r.error is not None)

    @property
    def skipped(self) -> tuple[NodeRef, ...]:
        return tuple(ref for ref, r in self.results.items() if r.skipped)

    @property
    def succeeded(self) -> tuple[NodeRef, ...]:
        return tuple(ref for ref, r in self.results.items() if r.succeeded)

    def output(self, ref: NodeRef | str) -> Any:
        """Output of a succeeded node.

        Raises:
            KeyError: If the node is not part of the run or did not succeed.
        """
        result = self.results[NodeRef.coerce(ref)]
        if not result.succeeded:
            raise KeyError(f"Node '{result.ref}' has no output: {result.state.value}")
        return result.output

    def raise_for_status(self) -> None:
        """Raise the aggregate error for a run that did not complete.

        Raises:
            RunFailedError: If any node failed (takes precedence over cancellation).
            CancelledError: If the run was cancelled without node failures.
        """
        failures = self.failures
        if failures:
            raise RunFailedError(failures)
        if self.status is RunStatus.CANCELLED:
            not_started = sum(1 for r in self.results.values() if r.skip_reason is SkipReason.CANCELLED)
            raise CancelledError(not_started)
