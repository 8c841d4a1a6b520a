"""ChainExecutor: runs an ExecutionPlan level by level.

Scheduling model:
- Levels run strictly in order. The executor blocks (concurrent.futures.wait)
  until every node of a level is terminal before touching the next level.
- Within a level, nodes run on a bounded ThreadPoolExecutor. With
  max_workers=1 they run on the caller's thread in plan order, which makes
  event order fully deterministic.
- Fail-fast acts at level boundaries: once a node fails, every node of the
  current level still starts (unless cancelled or downstream of the failure)
  and no node of a later level does. Results therefore do not depend on
  max_workers.
- Node actions are opaque blocking calls. Cancellation is cooperative:
  once the cancellation event is set no new node starts, running nodes
  finish.

Per-node state machine (per run):

    PENDING -> READY -> RUNNING -> SUCCEEDED | FAILED
    PENDING -> SKIPPED

Every node is reported as "started" and then exactly one terminal phase.
A skipped node is reported as started and skipped back to back, without
ever entering READY or RUNNING.

A node is skipped when a direct dependency failed or was skipped (this
propagates transitively under every policy), when fail-fast has stopped the
run, or when the run was cancelled.
"""

from __future__ import annotations

import threading
import time
import uuid
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any, TypeAlias

from chainedgraphs.contracts.actions import ActionInputs
from chainedgraphs.contracts.enums import FailurePolicy, NodePhase, NodeState, RunStatus, SkipReason
from chainedgraphs.contracts.errors import NodeExecutionError, OrchestrationInvariantError
from chainedgraphs.contracts.events import NodeEvent, RunStarted, RunSummary
from chainedgraphs.contracts.results import NodeResult, RunOutcome
from chainedgraphs.contracts.types import NodeRef
from chainedgraphs.core.config import ExecutorSettings
from chainedgraphs.core.events import EventBusProtocol, NullEventBus
from chainedgraphs.core.graph import Node
from chainedgraphs.core.logging import get_logger
from chainedgraphs.core.plan import ExecutionPlan

logger = get_logger(__name__)

ActionInvoker: TypeAlias = Callable[[Node, ActionInputs], Any]
"""Runs one node's action with its dependency results and returns the output."""


def invoke_action(node: Node, inputs: ActionInputs) -> Any:
    """Default invoker: call the node's own action."""
    return node.action.execute(inputs)


_ALLOWED_TRANSITIONS: Mapping[NodeState, frozenset[NodeState]] = MappingProxyType(
    {
        NodeState.PENDING: frozenset({NodeState.READY, NodeState.SKIPPED}),
        NodeState.READY: frozenset({NodeState.RUNNING}),
        NodeState.RUNNING: frozenset({NodeState.SUCCEEDED, NodeState.FAILED}),
        NodeState.SUCCEEDED: frozenset(),
        NodeState.FAILED: frozenset(),
        NodeState.SKIPPED: frozenset(),
    }
)

_SKIP_PHASE_DETAIL: Mapping[SkipReason, str] = MappingProxyType(
    {
        SkipReason.DEPENDENCY_FAILED: "skipped due to failed dependency",
        SkipReason.RUN_ABORTED: "skipped: run stopped after a failure (fail-fast)",
        SkipReason.CANCELLED: "skipped: run cancelled",
    }
)


class _RunState:
    """Mutable bookkeeping for one run.

    One lock guards node states, results, and event emission. Actions run
    outside the lock. Each NodeResult is written once, by the thread that
    ran (or skipped) the node.
    """

    def __init__(
        self,
        plan: ExecutionPlan,
        *,
        run_id: str,
        policy: FailurePolicy,
        invoke: ActionInvoker,
        event_bus: EventBusProtocol,
        cancellation: threading.Event,
    ) -> None:
        self.plan = plan
        self.run_id = run_id
        self.policy = policy
        self.invoke = invoke
        self.event_bus = event_bus
        self.cancellation = cancellation
        self.lock = threading.Lock()
        self.states: dict[NodeRef, NodeState] = dict.fromkeys(plan, NodeState.PENDING)
        self.results: dict[NodeRef, NodeResult] = {}
        # failure_seen is set by the failing worker; aborted is copied from it
        # at level entry and stays constant while the level runs.
        self.failure_seen = False
        self.aborted = False

    def emit(self, event: object) -> None:
        # Caller holds self.lock (or is the only thread running).
        self.event_bus.emit(event)

    def transition(self, ref: NodeRef, new_state: NodeState) -> None:
        current = self.states[ref]
        if new_state not in _ALLOWED_TRANSITIONS[current]:
            raise OrchestrationInvariantError(f"Illegal state transition for node '{ref}': {current.value} -> {new_state.value}")
        self.states[ref] = new_state

    def skip_reason(self, ref: NodeRef) -> SkipReason | None:
        """Why ref must not start, or None if it may run now.

        Cancellation wins over everything else: once requested, every node
        that has not started is reported as cancelled.
        """
        dependency_failed = False
        for dep in self.plan.dependencies[ref]:
            dep_result = self.results.get(dep)
            if dep_result is None:
                raise OrchestrationInvariantError(f"Node '{ref}' scheduled before its dependency '{dep}' reached a terminal state")
            if not dep_result.succeeded:
                dependency_failed = True
        if self.cancellation.is_set():
            return SkipReason.CANCELLED
        if dependency_failed:
            return SkipReason.DEPENDENCY_FAILED
        if self.aborted:
            return SkipReason.RUN_ABORTED
        return None

    def skip(self, ref: NodeRef, reason: SkipReason) -> None:
        """Mark ref as skipped and report it. Caller holds self.lock."""
        self.transition(ref, NodeState.SKIPPED)
        self.results[ref] = NodeResult.skip(ref, reason)
        self.emit(self._node_event(ref, NodePhase.STARTED))
        self.emit(self._node_event(ref, NodePhase.SKIPPED, detail=_SKIP_PHASE_DETAIL[reason]))

    def execute(self, ref: NodeRef) -> None:
        """Run one node to a terminal state (worker entry point)."""
        with self.lock:
            # Re-check: cancellation may have fired while queued.
            reason = self.skip_reason(ref)
            if reason is not None:
                self.skip(ref, reason)
                return
            self.transition(ref, NodeState.READY)
            inputs: ActionInputs = MappingProxyType({dep: self.results[dep] for dep in self.plan.dependencies[ref]})
            self.transition(ref, NodeState.RUNNING)
            self.emit(self._node_event(ref, NodePhase.STARTED))

        node = self.plan.nodes[ref]
        start = time.perf_counter()
        try:
            output = self.invoke(node, inputs)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            error = NodeExecutionError(ref, exc)
            logger.warning(
                "node_failed",
                run_id=self.run_id,
                node=str(ref),
                error_type=type(exc).__name__,
                error=str(exc),
            )
            with self.lock:
                self.transition(ref, NodeState.FAILED)
                self.results[ref] = NodeResult.failure(ref, error, duration_ms=duration_ms)
                if self.policy is FailurePolicy.FAIL_FAST:
                    self.failure_seen = True
                self.emit(self._node_event(ref, NodePhase.FAILED, detail=str(error), duration_ms=duration_ms))
            return

        duration_ms = (time.perf_counter() - start) * 1000
        with self.lock:
            self.transition(ref, NodeState.SUCCEEDED)
            self.results[ref] = NodeResult.success(ref, output, duration_ms=duration_ms)
            self.emit(self._node_event(ref, NodePhase.SUCCEEDED, duration_ms=duration_ms))

    def _node_event(
        self,
        ref: NodeRef,
        phase: NodePhase,
        *,
        detail: str | None = None,
        duration_ms: float | None = None,
    ) -> NodeEvent:
        return NodeEvent(
            timestamp=datetime.now(UTC),
            run_id=self.run_id,
            node=ref,
            phase=phase,
            level=self.plan.level_of(ref),
            detail=detail,
            duration_ms=duration_ms,
        )


class ChainExecutor:
    """Runs execution plans under a failure policy.

    The executor holds configuration only; all per-run state lives in the
    run() call, so one executor may run several plans, also concurrently.

    Failure policies:
        fail_fast (default): after the first failure no node of a later level
            starts. The rest of the failing level still runs, so the outcome
            is the same for every max_workers.
        best_effort: every node whose dependencies succeeded still runs;
            nodes downstream of a failure are skipped.

    Example:
        executor = ChainExecutor(ExecutorSettings(max_workers=4), event_bus=bus)
        outcome = executor.run(plan)
        outcome.raise_for_status()
    """

    def __init__(
        self,
        settings: ExecutorSettings | None = None,
        *,
        event_bus: EventBusProtocol | None = None,
    ) -> None:
        self._settings = settings or ExecutorSettings()
        self._event_bus: EventBusProtocol = event_bus or NullEventBus()

    @property
    def settings(self) -> ExecutorSettings:
        return self._settings

    def run(
        self,
        plan: ExecutionPlan,
        invoke: ActionInvoker | None = None,
        *,
        cancellation: threading.Event | None = None,
        run_id: str | None = None,
    ) -> RunOutcome:
        """Execute every node of the plan exactly once or skip it.

        Args:
            plan: Resolved execution plan
            invoke: Action invoker (default: call node.action.execute)
            cancellation: Event that, once set, stops new nodes from starting
            run_id: Identifier for events and the outcome (default: random)

        Returns:
            RunOutcome with a NodeResult for every node in the plan.
            Node failures do not raise here; use outcome.raise_for_status().
        """
        run = _RunState(
            plan,
            run_id=run_id or uuid.uuid4().hex,
            policy=self._settings.failure_policy,
            invoke=invoke or invoke_action,
            event_bus=self._event_bus,
            cancellation=cancellation or threading.Event(),
        )
        max_workers = self._settings.max_workers
        start = time.perf_counter()

        logger.info(
            "run_started",
            run_id=run.run_id,
            nodes=plan.node_count,
            levels=plan.level_count,
            policy=run.policy.value,
            max_workers=max_workers,
        )
        run.emit(
            RunStarted(
                timestamp=datetime.now(UTC),
                run_id=run.run_id,
                node_count=plan.node_count,
                level_count=plan.level_count,
                policy=run.policy,
                max_workers=max_workers,
            )
        )

        if max_workers == 1:
            for level in plan.levels:
                self._run_level(run, level, pool=None)
        else:
            with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="chainedgraphs") as pool:
                for level in plan.levels:
                    self._run_level(run, level, pool=pool)

        outcome = self._build_outcome(run, duration_seconds=time.perf_counter() - start)
        run.emit(
            RunSummary(
                timestamp=datetime.now(UTC),
                run_id=run.run_id,
                status=outcome.status,
                total_nodes=plan.node_count,
                succeeded=len(outcome.succeeded),
                failed=len(outcome.failures),
                skipped=len(outcome.skipped),
                duration_seconds=outcome.duration_seconds,
                exit_code=0 if outcome.success else 1,
            )
        )
        logger.info(
            "run_finished",
            run_id=run.run_id,
            status=outcome.status.value,
            failed=len(outcome.failures),
            skipped=len(outcome.skipped),
            duration_seconds=round(outcome.duration_seconds, 3),
        )
        return outcome

    @staticmethod
    def _run_level(run: _RunState, level: tuple[NodeRef, ...], *, pool: ThreadPoolExecutor | None) -> None:
        """Run one level and block until every node in it is terminal."""
        runnable: list[NodeRef] = []
        with run.lock:
            run.aborted = run.failure_seen
            for ref in level:
                reason = run.skip_reason(ref)
                if reason is None:
                    runnable.append(ref)
                else:
                    run.skip(ref, reason)

        if pool is None or len(runnable) == 1:
            for ref in runnable:
                run.execute(ref)
            return

        futures = [pool.submit(run.execute, ref) for ref in runnable]
        wait(futures)
        for future in futures:
            # Re-raise executor bugs and report-sink errors from worker threads.
            future.result()

    @staticmethod
    def _build_outcome(run: _RunState, *, duration_seconds: float) -> RunOutcome:
        if any(not state.is_terminal for state in run.states.values()) or len(run.results) != len(run.states):
            raise OrchestrationInvariantError("Run finished with nodes that never reached a terminal state")
        results = {ref: run.results[ref] for ref in run.plan}

        if run.cancellation.is_set():
            status = RunStatus.CANCELLED
        elif any(r.failed for r in results.values()):
            status = RunStatus.FAILED
        else:
            status = RunStatus.COMPLETED

        return RunOutcome(
            run_id=run.run_id,
            status=status,
            policy=run.policy,
            results=MappingProxyType(results),
            duration_seconds=duration_seconds,
        )
