"""Report events emitted during chain execution.

These domain events are produced by the executor and consumed by report
sinks (CLI formatters, test recorders) subscribed on an event bus.
Events are immutable (frozen) so they can be handed across threads.

Ordering guarantees:
- For one node: exactly one STARTED, then exactly one terminal event.
  Skipped nodes emit STARTED and SKIPPED back to back.
- Across levels: every terminal event of level k precedes any event of
  level k+1.
- Within a level no order is guaranteed unless the executor runs with a
  single worker.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from chainedgraphs.contracts.enums import FailurePolicy, NodePhase, RunStatus
from chainedgraphs.contracts.types import NodeRef


@dataclass(frozen=True, slots=True)
class ChainEvent:
    """Base class for all report events.

    All events include:
    - timestamp: When the event occurred (UTC)
    - run_id: Chain run this event belongs to
    """

    timestamp: datetime
    run_id: str


@dataclass(frozen=True, slots=True)
class RunStarted(ChainEvent):
    """Emitted once before the first node of a run starts."""

    node_count: int
    level_count: int
    policy: FailurePolicy
    max_workers: int


@dataclass(frozen=True, slots=True)
class NodeEvent(ChainEvent):
    """Emitted when a node starts or reaches a terminal state.

    Attributes:
        node: The node this event is about
        phase: started, succeeded, failed or skipped
        level: Plan level the node belongs to
        detail: Failure message or skip reason (None otherwise)
        duration_ms: Action duration for succeeded/failed events
    """

    node: NodeRef
    phase: NodePhase
    level: int
    detail: str | None = None
    duration_ms: float | None = None

    @property
    def is_terminal(self) -> bool:
        return self.phase is not NodePhase.STARTED


@dataclass(frozen=True, slots=True)
class RunSummary(ChainEvent):
    """Emitted once when a run finishes (success, failure or cancellation)."""

    status: RunStatus
    total_nodes: int
    succeeded: int
    failed: int
    skipped: int
    duration_seconds: float
    exit_code: int  # 0=success, 1=any failure or cancellation
