"""Shared contracts: identifiers, enums, errors, results, and report events.

Leaf package: nothing here imports from core, engine, or plugins.
"""

from chainedgraphs.contracts.actions import (
    ActionCallable,
    ActionInputs,
    CallableAction,
    NodeAction,
    as_action,
)
from chainedgraphs.contracts.enums import (
    FailurePolicy,
    NodePhase,
    NodeState,
    RunStatus,
    SkipReason,
)
from chainedgraphs.contracts.errors import (
    CancelledError,
    ChainGraphError,
    ChainValidationError,
    CycleError,
    DuplicateGraphError,
    DuplicateNodeError,
    GraphFinalizedError,
    NodeExecutionError,
    OrchestrationInvariantError,
    RunFailedError,
    SelfLinkError,
    UnknownNodeError,
    UnknownPredecessorError,
)
from chainedgraphs.contracts.events import (
    ChainEvent,
    NodeEvent,
    RunStarted,
    RunSummary,
)
from chainedgraphs.contracts.results import NodeResult, RunOutcome
from chainedgraphs.contracts.types import GraphID, NodeID, NodeRef

__all__ = [
    "ActionCallable",
    "ActionInputs",
    "CallableAction",
    "CancelledError",
    "ChainEvent",
    "ChainGraphError",
    "ChainValidationError",
    "CycleError",
    "DuplicateGraphError",
    "DuplicateNodeError",
    "FailurePolicy",
    "GraphFinalizedError",
    "GraphID",
    "NodeAction",
    "NodeEvent",
    "NodeExecutionError",
    "NodeID",
    "NodePhase",
    "NodeRef",
    "NodeResult",
    "NodeState",
    "OrchestrationInvariantError",
    "RunFailedError",
    "RunOutcome",
    "RunStarted",
    "RunStatus",
    "RunSummary",
    "SelfLinkError",
    "SkipReason",
    "UnknownNodeError",
    "UnknownPredecessorError",
    "as_action",
]
