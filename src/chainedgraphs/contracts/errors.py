"""Exception taxonomy for chain construction, resolution, and execution.

Construction and resolution errors (ChainValidationError subclasses) are
fatal: they abort a run before any node executes and are never retried.
Runtime errors describe node failures and caller cancellation.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chainedgraphs.contracts.types import GraphID, NodeID, NodeRef


class ChainGraphError(Exception):
    """Base class for every error raised by chainedgraphs."""


# =============================================================================
# Construction / Resolution Errors
# =============================================================================


class ChainValidationError(ChainGraphError, ValueError):
    """Raised when graphs or links are malformed.

    Subclasses ValueError so callers validating input generically can
    catch it without importing this module.
    """


class DuplicateNodeError(ChainValidationError):
    """A node ID was added twice to the same graph."""

    def __init__(self, graph_id: GraphID, node_id: NodeID) -> None:
        self.graph_id = graph_id
        self.node_id = node_id
        super().__init__(f"Graph '{graph_id}' already contains node '{node_id}'")


class DuplicateGraphError(ChainValidationError):
    """A graph ID was registered twice with the same resolver."""

    def __init__(self, graph_id: GraphID) -> None:
        self.graph_id = graph_id
        super().__init__(f"Graph '{graph_id}' is already registered")


class UnknownPredecessorError(ChainValidationError):
    """A node names a predecessor that does not exist in its graph."""

    def __init__(self, graph_id: GraphID, node_id: NodeID, predecessor: NodeID) -> None:
        self.graph_id = graph_id
        self.node_id = node_id
        self.predecessor = predecessor
        super().__init__(f"Node '{graph_id}.{node_id}' depends on unknown predecessor '{predecessor}'")


class UnknownNodeError(ChainValidationError):
    """A link endpoint does not name a node in any registered graph."""

    def __init__(self, ref: NodeRef) -> None:
        self.ref = ref
        super().__init__(f"Unknown node '{ref}': no registered graph contains it")


class SelfLinkError(ChainValidationError):
    """A link does not cross graphs.

    Raised when source and target are the same node, and when both
    endpoints lie in the same graph (intra-graph dependencies are graph
    edges, not chain links).
    """

    def __init__(self, source: NodeRef, target: NodeRef) -> None:
        self.source = source
        self.target = target
        if source == target:
            msg = f"Link from '{source}' to itself"
        else:
            msg = f"Link '{source}' -> '{target}' stays inside graph '{source.graph_id}'; declare it as a predecessor instead"
        super().__init__(msg)


class CycleError(ChainValidationError):
    """The dependency structure contains a cycle.

    Attributes:
        path: Nodes along the cycle in dependency order. The first element
            is repeated at the end (e.g., (a, b, a)).
    """

    def __init__(self, path: Sequence[object]) -> None:
        self.path = tuple(path)
        super().__init__("Dependency cycle: " + " -> ".join(str(p) for p in self.path))


class GraphFinalizedError(ChainValidationError):
    """A finalized graph was modified."""

    def __init__(self, graph_id: GraphID) -> None:
        self.graph_id = graph_id
        super().__init__(f"Graph '{graph_id}' is finalized and can no longer be modified")


# =============================================================================
# Runtime Errors
# =============================================================================


class NodeExecutionError(ChainGraphError):
    """A node's action failed.

    The original exception is chained as ``__cause__``.
    """

    def __init__(self, node: NodeRef, cause: BaseException) -> None:
        self.node = node
        super().__init__(f"Node '{node}' failed: {type(cause).__name__}: {cause}")
        self.__cause__ = cause


class RunFailedError(ChainGraphError):
    """Aggregate error for a run that finished with node failures."""

    def __init__(self, failures: Sequence[NodeExecutionError]) -> None:
        self.failures = tuple(failures)
        nodes = ", ".join(str(f.node) for f in self.failures)
        super().__init__(f"Chain run failed: {len(self.failures)} node(s) failed ({nodes})")


class CancelledError(ChainGraphError):
    """The caller cancelled the run before it completed."""

    def __init__(self, not_started: int) -> None:
        self.not_started = not_started
        super().__init__(f"Chain run cancelled: {not_started} node(s) never started")


class OrchestrationInvariantError(ChainGraphError):
    """Internal bookkeeping violated an executor invariant.

    Indicates a bug in chainedgraphs, never bad input.
    """
