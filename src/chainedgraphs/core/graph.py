"""Graph: nodes and intra-graph edges of one member of a chain.

Predecessors are supplied by ID when a node is added and validated at
finalize(), so nodes may be added in any order. After finalize() the graph
is immutable and safe to share across threads.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Iterator, KeysView
from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType

import networkx as nx
from networkx import DiGraph

from chainedgraphs.contracts.actions import ActionCallable, NodeAction, as_action
from chainedgraphs.contracts.errors import (
    CycleError,
    DuplicateNodeError,
    GraphFinalizedError,
    UnknownPredecessorError,
)
from chainedgraphs.contracts.types import NODE_REF_SEPARATOR, GraphID, NodeID, NodeRef
from chainedgraphs.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Node:
    """A node of one graph.

    Frozen after construction. ``successors`` is empty until the owning
    graph is finalized.
    """

    graph_id: GraphID
    node_id: NodeID
    action: NodeAction = field(compare=False)
    predecessors: tuple[NodeID, ...] = ()
    successors: tuple[NodeID, ...] = ()

    @property
    def ref(self) -> NodeRef:
        return NodeRef(self.graph_id, self.node_id)


class _Color(IntEnum):
    WHITE = 0  # unvisited
    GREY = 1  # on the current DFS path
    BLACK = 2  # fully explored


class Graph:
    """Directed acyclic graph of nodes identified by NodeID.

    Wraps a NetworkX DiGraph holding the intra-graph edges
    (predecessor -> successor). Node insertion order is preserved and
    drives every deterministic traversal.

    Example:
        graph = Graph("ingest")
        graph.add_node("parse", parse_action, predecessors=["fetch"])
        graph.add_node("fetch", fetch_action)
        graph.finalize()
        list(graph.nodes())  # ['parse', 'fetch']
    """

    def __init__(self, graph_id: str) -> None:
        if not graph_id:
            raise ValueError("graph_id must be a non-empty string")
        if NODE_REF_SEPARATOR in graph_id:
            raise ValueError(f"graph_id '{graph_id}' must not contain '{NODE_REF_SEPARATOR}'")
        self._graph_id = GraphID(graph_id)
        self._nodes: dict[NodeID, Node] = {}
        self._graph: DiGraph[NodeID] = nx.DiGraph()
        self._finalized = False

    def __repr__(self) -> str:
        state = "finalized" if self._finalized else "open"
        return f"Graph({self._graph_id!r}, nodes={len(self._nodes)}, {state})"

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    @property
    def graph_id(self) -> GraphID:
        return self._graph_id

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def add_node(
        self,
        node_id: str,
        action: NodeAction | ActionCallable,
        predecessors: Iterable[str] = (),
    ) -> Node:
        """Add a node.

        Args:
            node_id: Identifier unique within this graph
            action: NodeAction or callable taking the dependency results
            predecessors: IDs of nodes in this graph that must complete first.
                Validated at finalize(); duplicates collapse.

        Returns:
            The created Node.

        Raises:
            DuplicateNodeError: If node_id is already present
            GraphFinalizedError: If the graph is finalized
        """
        if self._finalized:
            raise GraphFinalizedError(self._graph_id)
        if not node_id:
            raise ValueError("node_id must be a non-empty string")
        nid = NodeID(node_id)
        if nid in self._nodes:
            raise DuplicateNodeError(self._graph_id, nid)

        node = Node(
            graph_id=self._graph_id,
            node_id=nid,
            action=as_action(action),
            predecessors=tuple(dict.fromkeys(NodeID(p) for p in predecessors)),
        )
        self._nodes[nid] = node
        self._graph.add_node(nid)
        return node

    def finalize(self) -> None:
        """Validate predecessors and acyclicity, then freeze the graph.

        Idempotent: calling it on a finalized graph does nothing.

        Raises:
            UnknownPredecessorError: If a predecessor ID names no node
            CycleError: If the intra-graph edges contain a cycle
        """
        if self._finalized:
            return

        for node in self._nodes.values():
            for pred in node.predecessors:
                if pred not in self._nodes:
                    raise UnknownPredecessorError(self._graph_id, node.node_id, pred)

        for node in self._nodes.values():
            for pred in node.predecessors:
                self._graph.add_edge(pred, node.node_id)

        cycle = self._find_cycle()
        if cycle is not None:
            # Leave the graph open (and edge-free) so the caller sees a consistent state.
            self._graph.remove_edges_from(list(self._graph.edges()))
            raise CycleError(cycle)

        for nid, node in self._nodes.items():
            self._nodes[nid] = dataclasses.replace(node, successors=tuple(self._graph.successors(nid)))

        self._finalized = True
        logger.debug("graph_finalized", graph_id=self._graph_id, nodes=len(self._nodes), edges=self.edge_count)

    def _find_cycle(self) -> list[NodeID] | None:
        """Three-colour depth-first search with an explicit stack.

        Returns:
            The first cycle found, in edge direction with its first node
            repeated at the end, or None if the graph is acyclic.
        """
        color = dict.fromkeys(self._nodes, _Color.WHITE)

        for start in self._nodes:
            if color[start] is not _Color.WHITE:
                continue
            color[start] = _Color.GREY
            path: list[NodeID] = [start]
            stack: list[Iterator[NodeID]] = [iter(self._graph.successors(start))]

            while stack:
                nxt = next(stack[-1], None)
                if nxt is None:
                    color[path.pop()] = _Color.BLACK
                    stack.pop()
                elif color[nxt] is _Color.GREY:
                    return [*path[path.index(nxt) :], nxt]
                elif color[nxt] is _Color.WHITE:
                    color[nxt] = _Color.GREY
                    path.append(nxt)
                    stack.append(iter(self._graph.successors(nxt)))
        return None

    def nodes(self) -> KeysView[NodeID]:
        """NodeIDs in insertion order.

        Returns a live, lazy view: iterating it twice yields the same
        sequence (once finalized, the graph never changes).
        """
        return MappingProxyType(self._nodes).keys()

    def node(self, node_id: str) -> Node:
        """Get a node by ID.

        Raises:
            KeyError: If the node does not exist.
        """
        try:
            return self._nodes[NodeID(node_id)]
        except KeyError:
            raise KeyError(f"Graph '{self._graph_id}' has no node '{node_id}'") from None

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def edges(self) -> list[tuple[NodeID, NodeID]]:
        """Intra-graph (predecessor, successor) pairs. Empty until finalized."""
        return list(self._graph.edges())

    def get_nx_graph(self) -> DiGraph[NodeID]:
        """Return a frozen copy of the underlying NetworkX graph."""
        return nx.freeze(self._graph.copy())  # type: ignore[no-any-return]
