"""Semantic type aliases and node references.

NewType creates distinct types that mypy treats as incompatible,
preventing accidental misuse of graph and node identifiers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NewType

GraphID = NewType("GraphID", str)
"""Identifier of a graph within a chain (e.g., 'ingest')"""

NodeID = NewType("NodeID", str)
"""Identifier of a node, unique only within its owning graph (e.g., 'fetch')"""

NODE_REF_SEPARATOR = "."


@dataclass(frozen=True, slots=True, order=True)
class NodeRef:
    """Chain-wide address of a node: (graph_id, node_id).

    Ordering is lexical by (graph_id, node_id). The resolver and executor
    use this ordering as the tie-break for deterministic plans.
    """

    graph_id: GraphID
    node_id: NodeID

    def __str__(self) -> str:
        return f"{self.graph_id}{NODE_REF_SEPARATOR}{self.node_id}"

    @classmethod
    def parse(cls, value: str) -> NodeRef:
        """Parse the 'graph.node' form (split on the first separator).

        Raises:
            ValueError: If either part is missing.
        """
        graph_id, sep, node_id = value.partition(NODE_REF_SEPARATOR)
        if not sep or not graph_id or not node_id:
            raise ValueError(f"Node reference must have the form 'graph{NODE_REF_SEPARATOR}node', got {value!r}")
        return cls(GraphID(graph_id), NodeID(node_id))

    @classmethod
    def coerce(cls, value: NodeRef | str) -> NodeRef:
        """Accept a NodeRef or its string form."""
        if isinstance(value, NodeRef):
            return value
        return cls.parse(value)
