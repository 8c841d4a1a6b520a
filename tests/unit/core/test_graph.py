# tests/unit/core/test_graph.py
"""Tests for Graph construction, finalization, and cycle detection."""

from __future__ import annotations

from typing import Any

import networkx as nx
import pytest

from chainedgraphs.contracts.errors import (
    CycleError,
    DuplicateNodeError,
    GraphFinalizedError,
    UnknownPredecessorError,
)
from chainedgraphs.contracts.types import NodeRef
from chainedgraphs.core.graph import Graph


def noop(inputs: Any) -> None:
    return None


class TestGraphConstruction:
    """Adding nodes before finalize()."""

    def test_add_node_returns_node(self) -> None:
        graph = Graph("ingest")
        node = graph.add_node("parse", noop)

        assert node.graph_id == "ingest"
        assert node.node_id == "parse"
        assert node.ref == NodeRef("ingest", "parse")
        assert node.predecessors == ()
        assert "parse" in graph
        assert len(graph) == 1

    def test_callable_action_is_wrapped(self) -> None:
        graph = Graph("g")
        node = graph.add_node("n", lambda inputs: "out")
        assert node.action.execute({}) == "out"

    def test_duplicate_node_rejected(self) -> None:
        graph = Graph("g")
        graph.add_node("n", noop)
        with pytest.raises(DuplicateNodeError) as exc_info:
            graph.add_node("n", noop)
        assert exc_info.value.node_id == "n"
        assert len(graph) == 1

    def test_empty_ids_rejected(self) -> None:
        with pytest.raises(ValueError):
            Graph("")
        with pytest.raises(ValueError):
            Graph("g").add_node("", noop)

    def test_graph_id_with_separator_rejected(self) -> None:
        """A dotted graph id would make "a.b.x" ambiguous in link references."""
        with pytest.raises(ValueError, match="must not contain"):
            Graph("a.b")

    def test_duplicate_predecessors_collapse(self) -> None:
        graph = Graph("g")
        graph.add_node("a", noop)
        node = graph.add_node("b", noop, predecessors=["a", "a"])
        assert node.predecessors == ("a",)

    def test_forward_references_allowed(self) -> None:
        """Predecessors may be added after the node that names them."""
        graph = Graph("g")
        graph.add_node("late", noop, predecessors=["early"])
        graph.add_node("early", noop)
        graph.finalize()

        assert graph.edges() == [("early", "late")]
        assert graph.node("early").successors == ("late",)


class TestGraphFinalize:
    """Validation performed by finalize()."""

    def test_unknown_predecessor(self) -> None:
        graph = Graph("g")
        graph.add_node("a", noop, predecessors=["ghost"])
        with pytest.raises(UnknownPredecessorError) as exc_info:
            graph.finalize()
        assert exc_info.value.predecessor == "ghost"
        assert not graph.finalized

    def test_three_node_cycle_reports_path(self) -> None:
        graph = Graph("g")
        graph.add_node("a", noop, predecessors=["c"])
        graph.add_node("b", noop, predecessors=["a"])
        graph.add_node("c", noop, predecessors=["b"])

        with pytest.raises(CycleError) as exc_info:
            graph.finalize()

        assert exc_info.value.path == ("a", "b", "c", "a")
        assert not graph.finalized
        assert graph.edges() == []

    def test_self_dependency_is_a_cycle(self) -> None:
        graph = Graph("g")
        graph.add_node("a", noop, predecessors=["a"])
        with pytest.raises(CycleError) as exc_info:
            graph.finalize()
        assert exc_info.value.path == ("a", "a")

    def test_cycle_behind_acyclic_prefix(self) -> None:
        graph = Graph("g")
        graph.add_node("root", noop)
        graph.add_node("x", noop, predecessors=["root", "y"])
        graph.add_node("y", noop, predecessors=["x"])

        with pytest.raises(CycleError) as exc_info:
            graph.finalize()
        path = exc_info.value.path
        assert path[0] == path[-1]
        assert set(path) == {"x", "y"}

    def test_successors_filled_in(self) -> None:
        graph = Graph("g")
        graph.add_node("a", noop)
        graph.add_node("b", noop, predecessors=["a"])
        graph.add_node("c", noop, predecessors=["a"])
        graph.finalize()

        assert graph.node("a").successors == ("b", "c")
        assert graph.node("b").predecessors == ("a",)
        assert graph.edge_count == 2

    def test_finalize_is_idempotent(self) -> None:
        graph = Graph("g")
        graph.add_node("a", noop)
        graph.finalize()
        graph.finalize()
        assert graph.finalized

    def test_finalized_graph_rejects_new_nodes(self) -> None:
        graph = Graph("g")
        graph.add_node("a", noop)
        graph.finalize()
        with pytest.raises(GraphFinalizedError):
            graph.add_node("b", noop)


class TestGraphAccessors:
    """Node enumeration and lookups."""

    def test_nodes_in_insertion_order_and_restartable(self) -> None:
        graph = Graph("g")
        for nid in ("z", "a", "m"):
            graph.add_node(nid, noop)
        graph.finalize()

        view = graph.nodes()
        assert list(view) == ["z", "a", "m"]
        assert list(view) == ["z", "a", "m"]

    def test_node_lookup_unknown_raises_key_error(self) -> None:
        graph = Graph("g")
        with pytest.raises(KeyError, match="no node 'missing'"):
            graph.node("missing")
        assert not graph.has_node("missing")

    def test_nx_graph_is_frozen_copy(self) -> None:
        graph = Graph("g")
        graph.add_node("a", noop)
        graph.add_node("b", noop, predecessors=["a"])
        graph.finalize()

        nx_graph = graph.get_nx_graph()
        assert nx.is_frozen(nx_graph)
        assert list(nx_graph.edges()) == [("a", "b")]
        with pytest.raises(nx.NetworkXError):
            nx_graph.add_edge("b", "a")
