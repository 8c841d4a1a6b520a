# tests/unit/core/test_links.py
"""Tests for the chain link table."""

from __future__ import annotations

import pytest

from chainedgraphs.contracts.errors import SelfLinkError, UnknownNodeError
from chainedgraphs.contracts.types import NodeRef
from chainedgraphs.core.graph import Graph
from chainedgraphs.core.links import ChainLink, ChainLinkTable
from chainedgraphs.core.resolver import ChainResolver


@pytest.fixture
def resolver() -> ChainResolver:
    g1 = Graph("g1")
    g1.add_node("a", lambda inputs: 1)
    g1.add_node("b", lambda inputs: 2, predecessors=["a"])
    g2 = Graph("g2")
    g2.add_node("x", lambda inputs: 3)
    return ChainResolver([g1, g2])


class TestAddLink:
    def test_add_link_with_refs(self, resolver: ChainResolver) -> None:
        table = ChainLinkTable(resolver)
        link = table.add_link(NodeRef("g1", "b"), NodeRef("g2", "x"))

        assert link == ChainLink(NodeRef("g1", "b"), NodeRef("g2", "x"))
        assert link in table
        assert len(table) == 1
        assert str(link) == "g1.b -> g2.x"

    def test_add_link_with_strings(self, resolver: ChainResolver) -> None:
        table = resolver.link_table()
        link = table.add_link("g1.b", "g2.x")
        assert link.source == NodeRef("g1", "b")
        assert link.target == NodeRef("g2", "x")

    def test_duplicate_links_collapse(self, resolver: ChainResolver) -> None:
        table = resolver.link_table()
        table.add_link("g1.b", "g2.x")
        table.add_link("g1.b", "g2.x")
        assert len(table) == 1

    def test_link_to_itself_rejected(self, resolver: ChainResolver) -> None:
        table = resolver.link_table()
        with pytest.raises(SelfLinkError, match="itself"):
            table.add_link("g1.a", "g1.a")
        assert len(table) == 0

    def test_link_within_one_graph_rejected(self, resolver: ChainResolver) -> None:
        table = resolver.link_table()
        with pytest.raises(SelfLinkError):
            table.add_link("g1.a", "g1.b")
        assert len(table) == 0

    @pytest.mark.parametrize(
        ("source", "target", "unknown"),
        [
            ("g1.ghost", "g2.x", "g1.ghost"),
            ("g1.a", "g2.ghost", "g2.ghost"),
            ("nope.a", "g2.x", "nope.a"),
        ],
    )
    def test_unknown_endpoint_leaves_table_unchanged(self, resolver: ChainResolver, source: str, target: str, unknown: str) -> None:
        table = resolver.link_table()
        table.add_link("g1.b", "g2.x")

        with pytest.raises(UnknownNodeError) as exc_info:
            table.add_link(source, target)

        assert exc_info.value.ref == NodeRef.parse(unknown)
        assert table.links() == [ChainLink(NodeRef("g1", "b"), NodeRef("g2", "x"))]

    def test_malformed_ref_rejected(self, resolver: ChainResolver) -> None:
        table = resolver.link_table()
        with pytest.raises(ValueError, match="graph.node"):
            table.add_link("g1", "g2.x")


class TestIteration:
    def test_links_are_sorted(self, resolver: ChainResolver) -> None:
        table = resolver.link_table()
        table.add_link("g2.x", "g1.b")
        table.add_link("g1.a", "g2.x")
        table.add_link("g1.b", "g2.x")

        expected = [
            ChainLink(NodeRef("g1", "a"), NodeRef("g2", "x")),
            ChainLink(NodeRef("g1", "b"), NodeRef("g2", "x")),
            ChainLink(NodeRef("g2", "x"), NodeRef("g1", "b")),
        ]
        assert table.links() == expected
        assert list(table) == expected

    def test_no_cycle_check_at_insert(self, resolver: ChainResolver) -> None:
        """Opposite links are accepted here; the resolver reports the cycle."""
        table = resolver.link_table()
        table.add_link("g1.b", "g2.x")
        table.add_link("g2.x", "g1.b")
        assert len(table) == 2
