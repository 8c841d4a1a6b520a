"""Chain links: declared cross-graph dependency edges.

A link (source, target) means the target node depends on completion of the
source node. Links always cross graphs. The table validates endpoints
against the graphs known to its lookup but performs no cycle checking;
cycles spanning several graphs are detected by the resolver, which sees the
merged structure.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Protocol

from chainedgraphs.contracts.errors import SelfLinkError, UnknownNodeError
from chainedgraphs.contracts.types import NodeRef


class NodeLookup(Protocol):
    """Anything that can tell whether a node is registered (normally ChainResolver)."""

    def has_node(self, ref: NodeRef) -> bool: ...


@dataclass(frozen=True, slots=True, order=True)
class ChainLink:
    """Target depends on completion of source."""

    source: NodeRef
    target: NodeRef

    def __str__(self) -> str:
        return f"{self.source} -> {self.target}"


def validate_link(source: NodeRef, target: NodeRef, lookup: NodeLookup) -> None:
    """Check a link against the registered graphs.

    Raises:
        SelfLinkError: If the link does not cross graphs
        UnknownNodeError: If either endpoint is not registered
    """
    if source.graph_id == target.graph_id:
        raise SelfLinkError(source, target)
    for ref in (source, target):
        if not lookup.has_node(ref):
            raise UnknownNodeError(ref)


class ChainLinkTable:
    """Set of chain links validated against a node lookup.

    Duplicate links collapse. Iteration is sorted so that anything derived
    from the table is reproducible, but link order carries no meaning.

    Example:
        links = ChainLinkTable(resolver)
        links.add_link("ingest.parse", "report.render")
    """

    def __init__(self, lookup: NodeLookup) -> None:
        self._lookup = lookup
        self._links: set[ChainLink] = set()

    def __len__(self) -> int:
        return len(self._links)

    def __contains__(self, link: object) -> bool:
        return link in self._links

    def __iter__(self) -> Iterator[ChainLink]:
        return iter(sorted(self._links))

    def __repr__(self) -> str:
        return f"ChainLinkTable(links={len(self._links)})"

    def add_link(self, source: NodeRef | str, target: NodeRef | str) -> ChainLink:
        """Declare that target depends on source.

        The table is unchanged if validation fails.

        Args:
            source: Node that must complete first (NodeRef or 'graph.node')
            target: Node that depends on source (NodeRef or 'graph.node')

        Returns:
            The link (the existing one if it was already declared).

        Raises:
            SelfLinkError: If source == target or both lie in the same graph
            UnknownNodeError: If either endpoint is not registered
        """
        src = NodeRef.coerce(source)
        tgt = NodeRef.coerce(target)
        validate_link(src, tgt, self._lookup)
        link = ChainLink(src, tgt)
        self._links.add(link)
        return link

    def links(self) -> list[ChainLink]:
        """All links, sorted by (source, target)."""
        return sorted(self._links)
