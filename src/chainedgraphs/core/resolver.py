"""Chain resolver: merges registered graphs and chain links into one plan.

Algorithm:
    1. Finalize every graph (each is checked for cycles on its own).
    2. Re-validate every link against the registered graphs.
    3. Build one NetworkX DiGraph over NodeRefs whose edges are the union
       of intra-graph edges and chain links.
    4. Level-by-level (Kahn-style) topological sort: all zero in-degree
       vertices form the next level, sorted by (graph_id, node_id); their
       successors' in-degrees are decremented; repeat.
    5. Vertices left with positive in-degree lie on or behind a cycle,
       which is extracted by walking unresolved predecessor edges.

Each node lands in the earliest level its dependencies allow.
"""

from __future__ import annotations

from collections.abc import Iterable

import networkx as nx
from networkx import DiGraph

from chainedgraphs.contracts.errors import CycleError, DuplicateGraphError
from chainedgraphs.contracts.types import GraphID, NodeRef
from chainedgraphs.core.graph import Graph, Node
from chainedgraphs.core.links import ChainLink, ChainLinkTable, validate_link
from chainedgraphs.core.logging import get_logger
from chainedgraphs.core.plan import ExecutionPlan

logger = get_logger(__name__)


class ChainResolver:
    """Registry of the graphs in a chain and builder of execution plans.

    Holds no per-run state: resolve() can be called any number of times
    (also concurrently) and returns equal plans for equal input.

    Example:
        resolver = ChainResolver([ingest, report])
        links = resolver.link_table()
        links.add_link("ingest.parse", "report.render")
        plan = resolver.resolve(links)
    """

    def __init__(self, graphs: Iterable[Graph] = ()) -> None:
        self._graphs: dict[GraphID, Graph] = {}
        for graph in graphs:
            self.register(graph)

    def __repr__(self) -> str:
        return f"ChainResolver(graphs={sorted(self._graphs)})"

    def register(self, graph: Graph) -> None:
        """Register a graph with the chain.

        Raises:
            DuplicateGraphError: If a graph with the same ID is registered
        """
        if graph.graph_id in self._graphs:
            raise DuplicateGraphError(graph.graph_id)
        self._graphs[graph.graph_id] = graph

    def graphs(self) -> list[Graph]:
        """Registered graphs sorted by GraphID."""
        return [self._graphs[gid] for gid in sorted(self._graphs)]

    def graph(self, graph_id: str) -> Graph:
        return self._graphs[GraphID(graph_id)]

    def has_node(self, ref: NodeRef) -> bool:
        """True if ref names a node in a registered graph."""
        graph = self._graphs.get(ref.graph_id)
        return graph is not None and graph.has_node(ref.node_id)

    def link_table(self) -> ChainLinkTable:
        """Create an empty link table validated against this resolver."""
        return ChainLinkTable(self)

    def resolve(self, links: ChainLinkTable | None = None) -> ExecutionPlan:
        """Merge all registered graphs and links into an ExecutionPlan.

        Args:
            links: Cross-graph links (None for independent graphs)

        Returns:
            The execution plan. Never partial.

        Raises:
            UnknownPredecessorError: From finalizing a graph
            CycleError: If a graph or the merged chain contains a cycle
            UnknownNodeError: If a link names a node no registered graph has
            SelfLinkError: If a link does not cross graphs
        """
        for graph in self.graphs():
            graph.finalize()

        chain_links = links.links() if links is not None else []
        for link in chain_links:
            validate_link(link.source, link.target, self)

        merged, nodes = self._build_merged_graph(chain_links)
        levels = self._level_sort(merged)
        dependencies = {ref: tuple(sorted(merged.predecessors(ref))) for ref in nodes}

        plan = ExecutionPlan(levels=levels, dependencies=dependencies, nodes=nodes)
        logger.debug(
            "chain_resolved",
            graphs=len(self._graphs),
            links=len(chain_links),
            nodes=plan.node_count,
            levels=plan.level_count,
        )
        return plan

    def _build_merged_graph(self, links: list[ChainLink]) -> tuple[DiGraph[NodeRef], dict[NodeRef, Node]]:
        merged: DiGraph[NodeRef] = nx.DiGraph()
        nodes: dict[NodeRef, Node] = {}
        for graph in self.graphs():
            for node_id in graph.nodes():
                node = graph.node(node_id)
                nodes[node.ref] = node
                merged.add_node(node.ref)
            for pred, succ in graph.edges():
                merged.add_edge(NodeRef(graph.graph_id, pred), NodeRef(graph.graph_id, succ))
        for link in links:
            merged.add_edge(link.source, link.target)
        return merged, nodes

    @staticmethod
    def _level_sort(merged: DiGraph[NodeRef]) -> tuple[tuple[NodeRef, ...], ...]:
        in_degree: dict[NodeRef, int] = {ref: deg for ref, deg in merged.in_degree()}
        current = sorted(ref for ref, deg in in_degree.items() if deg == 0)
        levels: list[tuple[NodeRef, ...]] = []
        placed = 0

        while current:
            levels.append(tuple(current))
            placed += len(current)
            ready: list[NodeRef] = []
            for ref in current:
                for succ in merged.successors(ref):
                    in_degree[succ] -= 1
                    if in_degree[succ] == 0:
                        ready.append(succ)
            current = sorted(ready)

        if placed != len(in_degree):
            remaining = {ref for ref, deg in in_degree.items() if deg > 0}
            raise CycleError(_extract_cycle(merged, remaining))
        return tuple(levels)


def _extract_cycle(merged: DiGraph[NodeRef], remaining: set[NodeRef]) -> list[NodeRef]:
    """Find one cycle among vertices the level sort could not place.

    Every remaining vertex has at least one remaining predecessor, so
    walking backwards along remaining predecessors must revisit a vertex.
    The smallest candidate is always taken to keep the report stable.

    Returns:
        The cycle in dependency order with its first node repeated at the end.
    """
    walk: list[NodeRef] = [min(remaining)]
    seen: dict[NodeRef, int] = {walk[0]: 0}
    while True:
        pred = min(p for p in merged.predecessors(walk[-1]) if p in remaining)
        if pred in seen:
            backwards = walk[seen[pred] :]
            cycle = list(reversed(backwards))
            return [*cycle, cycle[0]]
        seen[pred] = len(walk)
        walk.append(pred)
