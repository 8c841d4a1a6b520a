# tests/property/test_resolver_properties.py
"""Property-based tests for chain resolution.

These tests verify the invariants of the execution plan over randomly
generated chains:
- Every dependency lies in a strictly earlier level
- Every node sits in the earliest level its dependencies allow
- Resolving twice gives equal plans
- Closing a link back on itself is always reported as a cycle

Chains are generated acyclic by construction: intra-graph predecessors
only point at earlier nodes, and links only run from a lower-numbered
graph to a higher-numbered one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pytest
from hypothesis import given
from hypothesis import strategies as st

from chainedgraphs.contracts.errors import CycleError
from chainedgraphs.contracts.types import NodeRef
from chainedgraphs.core.config import ExecutorSettings
from chainedgraphs.core.graph import Graph
from chainedgraphs.core.resolver import ChainResolver
from chainedgraphs.engine.orchestrator import ChainApp

# =============================================================================
# Strategies for generating acyclic chains
# =============================================================================


@dataclass(frozen=True)
class ChainShape:
    """Declarative description of a chain, rebuilt fresh for every resolve."""

    # graph_id -> [(node_id, [predecessor node_ids])]
    graphs: dict[str, list[tuple[str, list[str]]]]
    links: list[tuple[str, str]]

    def edges(self) -> set[tuple[NodeRef, NodeRef]]:
        result = {
            (NodeRef(gid, pred), NodeRef(gid, nid)) for gid, nodes in self.graphs.items() for nid, preds in nodes for pred in preds
        }
        result.update((NodeRef.coerce(src), NodeRef.coerce(tgt)) for src, tgt in self.links)
        return result

    def refs(self) -> list[NodeRef]:
        return [NodeRef(gid, nid) for gid, nodes in self.graphs.items() for nid, _ in nodes]

    def build(self, action: Any = None) -> tuple[ChainResolver, list[Graph]]:
        graphs = []
        for gid, nodes in self.graphs.items():
            graph = Graph(gid)
            for nid, preds in nodes:
                graph.add_node(nid, action or (lambda inputs: None), predecessors=preds)
            graphs.append(graph)
        return ChainResolver(graphs), graphs

    def resolve(self) -> Any:
        resolver, _ = self.build()
        table = resolver.link_table()
        for src, tgt in self.links:
            table.add_link(src, tgt)
        return resolver.resolve(table)


@st.composite
def acyclic_chains(draw: st.DrawFn, max_graphs: int = 4, max_nodes: int = 5) -> ChainShape:
    """Generate a chain of graphs that is acyclic by construction."""
    graph_count = draw(st.integers(min_value=1, max_value=max_graphs))
    graphs: dict[str, list[tuple[str, list[str]]]] = {}
    for g in range(graph_count):
        node_count = draw(st.integers(min_value=1, max_value=max_nodes))
        nodes: list[tuple[str, list[str]]] = []
        for n in range(node_count):
            earlier = [f"n{i}" for i in range(n)]
            preds = draw(st.lists(st.sampled_from(earlier), unique=True)) if earlier else []
            nodes.append((f"n{n}", preds))
        graphs[f"g{g}"] = nodes

    candidates = [
        (f"{src_g}.{src_n}", f"{tgt_g}.{tgt_n}")
        for src_g, src_nodes in graphs.items()
        for tgt_g, tgt_nodes in graphs.items()
        if src_g < tgt_g
        for src_n, _ in src_nodes
        for tgt_n, _ in tgt_nodes
    ]
    links = draw(st.lists(st.sampled_from(candidates), unique=True, max_size=8)) if candidates else []
    return ChainShape(graphs=graphs, links=links)


# =============================================================================
# Plan Property Tests
# =============================================================================


class TestPlanProperties:
    """Property tests for ChainResolver.resolve()."""

    @given(shape=acyclic_chains())
    def test_every_node_planned_once(self, shape: ChainShape) -> None:
        plan = shape.resolve()
        planned = list(plan)
        assert len(planned) == len(set(planned))
        assert set(planned) == set(shape.refs())

    @given(shape=acyclic_chains())
    def test_dependencies_lie_in_earlier_levels(self, shape: ChainShape) -> None:
        plan = shape.resolve()
        for src, tgt in shape.edges():
            assert plan.level_of(src) < plan.level_of(tgt)

    @given(shape=acyclic_chains())
    def test_levels_are_as_early_as_possible(self, shape: ChainShape) -> None:
        plan = shape.resolve()
        for ref in plan:
            level = plan.level_of(ref)
            deps = plan.dependencies[ref]
            if level == 0:
                assert deps == ()
            else:
                assert any(plan.level_of(dep) == level - 1 for dep in deps)

    @given(shape=acyclic_chains())
    def test_dependencies_match_declared_edges(self, shape: ChainShape) -> None:
        plan = shape.resolve()
        declared = shape.edges()
        assert {(dep, ref) for ref in plan for dep in plan.dependencies[ref]} == declared

    @given(shape=acyclic_chains())
    def test_levels_sorted(self, shape: ChainShape) -> None:
        plan = shape.resolve()
        for level in plan.levels:
            assert list(level) == sorted(level)

    @given(shape=acyclic_chains())
    def test_resolve_is_idempotent(self, shape: ChainShape) -> None:
        resolver, _ = shape.build()
        table = resolver.link_table()
        for src, tgt in shape.links:
            table.add_link(src, tgt)
        assert resolver.resolve(table) == resolver.resolve(table)


class TestCycleProperties:
    @given(shape=acyclic_chains(), data=st.data())
    def test_reverse_link_closes_cycle(self, shape: ChainShape, data: st.DataObject) -> None:
        if not shape.links:
            return
        src, tgt = data.draw(st.sampled_from(shape.links))
        resolver, _ = shape.build()
        table = resolver.link_table()
        for link in [*shape.links, (tgt, src)]:
            table.add_link(*link)

        with pytest.raises(CycleError) as exc_info:
            resolver.resolve(table)

        cycle = exc_info.value.path
        assert cycle[0] == cycle[-1]
        edges = shape.edges() | {(NodeRef.coerce(tgt), NodeRef.coerce(src))}
        for a, b in zip(cycle, cycle[1:], strict=False):
            assert (a, b) in edges


# =============================================================================
# Execution Property Tests
# =============================================================================


class TestExecutionProperties:
    @given(shape=acyclic_chains(), workers=st.integers(min_value=1, max_value=4))
    def test_outputs_match_sequential_evaluation(self, shape: ChainShape, workers: int) -> None:
        """Each node counts the paths reaching it; concurrency must not change that."""

        def count_paths(inputs: Any) -> int:
            return 1 + sum(result.output for result in inputs.values())

        _, graphs = shape.build(count_paths)
        app = ChainApp.from_graphs(graphs, links=shape.links, executor_settings=ExecutorSettings(max_workers=workers))
        outcome = app.run()

        plan = app.plan()
        expected: dict[NodeRef, int] = {}
        for ref in plan:
            expected[ref] = 1 + sum(expected[dep] for dep in plan.dependencies[ref])
        assert {ref: outcome.output(ref) for ref in plan} == expected
