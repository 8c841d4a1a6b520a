"""ExecutionPlan: the resolver's read-only handoff to the executor."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from chainedgraphs.contracts.types import NodeRef
from chainedgraphs.core.graph import Node


@dataclass(frozen=True, slots=True)
class ExecutionPlan:
    """Ordered partition of every chain node into levels.

    Every node in level k depends only on nodes in levels < k, and nodes
    within one level have no dependency relation to each other, so a level
    can run concurrently. Levels are sorted by (graph_id, node_id).

    Plans compare equal when levels and dependencies match; the action
    objects are not part of equality.

    Attributes:
        levels: Node refs per level, in execution order
        dependencies: Direct dependencies (intra- and cross-graph) per node
        nodes: The Node behind each ref
    """

    levels: tuple[tuple[NodeRef, ...], ...]
    dependencies: Mapping[NodeRef, tuple[NodeRef, ...]]
    nodes: Mapping[NodeRef, Node] = field(compare=False, repr=False)
    _level_index: Mapping[NodeRef, int] = field(init=False, compare=False, repr=False)
    _dependents: Mapping[NodeRef, tuple[NodeRef, ...]] = field(init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        level_index = {ref: i for i, level in enumerate(self.levels) for ref in level}
        dependents: dict[NodeRef, list[NodeRef]] = {ref: [] for ref in level_index}
        for ref in level_index:
            for dep in self.dependencies[ref]:
                dependents[dep].append(ref)
        # Frozen dataclass: freeze the mappings and set derived fields via object.__setattr__
        object.__setattr__(self, "dependencies", MappingProxyType(dict(self.dependencies)))
        object.__setattr__(self, "nodes", MappingProxyType(dict(self.nodes)))
        object.__setattr__(self, "_level_index", MappingProxyType(level_index))
        object.__setattr__(self, "_dependents", MappingProxyType({ref: tuple(sorted(d)) for ref, d in dependents.items()}))

    def __iter__(self) -> Iterator[NodeRef]:
        """Node refs in plan order (level by level)."""
        for level in self.levels:
            yield from level

    def __len__(self) -> int:
        return len(self._level_index)

    def __contains__(self, ref: object) -> bool:
        return ref in self._level_index

    @property
    def node_count(self) -> int:
        return len(self._level_index)

    @property
    def level_count(self) -> int:
        return len(self.levels)

    def level_of(self, ref: NodeRef | str) -> int:
        """Index of the level holding ref.

        Raises:
            KeyError: If ref is not in the plan.
        """
        return self._level_index[NodeRef.coerce(ref)]

    def dependents(self, ref: NodeRef | str) -> tuple[NodeRef, ...]:
        """Nodes that directly depend on ref."""
        return self._dependents[NodeRef.coerce(ref)]

    def node(self, ref: NodeRef | str) -> Node:
        return self.nodes[NodeRef.coerce(ref)]
