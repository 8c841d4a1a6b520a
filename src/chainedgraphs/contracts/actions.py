"""Node action capability.

A node body is opaque to the engine: anything that can be executed with the
results of its direct dependencies and returns an output (or raises).
Callers may pass an object implementing NodeAction or a plain callable of
the same shape.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias, runtime_checkable

if TYPE_CHECKING:
    from chainedgraphs.contracts.results import NodeResult
    from chainedgraphs.contracts.types import NodeRef

ActionInputs: TypeAlias = Mapping["NodeRef", "NodeResult"]
ActionCallable: TypeAlias = Callable[[ActionInputs], Any]


@runtime_checkable
class NodeAction(Protocol):
    """Single-method capability run by the executor for each node.

    execute() receives the NodeResults of the node's direct dependencies
    (intra- and cross-graph), keyed by NodeRef, and returns the node's
    output. Raising marks the node as failed.

    execute() is called from executor worker threads and may block.
    """

    def execute(self, inputs: ActionInputs) -> Any: ...


class CallableAction:
    """Adapts a plain callable to NodeAction."""

    __slots__ = ("_fn",)

    def __init__(self, fn: ActionCallable) -> None:
        self._fn = fn

    def execute(self, inputs: ActionInputs) -> Any:
        return self._fn(inputs)

    def __repr__(self) -> str:
        name = getattr(self._fn, "__qualname__", repr(self._fn))
        return f"CallableAction({name})"


def as_action(action: NodeAction | ActionCallable) -> NodeAction:
    """Normalize an action argument to NodeAction.

    Raises:
        TypeError: If action is neither a NodeAction nor callable.
    """
    if isinstance(action, NodeAction):
        return action
    if callable(action):
        return CallableAction(action)
    raise TypeError(f"Node action must implement execute(inputs) or be callable, got {type(action).__name__}")
