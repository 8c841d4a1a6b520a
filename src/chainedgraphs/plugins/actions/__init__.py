"""Built-in action plugins."""

from chainedgraphs.plugins.actions.arithmetic import Multiply, Sum
from chainedgraphs.plugins.actions.basic import Constant, Fail, Passthrough, Sleep, collect_outputs
from chainedgraphs.plugins.base import BaseAction
from chainedgraphs.plugins.hookspecs import hookimpl

BUILTIN_ACTIONS: tuple[type[BaseAction], ...] = (Constant, Fail, Multiply, Passthrough, Sleep, Sum)


class BuiltinActions:
    """Hook implementer registering the built-in actions."""

    @hookimpl
    def chainedgraphs_get_actions(self) -> list[type[BaseAction]]:
        return list(BUILTIN_ACTIONS)


__all__ = [
    "BUILTIN_ACTIONS",
    "BuiltinActions",
    "Constant",
    "Fail",
    "Multiply",
    "Passthrough",
    "Sleep",
    "Sum",
    "collect_outputs",
]
