"""Action plugins: named NodeAction implementations for chain definitions."""

from chainedgraphs.plugins.base import ActionConfig, ActionFailedError, BaseAction, PluginConfigError
from chainedgraphs.plugins.hookspecs import hookimpl
from chainedgraphs.plugins.manager import PluginManager, UnknownActionError

__all__ = [
    "ActionConfig",
    "ActionFailedError",
    "BaseAction",
    "PluginConfigError",
    "PluginManager",
    "UnknownActionError",
    "hookimpl",
]
