"""Plugin manager for action discovery, registration, and instantiation.

Uses pluggy for hook-based plugin registration.
"""

from typing import Any

import pluggy

from chainedgraphs.contracts.errors import ChainGraphError
from chainedgraphs.plugins.base import BaseAction
from chainedgraphs.plugins.hookspecs import PROJECT_NAME, ChainedGraphsActionSpec


class UnknownActionError(ChainGraphError, LookupError):
    """A chain definition names an action no plugin registered."""

    def __init__(self, name: str, available: list[str]) -> None:
        self.name = name
        self.available = available
        super().__init__(f"Unknown action '{name}'. Available actions: {available}")


class PluginManager:
    """Manages action plugin discovery, registration, and lookup.

    Usage:
        manager = PluginManager()
        manager.register_builtin_plugins()
        action = manager.create_action("multiply", {"factor": 2})
    """

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(ChainedGraphsActionSpec)
        self._actions: dict[str, type[BaseAction]] = {}

    def register_builtin_plugins(self) -> None:
        """Register the built-in actions. Call once at startup."""
        from chainedgraphs.plugins.actions import BuiltinActions

        self.register(BuiltinActions())

    def load_entrypoints(self) -> int:
        """Register third-party plugins from the 'chainedgraphs' entry point group.

        Returns:
            Number of plugins loaded.
        """
        count = self._pm.load_setuptools_entrypoints(PROJECT_NAME)
        self._refresh_caches()
        return count

    def register(self, plugin: Any) -> None:
        """Register a plugin.

        Args:
            plugin: Plugin instance implementing hook methods
        """
        self._pm.register(plugin)
        try:
            self._refresh_caches()
        except ValueError:
            self._pm.unregister(plugin)
            raise

    def _refresh_caches(self) -> None:
        """Refresh the action cache from hooks.

        Raises:
            ValueError: If two plugins register the same action name
        """
        new_actions: dict[str, type[BaseAction]] = {}
        for actions in self._pm.hook.chainedgraphs_get_actions():
            for cls in actions:
                name = cls.name
                if name in new_actions:
                    raise ValueError(f"Duplicate action plugin name: '{name}'. Already registered by {new_actions[name].__name__}")
                new_actions[name] = cls
        self._actions = new_actions

    def get_actions(self) -> list[type[BaseAction]]:
        """All registered action classes, sorted by name."""
        return [self._actions[name] for name in sorted(self._actions)]

    def get_action_by_name(self, name: str) -> type[BaseAction] | None:
        return self._actions.get(name)

    def create_action(self, name: str, options: dict[str, Any] | None = None) -> BaseAction:
        """Instantiate an action by registered name.

        Raises:
            UnknownActionError: If no plugin registered the name
            PluginConfigError: If the options are invalid for the action
        """
        cls = self._actions.get(name)
        if cls is None:
            raise UnknownActionError(name, sorted(self._actions))
        return cls(options)
