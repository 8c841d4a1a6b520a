"""pluggy hook specifications for action plugins.

Plugins implement these hooks to make node actions available to YAML
chain definitions. The plugin manager calls these hooks during discovery.

Usage (implementing a plugin):
    from chainedgraphs.plugins.hookspecs import hookimpl

    class MyPlugin:
        @hookimpl  # NOT @hookspec - that's for defining specs
        def chainedgraphs_get_actions(self):
            return [MyAction]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from chainedgraphs.plugins.base import BaseAction

# Project name for pluggy
PROJECT_NAME = "chainedgraphs"

# Hook specification marker
hookspec = pluggy.HookspecMarker(PROJECT_NAME)

# Hook implementation marker (for plugins to use)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class ChainedGraphsActionSpec:
    """Hook specifications for action plugins."""

    @hookspec
    def chainedgraphs_get_actions(self) -> list[type["BaseAction"]]:  # type: ignore[empty-body]
        """Return action plugin classes.

        Returns:
            List of BaseAction subclasses (not instances)
        """
