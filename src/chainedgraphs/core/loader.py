"""Build graphs and links from a validated chain definition.

Action names are resolved through the plugin manager; everything
structural (predecessors, link endpoints, cycles) is validated by the
core types themselves.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from chainedgraphs.core.graph import Graph
from chainedgraphs.core.links import ChainLinkTable
from chainedgraphs.core.resolver import ChainResolver

if TYPE_CHECKING:
    from chainedgraphs.core.config import ChainSettings, GraphSettings
    from chainedgraphs.plugins.manager import PluginManager


def build_graph(settings: GraphSettings, plugin_manager: PluginManager) -> Graph:
    """Create one graph with an action instance per node.

    Raises:
        UnknownActionError: If a node names an unregistered action
        PluginConfigError: If a node's options are invalid for its action
    """
    graph = Graph(settings.id)
    for node in settings.nodes:
        action = plugin_manager.create_action(node.action, node.options)
        graph.add_node(node.id, action, predecessors=node.after)
    return graph


def build_chain(settings: ChainSettings, plugin_manager: PluginManager) -> tuple[ChainResolver, ChainLinkTable]:
    """Create the resolver (with every graph registered) and the link table.

    Raises:
        UnknownActionError / PluginConfigError: From building graphs
        UnknownNodeError / SelfLinkError: From adding links
    """
    resolver = ChainResolver(build_graph(g, plugin_manager) for g in settings.graphs)
    links = resolver.link_table()
    for link in settings.links:
        links.add_link(link.source_ref, link.target_ref)
    return resolver, links
