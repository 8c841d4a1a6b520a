# src/chainedgraphs/core/__init__.py
"""Core infrastructure: graphs, chain links, resolution, configuration, events, logging."""

from chainedgraphs.core.config import (
    ChainSettings,
    ExecutorSettings,
    GraphSettings,
    LinkSettings,
    NodeSettings,
    load_settings,
)
from chainedgraphs.core.events import (
    EventBus,
    EventBusProtocol,
    NullEventBus,
)
from chainedgraphs.core.graph import Graph, Node
from chainedgraphs.core.links import ChainLink, ChainLinkTable, NodeLookup, validate_link
from chainedgraphs.core.loader import build_chain, build_graph
from chainedgraphs.core.logging import configure_logging, get_logger
from chainedgraphs.core.plan import ExecutionPlan
from chainedgraphs.core.resolver import ChainResolver

__all__ = [
    "ChainLink",
    "ChainLinkTable",
    "ChainResolver",
    "ChainSettings",
    "EventBus",
    "EventBusProtocol",
    "ExecutionPlan",
    "ExecutorSettings",
    "Graph",
    "GraphSettings",
    "LinkSettings",
    "Node",
    "NodeLookup",
    "NodeSettings",
    "NullEventBus",
    "build_chain",
    "build_graph",
    "configure_logging",
    "get_logger",
    "load_settings",
    "validate_link",
]
