# tests/conftest.py
"""Shared test fixtures and helpers.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Iterator
from typing import Any

import pytest
from hypothesis import Phase, Verbosity, settings

from chainedgraphs.contracts.enums import NodePhase
from chainedgraphs.contracts.events import NodeEvent, RunStarted, RunSummary
from chainedgraphs.contracts.types import NodeRef
from chainedgraphs.core.events import EventBus
from chainedgraphs.plugins.manager import PluginManager

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Event recording
# =============================================================================


class EventRecorder:
    """Subscribes to every report event type and keeps them in order.

    The executor serializes emission, but the list is still guarded so the
    recorder stays correct if a test drives several runs at once.
    """

    def __init__(self) -> None:
        self.bus = EventBus()
        self.events: list[Any] = []
        self._lock = threading.Lock()
        for event_type in (RunStarted, NodeEvent, RunSummary):
            self.bus.subscribe(event_type, self._record)

    def _record(self, event: Any) -> None:
        with self._lock:
            self.events.append(event)

    def node_events(self, phase: NodePhase | None = None) -> list[NodeEvent]:
        return [e for e in self.events if isinstance(e, NodeEvent) and (phase is None or e.phase is phase)]

    def phases_for(self, ref: NodeRef | str) -> list[NodePhase]:
        target = NodeRef.coerce(ref)
        return [e.phase for e in self.node_events() if e.node == target]

    def summary(self) -> RunSummary:
        summaries = [e for e in self.events if isinstance(e, RunSummary)]
        assert len(summaries) == 1
        return summaries[0]


@pytest.fixture
def recorder() -> EventRecorder:
    """Event bus with a recorder subscribed to all report events."""
    return EventRecorder()


@pytest.fixture
def plugin_manager() -> PluginManager:
    """Standard plugin manager with builtin actions registered.

    Lightweight: just registers plugin hooks, no I/O.
    """
    manager = PluginManager()
    manager.register_builtin_plugins()
    return manager


@pytest.fixture(autouse=True)
def _reset_root_handlers() -> Iterator[None]:
    """Drop handlers configure_logging() bound to a CliRunner's captured stderr."""
    root = logging.getLogger()
    saved = list(root.handlers)
    yield
    root.handlers = saved
