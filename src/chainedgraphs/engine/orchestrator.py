"""ChainApp: resolve a chain and run it as one unit.

This is the entry the process wrapper (cli.py) calls: run() either returns
a successful RunOutcome or raises. Construction and resolution errors abort
before any node executes; node failures and cancellation surface through
RunOutcome.raise_for_status().
"""

from __future__ import annotations

import signal
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from chainedgraphs.contracts.results import RunOutcome
from chainedgraphs.contracts.types import NodeRef
from chainedgraphs.core.config import ChainSettings, ExecutorSettings
from chainedgraphs.core.events import EventBusProtocol, NullEventBus
from chainedgraphs.core.graph import Graph
from chainedgraphs.core.links import ChainLinkTable
from chainedgraphs.core.loader import build_chain
from chainedgraphs.core.logging import get_logger
from chainedgraphs.core.plan import ExecutionPlan
from chainedgraphs.core.resolver import ChainResolver
from chainedgraphs.engine.executor import ActionInvoker, ChainExecutor

if TYPE_CHECKING:
    from chainedgraphs.plugins.manager import PluginManager

logger = get_logger(__name__)


class ChainApp:
    """A resolved-on-demand chain plus the executor that runs it.

    Holds no process-wide state; several apps may run in one process,
    also concurrently.

    Example:
        app = ChainApp.from_settings(load_settings(path), event_bus=bus)
        outcome = app.run()
    """

    def __init__(
        self,
        resolver: ChainResolver,
        links: ChainLinkTable | None = None,
        *,
        executor_settings: ExecutorSettings | None = None,
        event_bus: EventBusProtocol | None = None,
        verbose: bool = False,
    ) -> None:
        self._resolver = resolver
        self._links = links if links is not None else resolver.link_table()
        self._event_bus: EventBusProtocol = event_bus or NullEventBus()
        self._executor = ChainExecutor(executor_settings, event_bus=self._event_bus)
        self._verbose = verbose

    @classmethod
    def from_settings(
        cls,
        settings: ChainSettings,
        *,
        plugin_manager: PluginManager | None = None,
        event_bus: EventBusProtocol | None = None,
        verbose: bool = False,
    ) -> ChainApp:
        """Build an app from a YAML chain definition.

        Raises:
            UnknownActionError / PluginConfigError: For bad node actions
            UnknownNodeError / SelfLinkError: For bad links
        """
        if plugin_manager is None:
            from chainedgraphs.plugins.manager import PluginManager

            plugin_manager = PluginManager()
            plugin_manager.register_builtin_plugins()

        resolver, links = build_chain(settings, plugin_manager)
        return cls(
            resolver,
            links,
            executor_settings=settings.executor,
            event_bus=event_bus,
            verbose=verbose,
        )

    @classmethod
    def from_graphs(
        cls,
        graphs: Iterable[Graph],
        links: Iterable[tuple[NodeRef | str, NodeRef | str]] = (),
        *,
        executor_settings: ExecutorSettings | None = None,
        event_bus: EventBusProtocol | None = None,
        verbose: bool = False,
    ) -> ChainApp:
        """Build an app from in-process graphs and (source, target) link pairs.

        Raises:
            DuplicateGraphError: If two graphs share an ID
            UnknownNodeError / SelfLinkError: For bad links
        """
        resolver = ChainResolver(graphs)
        table = resolver.link_table()
        for source, target in links:
            table.add_link(source, target)
        return cls(resolver, table, executor_settings=executor_settings, event_bus=event_bus, verbose=verbose)

    @property
    def resolver(self) -> ChainResolver:
        return self._resolver

    @property
    def links(self) -> ChainLinkTable:
        return self._links

    @property
    def executor(self) -> ChainExecutor:
        return self._executor

    def plan(self) -> ExecutionPlan:
        """Resolve the chain.

        Raises:
            ChainValidationError: For any construction/resolution error
        """
        plan = self._resolver.resolve(self._links)
        if self._verbose:
            for index, level in enumerate(plan.levels):
                logger.info("plan_level", level=index, nodes=[str(ref) for ref in level])
        return plan

    def run(
        self,
        *,
        plan: ExecutionPlan | None = None,
        invoke: ActionInvoker | None = None,
        cancellation: threading.Event | None = None,
        install_signal_handlers: bool = False,
    ) -> RunOutcome:
        """Resolve and execute the chain.

        Args:
            plan: Plan from an earlier plan() call (resolved here if None)
            invoke: Optional action invoker passed to the executor
            cancellation: Event that cancels the run once set
            install_signal_handlers: Turn SIGINT/SIGTERM into cancellation
                (main thread only; ignored when cancellation is given)

        Returns:
            The successful RunOutcome.

        Raises:
            ChainValidationError: Before execution, for malformed input
            RunFailedError: If any node failed
            CancelledError: If the run was cancelled
        """
        if plan is None:
            plan = self.plan()
        if cancellation is not None or not install_signal_handlers:
            outcome = self._executor.run(plan, invoke, cancellation=cancellation)
        else:
            with _shutdown_handler_context() as shutdown_event:
                outcome = self._executor.run(plan, invoke, cancellation=shutdown_event)
        outcome.raise_for_status()
        return outcome


@contextmanager
def _shutdown_handler_context() -> Iterator[threading.Event]:
    """Install SIGINT/SIGTERM handlers that set a cancellation event.

    On first signal: sets the event and restores the default SIGINT
    handler (so a second Ctrl-C force-kills via KeyboardInterrupt).

    Outside the main thread signal registration is skipped; the event
    still works but is never set by OS signals.
    """
    shutdown_event = threading.Event()

    # signal.signal() can only be called from the main thread.
    if threading.current_thread() is not threading.main_thread():
        yield shutdown_event
        return

    original_sigint = signal.getsignal(signal.SIGINT)
    original_sigterm = signal.getsignal(signal.SIGTERM)

    def _handler(signum: int, frame: Any) -> None:
        logger.warning("cancellation_requested", signal=signal.Signals(signum).name)
        shutdown_event.set()
        signal.signal(signal.SIGINT, signal.default_int_handler)

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)
    try:
        yield shutdown_event
    finally:
        signal.signal(signal.SIGINT, original_sigint)
        signal.signal(signal.SIGTERM, original_sigterm)
