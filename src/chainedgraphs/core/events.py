"""Run Report sink: how the executor hands report events to consumers.

The executor is the only producer. It emits, per run:

    RunStarted
    NodeEvent(started) then NodeEvent(succeeded | failed | skipped), per node
    RunSummary

Every node gets exactly one started/terminal pair, and all terminal events
of plan level k are emitted before any event of level k+1. Within a level
with several workers the pairs of different nodes may interleave.

Emission happens under the run's lock, so handlers are never called
concurrently with each other, but they do run on worker threads and hold
up scheduling while they run. Sinks that print or aggregate are expected
to be quick; anything slow should queue and return.
"""

from collections.abc import Callable, Mapping
from typing import Any, Protocol, TypeVar

T = TypeVar("T")


class EventBusProtocol(Protocol):
    """What ChainExecutor and ChainApp need from a report sink.

    EventBus and NullEventBus both satisfy it structurally. A custom sink
    (e.g. one forwarding to a message queue) only has to implement these
    two methods.
    """

    def subscribe(self, event_type: type[T], handler: Callable[[T], None]) -> None:
        """Subscribe a handler to an event type."""
        ...

    def emit(self, event: T) -> None:
        """Emit an event to all subscribers."""
        ...


class EventBus:
    """Dispatches report events to handlers keyed by exact event type.

    Handlers run in subscription order. A handler exception propagates out
    of emit() into the executor and from there out of ChainExecutor.run(),
    so a broken sink aborts the run instead of losing events silently.
    Subscribing the same handler to RunStarted, NodeEvent and RunSummary
    records a full run (see subscribe_all).

    Example:
        bus = EventBus()
        bus.subscribe(NodeEvent, lambda e: print(e.node, e.phase))
        executor = ChainExecutor(settings, event_bus=bus)
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Callable[[Any], None]]] = {}

    def subscribe(self, event_type: type[T], handler: Callable[[T], None]) -> None:
        """Subscribe a handler to an event type.

        Args:
            event_type: The event class to subscribe to
            handler: Callable that receives the event instance
        """
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(handler)

    def subscribe_all(self, handlers: Mapping[type, Callable[..., None]]) -> None:
        """Subscribe a {event_type: handler} map, as built by cli_formatters."""
        for event_type, handler in handlers.items():
            self.subscribe(event_type, handler)

    def emit(self, event: T) -> None:
        """Emit an event to all subscribers.

        Events with no subscribers are ignored.
        """
        handlers = self._subscribers.get(type(event), [])
        for handler in handlers:
            handler(event)


class NullEventBus:
    """Sink used when a ChainExecutor or ChainApp is built without one.

    Events are dropped. Does NOT inherit from EventBus: subscribing here is
    a no-op, and inheritance would hide that from a caller expecting
    callbacks.
    """

    def subscribe(self, event_type: type[T], handler: Callable[[T], None]) -> None:
        """No-op subscription - handler will never be called."""
        pass

    def emit(self, event: T) -> None:
        """No-op emission - no handlers to call."""
        pass
