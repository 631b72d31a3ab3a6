"""
In-process notification sink for committed execution events.

The event bus is the notification sink of the workflow engine: the
coordinator publishes committed events to it and it routes them to the
handlers registered for the event type or any of its base classes.
"""

from collections import defaultdict
from collections.abc import Callable

from ...core.observability import NOTIFICATION_FAILURES, get_logger
from ...domain.execution.repositories.collaborators import NotificationSink
from ...domain.shared.base import DomainEvent

logger = get_logger(__name__)

EventHandler = Callable[[DomainEvent], None]


class InMemoryEventBus(NotificationSink):
    """
    Synchronous in-memory event bus.

    Handlers run synchronously in subscription order. A failing handler is
    logged and counted; the remaining handlers still run and the failure
    never reaches the publisher.
    """

    def __init__(self, max_history_size: int = 1000):
        self._handlers: dict[type[DomainEvent], list[EventHandler]] = defaultdict(list)
        self._event_history: list[DomainEvent] = []
        self._max_history_size = max_history_size

    def publish(self, event: DomainEvent) -> None:
        """
        Deliver a committed event to every handler registered for its type.

        Args:
            event: Committed execution event
        """
        self._add_to_history(event)

        handlers = self._handlers_for(type(event))
        if not handlers:
            logger.debug("No handlers registered for event", event_type=event.event_type)
            return

        logger.info(
            "Publishing event",
            event_type=event.event_type,
            aggregate_key=event.aggregate_key,
            handlers=len(handlers),
        )

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                NOTIFICATION_FAILURES.labels(event_type=event.event_type).inc()
                logger.error(
                    "Error handling event",
                    event_type=event.event_type,
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(e),
                )
                # Remaining handlers still run

    def subscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> None:
        """
        Subscribe a handler to an event type and its subclasses.

        Args:
            event_type: Event class; subclasses are delivered too
            handler: Callable receiving the event
        """
        if handler not in self._handlers[event_type]:
            self._handlers[event_type].append(handler)
            logger.debug("Subscribed handler", event_type=event_type.__name__)

    def unsubscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> None:
        if handler in self._handlers.get(event_type, []):
            self._handlers[event_type].remove(handler)

    def clear_handlers(self, event_type: type[DomainEvent] | None = None) -> None:
        if event_type is None:
            self._handlers.clear()
        else:
            self._handlers.pop(event_type, None)

    def get_event_history(
        self, event_type: type[DomainEvent] | None = None, limit: int | None = None
    ) -> list[DomainEvent]:
        """
        Get published events, optionally filtered by type.

        Args:
            event_type: Only return events of this type (or its subclasses)
            limit: Only return the most recent ``limit`` events
        """
        events = self._event_history
        if event_type is not None:
            events = [event for event in events if isinstance(event, event_type)]
        if limit is not None:
            events = events[-limit:]
        return list(events)

    def clear_history(self) -> None:
        self._event_history.clear()

    def _handlers_for(self, event_type: type) -> list[EventHandler]:
        handlers: list[EventHandler] = []
        for klass in event_type.__mro__:
            for handler in self._handlers.get(klass, []):
                if handler not in handlers:
                    handlers.append(handler)
        return handlers

    def _add_to_history(self, event: DomainEvent) -> None:
        self._event_history.append(event)
        if len(self._event_history) > self._max_history_size:
            self._event_history = self._event_history[-self._max_history_size :]
