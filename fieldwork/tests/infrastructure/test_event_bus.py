"""
Tests for the in-memory event bus.
"""

from fieldwork.domain.execution.events import OperationCompleted, SheetCompleted
from fieldwork.domain.shared.base import DomainEvent, utcnow
from fieldwork.infrastructure.events.event_bus import InMemoryEventBus


def sheet_completed() -> SheetCompleted:
    return SheetCompleted(aggregate_key="sheet/1", worksheet_id=1, completed_at=utcnow())


def operation_completed() -> OperationCompleted:
    return OperationCompleted(
        aggregate_key="sheet/1/op/A", worksheet_id=1, operation_code="A", completed_at=utcnow()
    )


class TestInMemoryEventBus:
    """Test event routing."""

    def test_handlers_receive_their_type(self):
        bus = InMemoryEventBus()
        received = []
        bus.subscribe(SheetCompleted, received.append)

        bus.publish(sheet_completed())
        bus.publish(operation_completed())

        assert [type(e) for e in received] == [SheetCompleted]

    def test_base_class_subscription_receives_everything(self):
        bus = InMemoryEventBus()
        received = []
        bus.subscribe(DomainEvent, received.append)

        bus.publish(sheet_completed())
        bus.publish(operation_completed())

        assert len(received) == 2

    def test_handler_registered_twice_runs_once(self):
        bus = InMemoryEventBus()
        received = []
        bus.subscribe(SheetCompleted, received.append)
        bus.subscribe(SheetCompleted, received.append)
        bus.subscribe(DomainEvent, received.append)

        bus.publish(sheet_completed())

        assert len(received) == 1

    def test_failing_handler_does_not_stop_others(self):
        bus = InMemoryEventBus()
        received = []

        def failing(event):
            raise ValueError("handler bug")

        bus.subscribe(SheetCompleted, failing)
        bus.subscribe(SheetCompleted, received.append)

        bus.publish(sheet_completed())

        assert len(received) == 1

    def test_unsubscribe(self):
        bus = InMemoryEventBus()
        received = []
        bus.subscribe(SheetCompleted, received.append)
        bus.unsubscribe(SheetCompleted, received.append)

        bus.publish(sheet_completed())

        assert received == []

    def test_history_filters_and_limits(self):
        bus = InMemoryEventBus(max_history_size=3)
        for _ in range(2):
            bus.publish(sheet_completed())
        for _ in range(2):
            bus.publish(operation_completed())

        assert len(bus.get_event_history()) == 3
        assert len(bus.get_event_history(SheetCompleted)) == 1
        assert len(bus.get_event_history(limit=1)) == 1

        bus.clear_history()
        assert bus.get_event_history() == []

    def test_events_have_identity_and_type(self):
        first, second = sheet_completed(), sheet_completed()

        assert first.event_id != second.event_id
        assert first.event_type == "SheetCompleted"
