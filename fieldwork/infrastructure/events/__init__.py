"""Event infrastructure."""

from .event_bus import InMemoryEventBus

__all__ = ["InMemoryEventBus"]
