"""Domain event transport."""

from .event_bus import EventBus, EventHandler

__all__ = ["EventBus", "EventHandler"]
