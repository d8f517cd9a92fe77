"""
Event system for tensionchart.

Carries user-facing notices (moved, reordered, deleted, failed) from the
engine to whatever surface shows them, via listeners.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import click

from tensionchart.constants import get_error_notice_seconds, get_success_notice_seconds


class EventType(str, Enum):
    """Types of events in tensionchart."""
    ITEM_CREATED = "item.created"
    ITEM_UPDATED = "item.updated"
    ITEM_MOVED = "item.moved"
    ITEMS_REORDERED = "items.reordered"
    DELETE_SCHEDULED = "delete.scheduled"
    DELETE_UNDONE = "delete.undone"
    ITEM_DELETED = "item.deleted"
    MUTATION_FAILED = "mutation.failed"
    ALL_ACTIONS_COMPLETED = "tension.all_actions_completed"


@dataclass
class Event:
    """Base event class."""
    type: EventType
    timestamp: datetime = field(default_factory=datetime.now)
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ItemEvent(Event):
    """Event for item-related actions."""
    item_id: str = ""
    table: str = ""
    label: str = ""
    area_id: Optional[str] = None
    area_name: Optional[str] = None
    message: str = ""


class EventListener(ABC):
    """Base class for event listeners."""

    @abstractmethod
    def handle(self, event: Event) -> None:
        """Handle an event.

        Args:
            event: The event to handle.
        """
        pass

    @property
    @abstractmethod
    def subscribed_events(self) -> List[EventType]:
        """Return list of event types this listener subscribes to."""
        pass


class EventBus:
    """
    Central event bus for publishing and subscribing to events.

    Singleton pattern for global event access.
    """

    _instance: Optional['EventBus'] = None
    _listeners: Dict[EventType, List[EventListener]] = {}

    def __new__(cls) -> 'EventBus':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def subscribe(self, listener: EventListener) -> None:
        """Subscribe a listener to events.

        Args:
            listener: The listener to subscribe.
        """
        for event_type in listener.subscribed_events:
            if event_type not in self._listeners:
                self._listeners[event_type] = []
            if listener not in self._listeners[event_type]:
                self._listeners[event_type].append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        """Unsubscribe a listener from all events.

        Args:
            listener: The listener to unsubscribe.
        """
        for event_type in self._listeners:
            if listener in self._listeners[event_type]:
                self._listeners[event_type].remove(listener)

    def publish(self, event: Event) -> None:
        """Publish an event to all subscribed listeners.

        Args:
            event: The event to publish.
        """
        listeners = self._listeners.get(event.type, [])
        for listener in list(listeners):
            try:
                listener.handle(event)
            except Exception as e:
                # Report but don't stop other listeners
                click.echo(f"  ⚠ Listener {listener.__class__.__name__} failed: {e}", err=True)

    def clear(self) -> None:
        """Clear all listeners (useful for testing)."""
        self._listeners.clear()


class NotificationListener(EventListener):
    """
    Writes user-facing notices to the terminal.

    Successes go to stdout, failures to stderr. Durations are carried in the
    event data so richer surfaces can honour them.
    """

    def __init__(self, quiet: bool = False) -> None:
        self.quiet = quiet

    @property
    def subscribed_events(self) -> List[EventType]:
        return [
            EventType.ITEM_MOVED,
            EventType.DELETE_SCHEDULED,
            EventType.DELETE_UNDONE,
            EventType.ITEM_DELETED,
            EventType.MUTATION_FAILED,
            EventType.ALL_ACTIONS_COMPLETED,
        ]

    def handle(self, event: Event) -> None:
        if not isinstance(event, ItemEvent):
            return

        if event.type == EventType.MUTATION_FAILED:
            event.data.setdefault("duration", get_error_notice_seconds())
            click.echo(f"  ⚠ {event.message}", err=True)
            return

        if self.quiet:
            return

        event.data.setdefault("duration", get_success_notice_seconds())
        if event.type == EventType.ITEM_MOVED:
            click.echo(f"  ✓ Moved '{event.label}' to {event.area_name}")
        elif event.type == EventType.DELETE_SCHEDULED:
            click.echo(f"  ✓ Deleted '{event.label}' (undo available)")
        elif event.type == EventType.DELETE_UNDONE:
            click.echo(f"  ✓ Restored '{event.label}'")
        elif event.type == EventType.ITEM_DELETED:
            click.echo(f"  ✓ Removed '{event.label}' permanently")
        elif event.type == EventType.ALL_ACTIONS_COMPLETED:
            click.echo(f"  🎉 All actions of '{event.label}' are done. Is the tension resolved?")


# Convenience functions for global event bus access
def get_event_bus() -> EventBus:
    """Get the global event bus instance."""
    return EventBus()


def publish_event(event: Event) -> None:
    """Publish an event to the global event bus."""
    get_event_bus().publish(event)


def subscribe_listener(listener: EventListener) -> None:
    """Subscribe a listener to the global event bus."""
    get_event_bus().subscribe(listener)
