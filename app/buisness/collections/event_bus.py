"""
EventBus - synchronous fan-out of lifecycle events

One bus per application. Observers are registered explicitly and the
subscription list can be enumerated. publish() calls each matching observer in
subscription order; an observer that raises is logged and skipped, the others
still run.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from app.utils.logger import get_logger
from app.utils.logging_sanitizer import sanitize_dict

logger = get_logger("waste_collection.events")

# Event types
REQUEST_CREATED = 'request.created'
REQUEST_UPDATED = 'request.updated'
REQUEST_CANCELLED = 'request.cancelled'
REQUEST_COMPLETED = 'request.completed'
POINTS_AWARDED = 'points.awarded'
POINTS_ADJUSTED = 'points.adjusted'
RESIDENT_REGISTERED = 'resident.registered'

EVENT_TYPES = (
    REQUEST_CREATED,
    REQUEST_UPDATED,
    REQUEST_CANCELLED,
    REQUEST_COMPLETED,
    POINTS_AWARDED,
    POINTS_ADJUSTED,
    RESIDENT_REGISTERED,
)


@dataclass(frozen=True)
class LifecycleEvent:
    event_type: str
    entity_type: str
    entity_id: Optional[int]
    action: str
    user_id: Optional[int] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'event_type': self.event_type,
            'timestamp': self.timestamp.isoformat(),
            'user_id': self.user_id,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'action': self.action,
            'payload': dict(self.payload),
        }


class Observer:
    """Base class for bus observers. Subclasses set observer_id/name and implement handle()."""
    observer_id = 'observer'
    name = 'Observer'

    def handle(self, event: LifecycleEvent) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class Subscription:
    observer_id: str
    observer_name: str
    # None means every event type
    event_types: Optional[FrozenSet[str]]

    def matches(self, event_type: str) -> bool:
        return self.event_types is None or event_type in self.event_types


class EventBus:

    def __init__(self):
        self._lock = threading.Lock()
        self._observers: Dict[str, Observer] = {}
        self._subscriptions: Dict[str, Subscription] = {}

    def subscribe(self, observer: Observer, event_types: Iterable[str]) -> Subscription:
        """
        Subscribe an observer to specific event types.

        Subscribing an observer again widens its existing subscription instead
        of registering it twice.
        """
        event_types = frozenset(event_types)
        unknown = event_types - set(EVENT_TYPES)
        if unknown:
            raise ValueError(f"Unknown event types: {sorted(unknown)}")
        with self._lock:
            existing = self._subscriptions.get(observer.observer_id)
            if existing is not None:
                if existing.event_types is None:
                    return existing
                event_types = existing.event_types | event_types
            subscription = Subscription(observer.observer_id, observer.name, event_types)
            self._observers[observer.observer_id] = observer
            self._subscriptions[observer.observer_id] = subscription
        logger.debug(f"Observer {observer.observer_id} subscribed to {sorted(event_types)}")
        return subscription

    def subscribe_all(self, observer: Observer) -> Subscription:
        with self._lock:
            subscription = Subscription(observer.observer_id, observer.name, None)
            self._observers[observer.observer_id] = observer
            self._subscriptions[observer.observer_id] = subscription
        logger.debug(f"Observer {observer.observer_id} subscribed to all events")
        return subscription

    def unsubscribe(self, observer_id: str) -> bool:
        with self._lock:
            removed = self._subscriptions.pop(observer_id, None)
            self._observers.pop(observer_id, None)
        return removed is not None

    def subscriptions(self) -> List[Subscription]:
        with self._lock:
            return list(self._subscriptions.values())

    def publish(self, event: LifecycleEvent) -> int:
        """
        Deliver the event to every matching observer.

        Returns:
            int: number of observers that handled the event without raising
        """
        with self._lock:
            targets = [
                self._observers[sub.observer_id]
                for sub in self._subscriptions.values()
                if sub.matches(event.event_type)
            ]

        delivered = 0
        for observer in targets:
            try:
                observer.handle(event)
                delivered += 1
            except Exception as e:
                logger.error(
                    f"Observer {observer.observer_id} failed on {event.event_type}: {e}",
                    exc_info=True,
                    extra={"context": {"event_id": event.id, "entity_id": event.entity_id}},
                )
        return delivered

    def emit(self, event_type: str, entity_type: str, entity_id: Optional[int], action: str,
             user_id: Optional[int] = None, payload: Optional[Dict[str, Any]] = None) -> LifecycleEvent:
        """Build and publish an event in one call"""
        event = LifecycleEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            user_id=user_id,
            payload=dict(payload or {}),
        )
        self.publish(event)
        return event


class AuditLogObserver(Observer):
    """Writes every event to the application log with contact data masked"""
    observer_id = 'audit-log'
    name = 'Audit log'

    def handle(self, event: LifecycleEvent) -> None:
        logger.info(
            f"{event.event_type} {event.entity_type}#{event.entity_id}",
            extra={"context": sanitize_dict(event.to_dict())},
        )
