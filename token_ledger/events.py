"""
Event System Module

Publish/subscribe dispatcher for ledger domain events. The runtime only
hands events to the dispatcher after the unit of work that produced them has
committed, so subscribers never observe rolled-back activity.
"""

from enum import Enum
from typing import Callable, Dict, List, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid
import logging
from threading import RLock


class DomainEvent(Enum):
    """Domain events that can occur in the token ledger"""

    TOKEN_CREATED = "token.created"
    TOKENS_ISSUED = "token.issued"
    TOKENS_TRANSFERRED = "token.transferred"
    TOKENS_BURNED = "token.burned"

    # Fired once per recipient an action asked to notify
    ACTION_NOTIFICATION = "action.notification"

    PROPOSAL_STAKED = "relay.proposal_staked"
    VOTE_STAKED = "relay.vote_staked"


@dataclass
class EventPayload:
    """Payload for domain events"""
    event_type: DomainEvent
    entity_type: str
    entity_id: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'data': self.data,
            'timestamp': self.timestamp.isoformat(),
            'event_id': self.event_id
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EventPayload':
        return cls(
            event_type=DomainEvent(data['event_type']),
            entity_type=data['entity_type'],
            entity_id=data['entity_id'],
            data=data['data'],
            timestamp=datetime.fromisoformat(data['timestamp']) if isinstance(data['timestamp'], str) else data['timestamp'],
            event_id=data['event_id']
        )


class EventDispatcher:
    """Central event dispatcher, publish/subscribe pattern"""

    def __init__(self):
        self._handlers: Dict[DomainEvent, List[Callable]] = {}
        self._global_handlers: List[Callable] = []  # catch-all handlers
        self._lock = RLock()
        self.logger = logging.getLogger("token_ledger.events")

    @staticmethod
    def _name(handler: Callable) -> str:
        return getattr(handler, "__name__", repr(handler))

    def subscribe(self, event_type: DomainEvent, handler: Callable) -> None:
        """Subscribe to a specific event type"""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            self.logger.debug(f"Subscribed handler {self._name(handler)} to {event_type.value}")

    def subscribe_all(self, handler: Callable) -> None:
        """Subscribe to ALL events"""
        with self._lock:
            self._global_handlers.append(handler)
            self.logger.debug(f"Subscribed global handler {self._name(handler)}")

    def unsubscribe(self, event_type: DomainEvent, handler: Callable) -> None:
        with self._lock:
            try:
                self._handlers.get(event_type, []).remove(handler)
            except ValueError:
                self.logger.warning(f"Handler {self._name(handler)} was not subscribed to {event_type.value}")

    def publish(self, event: EventPayload) -> None:
        """Publish event to all subscribers"""
        with self._lock:
            self.logger.debug(f"Publishing event {event.event_type.value} for {event.entity_type}:{event.entity_id}")

            for handler in list(self._handlers.get(event.event_type, [])) + list(self._global_handlers):
                try:
                    handler(event)
                except Exception as e:
                    # Listeners are observers only; a failing one must not affect the ledger
                    self.logger.error(f"Error in event handler {self._name(handler)} for {event.event_type.value}: {e}")

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()

    def get_handler_count(self, event_type: Optional[DomainEvent] = None) -> int:
        """Get count of handlers for a specific event type or all"""
        with self._lock:
            if event_type:
                return len(self._handlers.get(event_type, []))
            total = sum(len(handlers) for handlers in self._handlers.values())
            return total + len(self._global_handlers)
