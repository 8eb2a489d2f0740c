"""
Per-session event channel.

Subscribers get their own bounded FIFO queue. Publishing never blocks the
scan pipeline: when a subscriber falls behind, its oldest event is dropped.
"""

import logging
import queue
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ghostguard.config import settings

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    CONNECTION_STATUS = "connection_status"
    NEW_MESSAGE = "new_message"
    THREAT_DETECTED = "threat_detected"
    SCAN_COMPLETED = "scan_completed"


@dataclass
class SessionEvent:
    type: EventType
    session_id: str
    data: Dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)


class Subscription:
    """Handle returned by EventChannel.subscribe."""

    def __init__(self, channel: "EventChannel", maxsize: int):
        self.id = str(uuid.uuid4())
        self._channel = channel
        self._queue: "queue.Queue[SessionEvent]" = queue.Queue(maxsize=maxsize)
        self.dropped = 0
        self.closed = False

    def _deliver(self, event: SessionEvent):
        while True:
            try:
                self._queue.put_nowait(event)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                    self.dropped += 1
                except queue.Empty:
                    pass

    def get(self, timeout: Optional[float] = None) -> Optional[SessionEvent]:
        """Next event, or None if nothing arrives within `timeout`."""
        try:
            return self._queue.get(timeout=timeout) if timeout else self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> List[SessionEvent]:
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def unsubscribe(self):
        self._channel.unsubscribe(self)


class EventChannel:
    def __init__(self, session_id: str, maxsize: Optional[int] = None):
        self.session_id = session_id
        self._maxsize = maxsize or settings.event_queue_size
        self._lock = threading.Lock()
        self._subscriptions: Dict[str, Subscription] = {}
        self._closed = False

    def subscribe(self) -> Subscription:
        subscription = Subscription(self, self._maxsize)
        with self._lock:
            if self._closed:
                raise RuntimeError(f"Event channel for session {self.session_id} is closed")
            self._subscriptions[subscription.id] = subscription
        return subscription

    def unsubscribe(self, subscription: Subscription):
        with self._lock:
            self._subscriptions.pop(subscription.id, None)
        subscription.closed = True

    def publish(self, event_type: EventType, **data) -> SessionEvent:
        event = SessionEvent(type=event_type, session_id=self.session_id, data=data)
        # Delivery happens under the lock so every subscriber sees the same order
        with self._lock:
            if self._closed:
                logger.debug(f"Dropping {event_type.value} on closed channel {self.session_id}")
                return event
            for subscription in self._subscriptions.values():
                before = subscription.dropped
                subscription._deliver(event)
                if subscription.dropped > before:
                    logger.warning(f"Subscriber {subscription.id} is behind; dropped oldest event")
        return event

    def close(self):
        with self._lock:
            self._closed = True
            subscriptions = list(self._subscriptions.values())
            self._subscriptions.clear()
        for subscription in subscriptions:
            subscription.closed = True

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)
