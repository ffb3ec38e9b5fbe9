"""In-memory event bus for evaluation and conflict notifications.

The notification layer (e-mail digests, dashboards) is external; it
observes Decivue through this bus, either over SSE or by polling.
"""

import asyncio
import json
import logging
import time
import uuid
from collections import deque
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

MAX_BUFFER_SIZE = 1000
MAX_SUBSCRIBERS = 100

DECISION_EVALUATED = "decision.evaluated"
DECISION_LIFECYCLE_CHANGED = "decision.lifecycle_changed"
DECISION_RETIRED = "decision.retired"
DECISION_REVIEWED = "decision.reviewed"
CONFLICT_DETECTED = "conflict.detected"
CONFLICT_RESOLVED = "conflict.resolved"
CONSTRAINT_VIOLATED = "constraint.violated"


@dataclass
class Event:
    """A single event emitted by the system."""

    type: str
    payload: dict
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "payload": self.payload,
            "timestamp": self.timestamp,
        }

    def to_sse(self) -> str:
        """Format as a Server-Sent Event frame."""
        return format_sse(self.to_dict())


def format_sse(event: dict) -> str:
    data = json.dumps(event, default=str)
    return f"id: {event['id']}\nevent: {event['type']}\ndata: {data}\n\n"


def _matches(event: Event, prefixes: tuple[str, ...]) -> bool:
    return not prefixes or event.type.startswith(prefixes)


class EventBus:
    """Fan-out to SSE subscribers plus a bounded buffer for polling."""

    def __init__(self, buffer_size: int = MAX_BUFFER_SIZE) -> None:
        self._subscribers: list[asyncio.Queue[Event]] = []
        self._buffer: deque[Event] = deque(maxlen=buffer_size)
        self._lock = asyncio.Lock()

    async def publish(self, event_type: str, payload: dict) -> Event:
        """Buffer an event and push it to every subscriber.

        Subscribers whose queue is full are dropped.
        """
        event = Event(type=event_type, payload=payload)

        async with self._lock:
            self._buffer.append(event)
            stale: list[asyncio.Queue] = []
            for queue in self._subscribers:
                try:
                    queue.put_nowait(event)
                except asyncio.QueueFull:
                    stale.append(queue)
                    logger.warning("Dropping slow event subscriber")
            for queue in stale:
                self._subscribers.remove(queue)

        logger.debug("Published %s (id=%s)", event_type, event.id)
        return event

    async def subscribe(self) -> asyncio.Queue[Event]:
        """Register a subscriber queue. Call ``unsubscribe`` when done."""
        async with self._lock:
            if len(self._subscribers) >= MAX_SUBSCRIBERS:
                raise RuntimeError("Too many event subscribers")
            queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=256)
            self._subscribers.append(queue)
            logger.info("Event subscriber added (total: %d)", len(self._subscribers))
            return queue

    async def unsubscribe(self, queue: asyncio.Queue[Event]) -> None:
        async with self._lock:
            if queue in self._subscribers:
                self._subscribers.remove(queue)
                logger.info("Event subscriber removed (total: %d)", len(self._subscribers))

    def get_events_since(self, since: float, types: tuple[str, ...] = ()) -> list[dict]:
        """Buffered events newer than ``since``, oldest first.

        ``types`` filters by event type prefix, e.g. ``("decision.",)``.
        """
        return [
            e.to_dict() for e in self._buffer if e.timestamp > since and _matches(e, types)
        ]

    def get_recent_events(self, limit: int = 50, types: tuple[str, ...] = ()) -> list[dict]:
        events = [e for e in self._buffer if _matches(e, types)]
        return [e.to_dict() for e in events[-limit:]]

    def clear(self) -> None:
        self._buffer.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def buffer_size(self) -> int:
        return len(self._buffer)


event_bus = EventBus()
