"""Event manager for Server-Sent Events (SSE)."""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

if TYPE_CHECKING:
    from projectattach.attach.models import BatchOutcome, ProjectDescriptor


class EventType(str, Enum):
    """Types of events that can be emitted."""

    BATCH_STARTED = "batch_started"
    PROJECT_ATTACHING = "project_attaching"
    BATCH_COMPLETED = "batch_completed"
    HEARTBEAT = "heartbeat"


def _timestamp() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


@dataclass
class Event:
    """An event to be sent via SSE."""

    event_type: EventType
    data: dict[str, Any]
    batch_id: str | None = None

    def to_sse(self) -> str:
        """Convert to SSE format."""
        return f"event: {self.event_type.value}\ndata: {json.dumps(self.data)}\n\n"


@dataclass
class Subscriber:
    """A subscriber to the event stream."""

    id: str
    queue: asyncio.Queue[Event]
    batch_id: str | None = None  # None means subscribe to all batches

    @classmethod
    def create(cls, batch_id: str | None = None) -> Subscriber:
        """Create a new subscriber."""
        return cls(id=str(uuid4()), queue=asyncio.Queue(), batch_id=batch_id)


@dataclass
class EventManager:
    """Manager for SSE events."""

    _subscribers: dict[str, Subscriber] = field(default_factory=dict)
    _heartbeat_interval: int = 30  # seconds

    def subscribe(self, batch_id: str | None = None) -> Subscriber:
        """Subscribe a client to events.

        Args:
            batch_id: Optional batch ID to filter events. None means all batches.

        Returns:
            Subscriber instance for receiving events.
        """
        subscriber = Subscriber.create(batch_id)
        self._subscribers[subscriber.id] = subscriber
        return subscriber

    def unsubscribe(self, subscriber_id: str) -> None:
        """Unsubscribe a client from events."""
        self._subscribers.pop(subscriber_id, None)

    async def emit(self, event: Event) -> None:
        """Emit an event to all matching subscribers."""
        for subscriber in self._matching(event):
            await subscriber.queue.put(event)

    def emit_sync(self, event: Event) -> None:
        """Emit an event without awaiting (queues are unbounded)."""
        for subscriber in self._matching(event):
            subscriber.queue.put_nowait(event)

    @property
    def subscriber_count(self) -> int:
        """Get the number of active subscribers."""
        return len(self._subscribers)

    def _matching(self, event: Event) -> list[Subscriber]:
        return [
            s
            for s in self._subscribers.values()
            if s.batch_id is None or event.batch_id is None or s.batch_id == event.batch_id
        ]

    # Convenience methods for emitting specific event types

    def emit_batch_started(self, batch_id: str, total: int) -> None:
        """Emit a batch_started event."""
        self.emit_sync(
            Event(
                event_type=EventType.BATCH_STARTED,
                batch_id=batch_id,
                data={"batch_id": batch_id, "total": total},
            )
        )

    def emit_project_attaching(self, batch_id: str, descriptor: ProjectDescriptor) -> None:
        """Emit a project_attaching event."""
        self.emit_sync(
            Event(
                event_type=EventType.PROJECT_ATTACHING,
                batch_id=batch_id,
                data={
                    "batch_id": batch_id,
                    "name": descriptor.name,
                    "url": descriptor.url,
                    "timestamp": _timestamp(),
                },
            )
        )

    def emit_batch_completed(self, batch_id: str, outcome: BatchOutcome) -> None:
        """Emit a batch_completed event."""
        data = asdict(outcome)
        data["status"] = outcome.status.value
        data["next_step"] = outcome.next_step.value
        data["batch_id"] = batch_id
        self.emit_sync(Event(event_type=EventType.BATCH_COMPLETED, batch_id=batch_id, data=data))

    def create_heartbeat_event(self) -> Event:
        """Create a heartbeat event."""
        return Event(
            event_type=EventType.HEARTBEAT,
            batch_id=None,  # Heartbeat goes to all subscribers
            data={"timestamp": _timestamp()},
        )
