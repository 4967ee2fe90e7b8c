"""REST API for ProjectAttach."""

from projectattach.api.app import create_app
from projectattach.api.events import Event, EventManager, EventType
from projectattach.api.models import (
    APIResponse,
    BatchOutcomeResponse,
    BatchStatusResponse,
    ConflictsResponse,
)

__all__ = [
    "APIResponse",
    "BatchOutcomeResponse",
    "BatchStatusResponse",
    "ConflictsResponse",
    "Event",
    "EventManager",
    "EventType",
    "create_app",
]
