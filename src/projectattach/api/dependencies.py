"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from collections.abc import Generator  # noqa: TC003
from typing import Annotated

from fastapi import Depends

from projectattach.api.events import EventManager
from projectattach.attach.session import SessionRegistry
from projectattach.config import AttachSettings  # noqa: TC001

# Global EventManager instance (initialized on app startup)
_event_manager: EventManager | None = None


def init_event_manager() -> EventManager:
    """Initialize the global EventManager instance."""
    global _event_manager  # noqa: PLW0603
    _event_manager = EventManager()
    return _event_manager


def close_event_manager() -> None:
    """Drop the global EventManager instance."""
    global _event_manager  # noqa: PLW0603
    _event_manager = None


def get_event_manager() -> Generator[EventManager, None, None]:
    """Dependency that provides the EventManager instance."""
    if _event_manager is None:
        raise RuntimeError("EventManager not initialized. Call init_event_manager() first.")
    yield _event_manager


# Type alias for dependency injection
EventManagerDep = Annotated[EventManager, Depends(get_event_manager)]

# Global SessionRegistry instance (initialized on app startup)
_registry: SessionRegistry | None = None


def init_registry(
    registry: SessionRegistry | None = None,
    settings: AttachSettings | None = None,
    event_manager: EventManager | None = None,
) -> SessionRegistry:
    """Initialize the global SessionRegistry instance.

    Args:
        registry: Pre-built registry to install. A new one is created if None.
        settings: Settings for a newly created registry.
        event_manager: EventManager for a newly created registry.
    """
    global _registry  # noqa: PLW0603
    if registry is None:
        registry = SessionRegistry(settings=settings, event_manager=event_manager)
    elif registry.event_manager is None and event_manager is not None:
        registry.use_event_manager(event_manager)
    _registry = registry
    return _registry


def close_registry() -> None:
    """Cancel running batches and drop the global SessionRegistry instance."""
    global _registry  # noqa: PLW0603
    if _registry is not None:
        _registry.cancel_all()
        _registry = None


def get_registry() -> Generator[SessionRegistry, None, None]:
    """Dependency that provides the SessionRegistry instance."""
    if _registry is None:
        raise RuntimeError("SessionRegistry not initialized. Call init_registry() first.")
    yield _registry


# Type alias for dependency injection
RegistryDep = Annotated[SessionRegistry, Depends(get_registry)]
