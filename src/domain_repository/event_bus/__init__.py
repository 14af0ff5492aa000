"""In-process event dispatch for repository lifecycle events."""

from domain_repository.event_bus.dispatcher import EventDispatcher

__all__ = ["EventDispatcher"]
