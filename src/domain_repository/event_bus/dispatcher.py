"""Synchronous in-process event dispatcher.

Handlers are called synchronously in subscription order. Unlike a message
bus, handler errors propagate to the caller: a failing before-save handler
must be able to abort (and roll back) the surrounding operation.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable

from domain_repository.core.enums import RepositoryEvent
from domain_repository.core.events import BaseEvent

logger = logging.getLogger(__name__)

Handler = Callable[[BaseEvent], None]


def _key(name: str | RepositoryEvent) -> str:
    return name.value if isinstance(name, RepositoryEvent) else str(name)


class EventDispatcher:
    """Named-event dispatcher with per-name handler lists and history."""

    def __init__(self, *, record_history: bool = False) -> None:
        # event name → handlers
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._record_history = record_history
        self._history: list[tuple[str, BaseEvent]] = []

    def on(self, name: str | RepositoryEvent, handler: Handler) -> None:
        """Subscribe a handler to an event name."""
        self._handlers[_key(name)].append(handler)

    def off(self, name: str | RepositoryEvent, handler: Handler | None = None) -> bool:
        """Detach a handler, or every handler for the name when ``handler`` is None.

        Returns True if anything was removed.
        """
        key = _key(name)
        handlers = self._handlers.get(key)
        if not handlers:
            return False
        if handler is None:
            del self._handlers[key]
            return True
        try:
            handlers.remove(handler)
        except ValueError:
            return False
        return True

    def has_handlers(self, name: str | RepositoryEvent) -> bool:
        return bool(self._handlers.get(_key(name)))

    def trigger(self, name: str | RepositoryEvent, event: BaseEvent) -> None:
        """Invoke every handler subscribed to ``name`` with ``event``."""
        key = _key(name)
        if self._record_history:
            self._history.append((key, event))

        for handler in list(self._handlers.get(key, [])):
            logger.debug(
                "Dispatching %s to %s",
                key,
                getattr(handler, "__qualname__", repr(handler)),
            )
            handler(event)

    def get_history(self, name: str | RepositoryEvent | None = None) -> list[tuple[str, BaseEvent]]:
        """Get event history, optionally filtered by name. For testing."""
        if name is None:
            return list(self._history)
        key = _key(name)
        return [(n, e) for n, e in self._history if n == key]

    def clear_history(self) -> None:
        """Clear event history. For testing."""
        self._history.clear()
