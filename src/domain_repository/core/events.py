"""Event schemas fired around repository save/delete transitions.

All events are Pydantic models. ``ModelEvent`` is cancellable: any handler
may call :meth:`ModelEvent.invalidate` to veto the surrounding operation.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import RepositoryEvent


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BaseEvent(BaseModel):
    """Base for all events. Provides identity, time, and tracing."""

    event_id: str = Field(default_factory=_uuid)
    timestamp: datetime = Field(default_factory=_now)
    trace_id: str = Field(default_factory=_uuid)
    source_module: str = ""


class ModelEvent(BaseEvent):
    """Cancellable event carrying the entity being saved or deleted."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    source_module: str = "repository"
    entity: Any
    name: RepositoryEvent | None = None
    sender: Any = None
    valid: bool = True

    def __init__(self, entity: Any = None, /, **data: Any) -> None:
        if entity is not None:
            data["entity"] = entity
        super().__init__(**data)

    def is_valid(self) -> bool:
        return self.valid

    def invalidate(self) -> None:
        """Veto the operation this event guards."""
        self.valid = False
