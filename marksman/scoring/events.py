"""Synchronous notification channel for range events."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    FIRST_SHOT = "first_shot"
    MAGAZINE_EMPTY = "magazine_empty"
    RELOADED = "reloaded"
    MARKER_PLACED = "marker_placed"
    SHOT_COMPLETED = "shot_completed"
    PERSISTENCE_FAILED = "persistence_failed"


@dataclass(frozen=True)
class RangeEvent:
    type: EventType
    payload: dict[str, Any] = field(default_factory=dict)


Handler = Callable[[RangeEvent], None]


class EventBus:
    """
    Observer list per event type.

    Delivery is synchronous and in registration order. `subscribe` returns
    the matching unsubscribe callable for teardown.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventType, list[Handler]] = {}
        self.history: list[RangeEvent] = []
        self.keep_history = False

    def subscribe(self, event_type: EventType, handler: Handler) -> Callable[[], None]:
        handlers = self._handlers.setdefault(event_type, [])
        handlers.append(handler)

        def unsubscribe() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def emit(self, event_type: EventType, **payload: Any) -> RangeEvent:
        event = RangeEvent(type=event_type, payload=payload)
        if self.keep_history:
            self.history.append(event)
        for handler in list(self._handlers.get(event_type, ())):
            try:
                handler(event)
            except Exception:
                # Logged; delivery continues with the next handler.
                logger.exception(f"Handler {handler!r} failed on {event_type.value}")
        return event

    def subscriber_count(self, event_type: EventType) -> int:
        return len(self._handlers.get(event_type, ()))
