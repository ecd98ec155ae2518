"""Per-session publish/subscribe for audio and lead events."""

from __future__ import annotations

import inspect
import itertools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

LOGGER = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[None] | None]


class SessionEvent(str, Enum):
    AUDIO = "audio"
    LEAD = "lead"


@dataclass(frozen=True)
class Subscription:
    event: SessionEvent
    token: int


class EventEmitter:
    """Ordered subscribers per event kind, owned by one session.

    Handlers may be plain or async callables. A failing handler is logged and
    never affects the emitter or the other handlers.
    """

    def __init__(self) -> None:
        self._handlers: dict[SessionEvent, dict[int, Handler]] = {event: {} for event in SessionEvent}
        self._tokens = itertools.count(1)

    def subscribe(self, event: SessionEvent, handler: Handler) -> Subscription:
        token = next(self._tokens)
        self._handlers[event][token] = handler
        return Subscription(event=event, token=token)

    def unsubscribe(self, subscription: Subscription) -> None:
        self._handlers[subscription.event].pop(subscription.token, None)

    def subscriber_count(self, event: SessionEvent) -> int:
        return len(self._handlers[event])

    async def emit(self, event: SessionEvent, payload: Any) -> int:
        delivered = 0
        for handler in list(self._handlers[event].values()):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                LOGGER.exception("Listener for %s event failed", event.value)
                continue
            delivered += 1
        return delivered
