"""Gate keeping at most one ``response.create`` in flight per call."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from bridge.codec import TERMINAL_KINDS, RealtimeEventKind

LOGGER = logging.getLogger(__name__)


class TurnController:
    """Single-flag check-and-set for model turns.

    Neither method awaits, so under the event loop each call is one atomic
    step. A turn that never sees a terminal event is considered abandoned
    after ``timeout_seconds`` and the next request is granted.
    """

    def __init__(
        self,
        timeout_seconds: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._timeout = timeout_seconds or None
        self._clock = clock
        self._in_flight = False
        self._started_at = 0.0
        self.turns_granted = 0

    @property
    def turn_in_flight(self) -> bool:
        return self._in_flight

    def request_turn_if_idle(self) -> bool:
        if self._in_flight:
            elapsed = self._clock() - self._started_at
            if self._timeout is None or elapsed < self._timeout:
                return False
            LOGGER.warning(
                "Turn in flight for %.1fs without a terminal event; releasing it",
                elapsed,
            )

        self._in_flight = True
        self._started_at = self._clock()
        self.turns_granted += 1
        return True

    def release_on_terminal(self, kind: RealtimeEventKind) -> bool:
        """Release the gate on a terminal event. Redundant terminals are no-ops."""

        if kind not in TERMINAL_KINDS or not self._in_flight:
            return False
        self._in_flight = False
        return True
