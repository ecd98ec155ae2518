"""Staging area for caller audio that arrives before the backend is ready."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Awaitable, Callable

LOGGER = logging.getLogger(__name__)

AudioSink = Callable[[str], Awaitable[None]]


class PendingAudioBuffer:
    """FIFO of audio chunks, drained exactly once into the backend.

    Before ``drain_into`` every chunk is kept, in order. Chunks enqueued while
    the drain is running are picked up by the same drain. Once drained the
    buffer stays empty and ``enqueue`` forwards straight to the sink.
    """

    def __init__(self) -> None:
        self._chunks: deque[str] = deque()
        self._sink: AudioSink | None = None
        self._draining = False

    def __len__(self) -> int:
        return len(self._chunks)

    @property
    def drained(self) -> bool:
        return self._sink is not None

    async def enqueue(self, chunk: str) -> None:
        if self._sink is not None:
            await self._sink(chunk)
            return
        self._chunks.append(chunk)

    async def drain_into(self, sink: AudioSink) -> int:
        if self._draining or self._sink is not None:
            raise RuntimeError("PendingAudioBuffer can only be drained once")
        self._draining = True

        count = 0
        while self._chunks:
            await sink(self._chunks.popleft())
            count += 1
        # No suspension point between the empty check and this assignment.
        self._sink = sink
        if count:
            LOGGER.info("Flushed %d buffered audio chunks", count)
        return count

    def discard(self) -> int:
        """Drop anything still queued; used when the session ends before opening."""

        count = len(self._chunks)
        self._chunks.clear()
        return count
