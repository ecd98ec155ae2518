"""Connection to the realtime AI backend."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Protocol
from urllib.parse import urlencode

import websockets

from config.settings import Settings


class RealtimeConnection(Protocol):
    """The subset of ``websockets.asyncio.client.ClientConnection`` the session uses."""

    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...


Connector = Callable[[], Awaitable[RealtimeConnection]]


def realtime_url(settings: Settings) -> str:
    return f"{settings.openai_realtime_url}?{urlencode({'model': settings.openai_realtime_model})}"


def build_realtime_connector(settings: Settings) -> Connector:
    if not settings.openai_api_key:
        raise ValueError("OPENAI_API_KEY is not configured")

    url = realtime_url(settings)
    headers = {
        "Authorization": f"Bearer {settings.openai_api_key}",
        "OpenAI-Beta": "realtime=v1",
    }

    async def connect() -> RealtimeConnection:
        return await websockets.connect(url, additional_headers=headers)

    return connect
