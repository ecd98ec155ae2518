from __future__ import annotations

import asyncio
import json
import os
import sys
import tempfile
from pathlib import Path

import pytest
from websockets.exceptions import ConnectionClosedOK

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

_RUNTIME_DIR: Path | None = None


def pytest_configure(config):
    # Settings and the SQLAlchemy engine read the environment at import time.
    global _RUNTIME_DIR
    _RUNTIME_DIR = Path(tempfile.mkdtemp(prefix="receptionist-tests-"))
    clients_dir = _RUNTIME_DIR / "clients"
    clients_dir.mkdir()
    (clients_dir / "default.json").write_text(
        json.dumps({"business_name": "Default Plumbing", "language": "en-GB"}),
        encoding="utf-8",
    )
    (clients_dir / "sparks.json").write_text(
        json.dumps(
            {
                "business_name": "Sparks Electrical",
                "phone_number": "+44 20 7946 0001",
                "services": ["rewires", "EV chargers"],
                "emergency_enabled": True,
                "emergency_keywords": ["burning smell"],
                "greeting": "Thanks for calling Sparks Electrical.",
            }
        ),
        encoding="utf-8",
    )

    os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{(_RUNTIME_DIR / 'leads_test.db').as_posix()}"
    os.environ["DATA_DIR"] = str(_RUNTIME_DIR)
    os.environ["CLIENTS_DIR"] = str(clients_dir)
    os.environ["AUTO_CREATE_DB_SCHEMA"] = "true"
    os.environ["OPENAI_API_KEY"] = "test-key"
    os.environ.pop("PUBLIC_BASE_URL", None)
    os.environ.pop("TWILIO_VALIDATE_SIGNATURES", None)


class FakeRealtimeConnection:
    """Stands in for a websockets client connection to the realtime backend."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.closed = False
        self.close_calls = 0
        self._ended = False
        self._incoming: asyncio.Queue = asyncio.Queue()

    @property
    def sent_types(self) -> list[str]:
        return [message["type"] for message in self.sent]

    @property
    def appended_audio(self) -> list[str]:
        return [m["audio"] for m in self.sent if m["type"] == "input_audio_buffer.append"]

    async def send(self, message: str) -> None:
        if self.closed:
            raise ConnectionClosedOK(None, None)
        self.sent.append(json.loads(message))

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True
        if not self._ended:
            self._ended = True
            self._incoming.put_nowait(None)

    def feed(self, message: dict | str) -> None:
        self._incoming.put_nowait(message if isinstance(message, str) else json.dumps(message))

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        item = await self._incoming.get()
        if item is None:
            raise StopAsyncIteration
        return item


class FakeTelephonySocket:
    """Stands in for the Starlette WebSocket carrying the Twilio Media Stream."""

    def __init__(self, messages: list[dict | str] | None = None) -> None:
        self.sent: list[dict] = []
        self.closed = False
        self._incoming: asyncio.Queue = asyncio.Queue()
        for message in messages or []:
            self.push(message)

    def push(self, message: dict | str) -> None:
        self._incoming.put_nowait(message if isinstance(message, str) else json.dumps(message))

    def disconnect(self) -> None:
        self._incoming.put_nowait(None)

    async def receive_text(self) -> str:
        from fastapi import WebSocketDisconnect

        item = await self._incoming.get()
        if item is None:
            raise WebSocketDisconnect(code=1000)
        return item

    async def send_text(self, data: str) -> None:
        if self.closed:
            raise RuntimeError("Cannot call send once a close message has been sent.")
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000) -> None:
        self.closed = True


@pytest.fixture()
def fake_connection_cls():
    return FakeRealtimeConnection


@pytest.fixture()
def fake_socket_cls():
    return FakeTelephonySocket


@pytest.fixture()
def session_config():
    from agents.receptionist import RealtimeSessionConfig

    return RealtimeSessionConfig(instructions="Be a helpful receptionist.", voice="alloy")


@pytest.fixture(scope="session")
def app():
    import importlib

    main = importlib.import_module("main")
    return main.app


@pytest.fixture()
def client(app):
    from fastapi.testclient import TestClient

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
