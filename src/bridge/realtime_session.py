"""One realtime AI backend session per phone call.

State machine: PENDING -> OPEN -> CLOSED, no way back. PENDING lasts until
the backend connection is up and the session configuration has been pushed.
Caller audio received while PENDING is staged and flushed, in order, right
after the configuration.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from websockets.exceptions import ConnectionClosed, WebSocketException

from agents.errors import DecodeError, HandshakeError, SessionStateError, ToolArgumentError, TransportClosedError
from agents.lead_capture import LEAD_TOOL_NAME, parse_lead_arguments
from agents.receptionist import RealtimeSessionConfig
from bridge.audio_buffer import PendingAudioBuffer
from bridge.codec import (
    RealtimeEventKind,
    ToolCall,
    decode_realtime_message,
    encode_audio_append,
    encode_audio_commit,
    encode_response_create,
    encode_session_update,
)
from bridge.connection import Connector, RealtimeConnection
from bridge.events import EventEmitter, SessionEvent
from bridge.turns import TurnController

LOGGER = logging.getLogger(__name__)


class SessionState(str, Enum):
    PENDING = "pending"
    OPEN = "open"
    CLOSED = "closed"


_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.PENDING: frozenset({SessionState.OPEN, SessionState.CLOSED}),
    SessionState.OPEN: frozenset({SessionState.CLOSED}),
    SessionState.CLOSED: frozenset(),
}


class RealtimeSession:
    """Owns the backend connection for a single call."""

    def __init__(
        self,
        config: RealtimeSessionConfig,
        *,
        connector: Connector,
        turn_timeout_seconds: float | None = None,
        call_id: str = "unknown",
    ) -> None:
        self._config = config
        self._connector = connector
        self._call_id = call_id
        self._state = SessionState.PENDING
        self._buffer = PendingAudioBuffer()
        self._turns = TurnController(turn_timeout_seconds)
        self._events = EventEmitter()
        self._ws: RealtimeConnection | None = None
        self._task: asyncio.Task | None = None
        self._opened = asyncio.Event()
        self._handshake_failed = False
        self._handled_tool_calls: set[str] = set()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def config(self) -> RealtimeSessionConfig:
        return self._config

    @property
    def events(self) -> EventEmitter:
        return self._events

    @property
    def turns(self) -> TurnController:
        return self._turns

    @property
    def pending_audio(self) -> int:
        return len(self._buffer)

    def start(self) -> None:
        """Open the backend connection in the background."""

        if self._task is not None:
            return
        self._task = asyncio.create_task(self._run(), name=f"realtime-session-{self._call_id}")

    async def wait_open(self, timeout: float | None = None) -> bool:
        try:
            await asyncio.wait_for(self._opened.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def wait_closed(self) -> None:
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    def _transition(self, target: SessionState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise SessionStateError(f"{self._state.value} -> {target.value}")
        LOGGER.debug("Realtime session %s: %s -> %s", self._call_id, self._state.value, target.value)
        self._state = target
        if target is SessionState.OPEN:
            self._opened.set()

    async def _run(self) -> None:
        try:
            ws = await self._connect()
        except HandshakeError as exc:
            # Stays PENDING; end_session() closes it out with the call.
            LOGGER.error("Realtime session %s: %s", self._call_id, exc.detail)
            self._handshake_failed = True
            dropped = self._buffer.discard()
            if dropped:
                LOGGER.info("Discarded %d buffered audio chunks for call %s", dropped, self._call_id)
            return

        if self._state is SessionState.CLOSED:
            await ws.close()
            return

        self._ws = ws
        LOGGER.info("Connected to realtime backend for call %s", self._call_id)
        try:
            await self._send(encode_session_update(self._config))
            await self._buffer.drain_into(self._forward_audio)
        except TransportClosedError as exc:
            LOGGER.warning("Realtime session %s closed during handshake: %s", self._call_id, exc.detail)
            self._close_state()
            return

        if self._state is SessionState.CLOSED:
            return
        self._transition(SessionState.OPEN)
        await self._receive_loop(ws)

    async def _connect(self) -> RealtimeConnection:
        try:
            return await self._connector()
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            raise HandshakeError(f"Could not connect to realtime backend: {exc}") from exc

    async def _receive_loop(self, ws: RealtimeConnection) -> None:
        try:
            async for raw in ws:
                await self.handle_message(raw)
        except ConnectionClosed as exc:
            LOGGER.warning("Realtime connection for call %s dropped: %s", self._call_id, exc)
        finally:
            if self._state is not SessionState.CLOSED:
                LOGGER.info("Realtime connection for call %s closed", self._call_id)
                self._close_state()

    def _close_state(self) -> None:
        if self._state is SessionState.CLOSED:
            return
        self._transition(SessionState.CLOSED)
        dropped = self._buffer.discard()
        if dropped:
            LOGGER.info("Discarded %d buffered audio chunks for call %s", dropped, self._call_id)

    async def _send(self, message: str) -> None:
        ws = self._ws
        if ws is None:
            raise TransportClosedError("Realtime connection is not established.")
        try:
            await ws.send(message)
        except ConnectionClosed as exc:
            raise TransportClosedError(f"Realtime connection closed: {exc}") from exc

    async def _forward_audio(self, audio: str) -> None:
        await self._send(encode_audio_append(audio))

    async def send_audio(self, audio: str) -> None:
        """Relay one caller audio chunk to the backend.

        Audio always reaches the backend once it is open; the turn gate only
        decides whether a ``response.create`` follows it.
        """

        if self._state is SessionState.CLOSED:
            LOGGER.debug("Ignoring audio for closed realtime session %s", self._call_id)
            return
        if self._state is SessionState.PENDING:
            if self._handshake_failed:
                return
            await self._buffer.enqueue(audio)
            return

        try:
            await self._forward_audio(audio)
            if self._turns.request_turn_if_idle():
                await self._send(encode_response_create())
        except TransportClosedError as exc:
            LOGGER.warning("Dropping audio for call %s: %s", self._call_id, exc.detail)

    async def handle_message(self, raw: str | bytes) -> None:
        """Dispatch one inbound backend message. Never raises."""

        try:
            event = decode_realtime_message(raw)
        except DecodeError as exc:
            LOGGER.error("Skipping malformed realtime message (%s): %s", exc.detail, exc.preview())
            return

        if event.type.startswith("response.") and event.kind is not RealtimeEventKind.AUDIO_DELTA:
            LOGGER.debug("[Realtime] %s %s", event.type, str(event.raw)[:500])

        if event.is_terminal:
            self._turns.release_on_terminal(event.kind)

        if event.kind in (RealtimeEventKind.ERROR, RealtimeEventKind.RESPONSE_ERROR):
            LOGGER.error("Realtime backend error for call %s: %s", self._call_id, event.raw.get("error", event.raw))
        elif event.kind is RealtimeEventKind.AUDIO_DELTA:
            await self._events.emit(SessionEvent.AUDIO, event.audio)
        elif event.kind is RealtimeEventKind.TOOL_CALL and event.tool_call is not None:
            await self._handle_tool_call(event.tool_call)

    async def _handle_tool_call(self, call: ToolCall) -> None:
        if call.name != LEAD_TOOL_NAME:
            LOGGER.warning("Ignoring unknown tool %s for call %s", call.name, self._call_id)
            return
        if not call.arguments:
            # Arguments are still streaming; a later event carries them.
            return
        if call.call_id is not None:
            # The same call arrives on several event types; parse it once either way.
            if call.call_id in self._handled_tool_calls:
                return
            self._handled_tool_calls.add(call.call_id)

        try:
            lead = parse_lead_arguments(call.arguments)
        except ToolArgumentError as exc:
            LOGGER.error(
                "Failed to parse %s arguments for call %s (%s): %s",
                LEAD_TOOL_NAME,
                self._call_id,
                exc.detail,
                exc.arguments[:500],
            )
            return

        LOGGER.info("%s tool called for call %s: %s (%s)", LEAD_TOOL_NAME, self._call_id, lead.name, lead.urgency)
        await self._events.emit(SessionEvent.LEAD, lead)

    async def end_session(self) -> None:
        """Commit buffered audio if open, then close. Safe to call repeatedly."""

        if self._state is SessionState.CLOSED:
            return
        was_open = self._state is SessionState.OPEN
        self._close_state()

        if was_open:
            try:
                await self._send(encode_audio_commit())
            except TransportClosedError:
                LOGGER.debug("Final commit for call %s not sent; connection already gone", self._call_id)

        if self._ws is not None:
            await self._ws.close()
        elif self._task is not None and not self._task.done():
            # Still connecting.
            self._task.cancel()
        LOGGER.info("Realtime session for call %s ended", self._call_id)


def start_realtime_session(
    config: RealtimeSessionConfig,
    *,
    connector: Connector,
    turn_timeout_seconds: float | None = None,
    call_id: str = "unknown",
) -> RealtimeSession:
    """Create a session and start connecting to the backend right away."""

    session = RealtimeSession(
        config,
        connector=connector,
        turn_timeout_seconds=turn_timeout_seconds,
        call_id=call_id,
    )
    session.start()
    return session
