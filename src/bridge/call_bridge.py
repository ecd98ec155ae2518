"""Joins one Twilio Media Stream to one realtime session.

The two connections open independently: the realtime session starts
connecting as soon as the call is accepted, before Twilio's ``start`` event.
They are coupled only when closing: the end of the Twilio stream, for any
reason, ends the realtime session.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import Protocol

from fastapi import WebSocketDisconnect

from agents.errors import DecodeError
from agents.schemas import LEAD_SOURCE_PHONE, LeadEnvelope, LeadRecord
from bridge.codec import TelephonyEventKind, decode_telephony_message, encode_telephony_media
from bridge.events import SessionEvent, Subscription
from bridge.realtime_session import RealtimeSession
from config.clients import ClientConfig
from integrations.lead_delivery import LeadDispatcher

LOGGER = logging.getLogger(__name__)


class TelephonySocket(Protocol):
    async def receive_text(self) -> str: ...

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class CallState(str, Enum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


SessionFactory = Callable[[], RealtimeSession]


class CallBridge:
    """Relays audio both ways for a single call and tears both sides down together."""

    def __init__(
        self,
        websocket: TelephonySocket,
        client: ClientConfig,
        *,
        session_factory: SessionFactory,
        dispatcher: LeadDispatcher | None = None,
        call_sid: str | None = None,
        called_number: str | None = None,
    ) -> None:
        self._ws = websocket
        self._client = client
        self._session_factory = session_factory
        self._dispatcher = dispatcher
        self._call_sid = call_sid
        self._called_number = called_number
        self._state = CallState.CONNECTING
        self._stream_sid: str | None = None
        self._session: RealtimeSession | None = None
        self._subscriptions: list[Subscription] = []
        self._deliveries: set[asyncio.Task] = set()
        self.leads_captured = 0
        self.audio_dropped = 0

    @property
    def state(self) -> CallState:
        return self._state

    @property
    def stream_sid(self) -> str | None:
        return self._stream_sid

    @property
    def session(self) -> RealtimeSession | None:
        return self._session

    def _attach_session(self) -> RealtimeSession:
        if self._session is not None:
            return self._session
        session = self._session_factory()
        self._subscriptions = [
            session.events.subscribe(SessionEvent.AUDIO, self._on_model_audio),
            session.events.subscribe(SessionEvent.LEAD, self._on_lead),
        ]
        self._session = session
        return session

    async def run(self) -> None:
        """Pump Twilio messages until the stream stops or disconnects."""

        self._attach_session()
        LOGGER.info("Twilio Media Stream connected for %s", self._client.business_name)
        try:
            while self._state in (CallState.CONNECTING, CallState.ACTIVE):
                raw = await self._ws.receive_text()
                await self.handle_message(raw)
        except WebSocketDisconnect:
            LOGGER.info("Twilio WebSocket closed (call %s)", self._call_sid)
            await self.close(close_transport=False)
        except Exception:
            LOGGER.exception("Twilio WebSocket error (call %s)", self._call_sid)
            await self.close(close_transport=False)
        else:
            await self.close()
        finally:
            if self._session is not None:
                await self._session.wait_closed()
            await self._wait_for_deliveries()

    async def handle_message(self, raw: str | bytes) -> None:
        """Dispatch one inbound Twilio message. Never raises for bad payloads."""

        try:
            frame = decode_telephony_message(raw)
        except DecodeError as exc:
            LOGGER.error("Error parsing Twilio WS message (%s): %s", exc.detail, exc.preview())
            return

        session = self._attach_session()
        if frame.kind is TelephonyEventKind.START:
            self._stream_sid = frame.stream_sid
            self._call_sid = frame.call_sid or self._call_sid
            if self._state is CallState.CONNECTING:
                self._state = CallState.ACTIVE
            LOGGER.info("Twilio stream started: %s (call %s)", self._stream_sid, self._call_sid)
        elif frame.kind is TelephonyEventKind.MEDIA:
            await session.send_audio(frame.audio)
        elif frame.kind is TelephonyEventKind.STOP:
            LOGGER.info("Twilio stream stopped: %s", self._stream_sid)
            await self.close()

    async def _on_model_audio(self, audio: str) -> None:
        if not self._stream_sid:
            # Rare, and not worth preserving.
            self.audio_dropped += 1
            LOGGER.debug("Dropping model audio before stream start (%d so far)", self.audio_dropped)
            return
        if self._state is not CallState.ACTIVE:
            return
        try:
            await self._ws.send_text(encode_telephony_media(self._stream_sid, audio))
        except (WebSocketDisconnect, RuntimeError) as exc:
            LOGGER.warning("Could not send audio to Twilio stream %s: %s", self._stream_sid, exc)

    def _on_lead(self, lead: LeadRecord) -> None:
        self.leads_captured += 1
        if self.leads_captured > 1:
            LOGGER.warning("Lead #%d captured on call %s; delivering it too", self.leads_captured, self._call_sid)

        envelope = LeadEnvelope(
            lead=lead,
            business_name=self._client.business_name,
            source=LEAD_SOURCE_PHONE,
            call_sid=self._call_sid,
            stream_sid=self._stream_sid,
            called_number=self._called_number,
        )
        if self._dispatcher is None:
            LOGGER.warning("No lead dispatcher for call %s; lead from %s not delivered", self._call_sid, lead.name)
            return

        task = asyncio.create_task(self._dispatcher.dispatch(envelope), name=f"lead-delivery-{self._call_sid}")
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)

    async def _wait_for_deliveries(self) -> None:
        if self._deliveries:
            await asyncio.gather(*list(self._deliveries), return_exceptions=True)

    async def close(self, *, close_transport: bool = True) -> None:
        """End the realtime session and, optionally, the Twilio socket. Idempotent."""

        if self._state in (CallState.CLOSING, CallState.CLOSED):
            return
        self._state = CallState.CLOSING

        if self._session is not None:
            await self._session.end_session()
            for subscription in self._subscriptions:
                self._session.events.unsubscribe(subscription)
            self._subscriptions = []

        if close_transport:
            try:
                await self._ws.close()
            except (WebSocketDisconnect, RuntimeError) as exc:
                LOGGER.debug("Twilio socket already closed: %s", exc)

        self._state = CallState.CLOSED
        LOGGER.info("Call %s closed", self._call_sid)
