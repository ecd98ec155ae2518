"""Twilio Voice integration.

This module provides:
- Voice webhook (TwiML) that greets the caller and connects a Media Stream.
- Media Stream WebSocket that bridges the call to the realtime backend.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode
from xml.sax.saxutils import escape, quoteattr

from fastapi import APIRouter, Depends, HTTPException, Request, Response, WebSocket

from agents.receptionist import build_greeting
from api.dependencies import CallWiring, get_call_wiring, get_clients
from bridge.call_bridge import CallBridge
from config.clients import ClientConfigStore
from config.settings import get_settings
from integrations.twilio_signature import is_valid_twilio_request

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/twilio", tags=["twilio"])

MEDIA_STREAM_PATH = "/api/twilio/media-stream"


def _twiml_response(xml: str) -> Response:
    # Twilio expects application/xml
    return Response(content=xml, media_type="application/xml")


def _to_ws_url(http_url: str) -> str:
    if http_url.startswith("https://"):
        return "wss://" + http_url.removeprefix("https://")
    if http_url.startswith("http://"):
        return "ws://" + http_url.removeprefix("http://")
    return http_url


def _public_base(request: Request) -> str:
    settings = get_settings()
    if settings.public_base_url:
        return settings.public_base_url.rstrip("/")
    # Fallback to request host. This may not work behind proxies; prefer PUBLIC_BASE_URL.
    return str(request.base_url).rstrip("/")


def _twiml_connect_stream(*, say_text: str, language: str, stream_url: str) -> str:
    say = escape(say_text)
    lang = quoteattr(language)
    stream = quoteattr(stream_url)
    return (
        "<?xml version=\"1.0\" encoding=\"UTF-8\"?>"
        "<Response>"
        f"<Say voice=\"alice\" language={lang}>{say}</Say>"
        "<Connect>"
        f"<Stream url={stream} />"
        "</Connect>"
        "</Response>"
    )


@router.post("/voice")
async def twilio_voice_webhook(
    request: Request,
    clients: ClientConfigStore = Depends(get_clients),
) -> Response:
    settings = get_settings()
    form = await request.form()
    params = {key: str(value) for key, value in form.items()}

    if settings.twilio_validate_signatures:
        url = str(request.url)
        if settings.public_base_url:
            url = f"{settings.public_base_url.rstrip('/')}{request.url.path}"
        if not is_valid_twilio_request(
            auth_token=settings.twilio_auth_token,
            url=url,
            params=params,
            signature=request.headers.get("X-Twilio-Signature"),
        ):
            LOGGER.warning("Rejected Twilio voice webhook with invalid signature")
            raise HTTPException(status_code=403, detail="Invalid Twilio signature")

    call_sid = params.get("CallSid", "").strip() or "unknown"
    to_number = params.get("To", "").strip()
    client = clients.resolve(to_number or None)
    LOGGER.info("Incoming call %s to %s for %s", call_sid, to_number or "?", client.business_name)

    query = urlencode({"to": to_number, "callSid": call_sid})
    stream_url = _to_ws_url(_public_base(request) + MEDIA_STREAM_PATH) + "?" + query

    return _twiml_response(
        _twiml_connect_stream(
            say_text=build_greeting(client),
            language=client.language,
            stream_url=stream_url,
        )
    )


@router.websocket("/media-stream")
async def twilio_media_stream(
    websocket: WebSocket,
    clients: ClientConfigStore = Depends(get_clients),
    wiring: CallWiring = Depends(get_call_wiring),
) -> None:
    await websocket.accept()
    to_number = websocket.query_params.get("to") or None
    call_sid = websocket.query_params.get("callSid") or None
    client = clients.resolve(to_number)

    bridge = CallBridge(
        websocket,
        client,
        session_factory=wiring.session_factory(client, call_sid or "unknown"),
        dispatcher=wiring.dispatcher(client),
        call_sid=call_sid,
        called_number=to_number,
    )
    await bridge.run()
