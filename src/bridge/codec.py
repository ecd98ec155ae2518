"""Wire codecs for the two WebSocket protocols joined by the bridge.

Pure functions only. Audio chunks are base64 strings in the provider-native
encoding and pass through untouched; nothing here transcodes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from agents.errors import DecodeError
from agents.receptionist import RealtimeSessionConfig


class TelephonyEventKind(str, Enum):
    START = "start"
    MEDIA = "media"
    STOP = "stop"
    OTHER = "other"


@dataclass(frozen=True)
class TelephonyFrame:
    kind: TelephonyEventKind
    event: str
    stream_sid: str | None = None
    audio: str | None = None
    call_sid: str | None = None
    custom_parameters: dict[str, str] = field(default_factory=dict)


class RealtimeEventKind(str, Enum):
    AUDIO_DELTA = "audio_delta"
    RESPONSE_COMPLETED = "response_completed"
    RESPONSE_ERROR = "response_error"
    TOOL_CALL = "tool_call"
    ERROR = "error"
    OTHER = "other"


TERMINAL_KINDS = frozenset({RealtimeEventKind.RESPONSE_COMPLETED, RealtimeEventKind.RESPONSE_ERROR})

# Both audio delta shapes seen across backend versions.
_AUDIO_DELTA_TYPES = {
    "response.output_audio.delta": ("audio", "delta"),
    "response.audio.delta": ("delta", "audio"),
}
_COMPLETED_TYPES = {"response.completed", "response.done"}
_TOOL_ITEM_TYPES = {"response.output_item.added", "response.output_item.done"}


@dataclass(frozen=True)
class ToolCall:
    name: str
    arguments: str
    call_id: str | None = None


@dataclass(frozen=True)
class RealtimeEvent:
    kind: RealtimeEventKind
    type: str
    audio: str | None = None
    tool_call: ToolCall | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS


def _load_object(raw: str | bytes) -> dict[str, Any]:
    try:
        message = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise DecodeError(raw, "Payload is not valid JSON.") from exc
    if not isinstance(message, dict):
        raise DecodeError(raw, "Payload is not a JSON object.")
    return message


# Telephony (Twilio Media Streams)


def encode_telephony_media(stream_sid: str | None, audio: str) -> str:
    """Wrap a model audio chunk in a Twilio ``media`` event."""

    if not stream_sid:
        raise ValueError("stream_sid is required before audio can be sent to the caller")
    return json.dumps({"event": "media", "streamSid": stream_sid, "media": {"payload": audio}})


def decode_telephony_message(raw: str | bytes) -> TelephonyFrame:
    message = _load_object(raw)
    event = message.get("event")
    if not isinstance(event, str):
        raise DecodeError(raw, "Telephony message has no event.")

    if event == "start":
        start = message.get("start")
        if not isinstance(start, dict):
            raise DecodeError(raw, "start event without start block.")
        stream_sid = start.get("streamSid") or message.get("streamSid")
        if not isinstance(stream_sid, str) or not stream_sid:
            raise DecodeError(raw, "start event without streamSid.")
        params = start.get("customParameters")
        return TelephonyFrame(
            kind=TelephonyEventKind.START,
            event=event,
            stream_sid=stream_sid,
            call_sid=start.get("callSid"),
            custom_parameters=dict(params) if isinstance(params, dict) else {},
        )

    if event == "media":
        media = message.get("media")
        if not isinstance(media, dict):
            raise DecodeError(raw, "media event without media block.")
        if media.get("track") not in (None, "inbound"):
            return TelephonyFrame(kind=TelephonyEventKind.OTHER, event=event)
        payload = media.get("payload")
        if not isinstance(payload, str) or not payload:
            raise DecodeError(raw, "media event without payload.")
        return TelephonyFrame(
            kind=TelephonyEventKind.MEDIA,
            event=event,
            stream_sid=message.get("streamSid"),
            audio=payload,
        )

    if event == "stop":
        return TelephonyFrame(kind=TelephonyEventKind.STOP, event=event, stream_sid=message.get("streamSid"))

    return TelephonyFrame(kind=TelephonyEventKind.OTHER, event=event)


# Realtime backend


def encode_session_update(config: RealtimeSessionConfig) -> str:
    return json.dumps(
        {
            "type": "session.update",
            "session": {
                "instructions": config.instructions,
                "voice": config.voice,
                "input_audio_format": config.input_audio_format,
                "output_audio_format": config.output_audio_format,
                "modalities": list(config.modalities),
                "turn_detection": dict(config.turn_detection),
                "tools": list(config.tools),
                "tool_choice": config.tool_choice,
            },
        }
    )


def encode_audio_append(audio: str) -> str:
    return json.dumps({"type": "input_audio_buffer.append", "audio": audio})


def encode_response_create() -> str:
    # Instructions and tools already live on the session.
    return json.dumps({"type": "response.create", "response": {}})


def encode_audio_commit() -> str:
    return json.dumps({"type": "input_audio_buffer.commit"})


def _tool_call_from(message: dict[str, Any], raw: str | bytes) -> ToolCall | None:
    msg_type = message["type"]
    if msg_type in _TOOL_ITEM_TYPES:
        item = message.get("item")
        if not isinstance(item, dict) or item.get("type") != "function_call":
            return None
        source = item
    else:
        source = message

    name = source.get("name")
    arguments = source.get("arguments") or ""
    if name is None and source is message:
        # Older backends omit the name on the arguments-done event.
        return None
    if not isinstance(name, str) or not isinstance(arguments, str):
        raise DecodeError(raw, "Function call without name or string arguments.")
    call_id = source.get("call_id")
    return ToolCall(name=name, arguments=arguments, call_id=call_id if isinstance(call_id, str) else None)


def decode_realtime_message(raw: str | bytes) -> RealtimeEvent:
    message = _load_object(raw)
    msg_type = message.get("type")
    if not isinstance(msg_type, str):
        raise DecodeError(raw, "Realtime message has no type.")

    if msg_type in _AUDIO_DELTA_TYPES:
        audio = None
        for field_name in _AUDIO_DELTA_TYPES[msg_type]:
            value = message.get(field_name)
            if isinstance(value, str) and value:
                audio = value
                break
        if audio is None:
            return RealtimeEvent(kind=RealtimeEventKind.OTHER, type=msg_type, raw=message)
        return RealtimeEvent(kind=RealtimeEventKind.AUDIO_DELTA, type=msg_type, audio=audio, raw=message)

    if msg_type in _COMPLETED_TYPES:
        return RealtimeEvent(kind=RealtimeEventKind.RESPONSE_COMPLETED, type=msg_type, raw=message)

    if msg_type == "response.error":
        return RealtimeEvent(kind=RealtimeEventKind.RESPONSE_ERROR, type=msg_type, raw=message)

    if msg_type == "error":
        return RealtimeEvent(kind=RealtimeEventKind.ERROR, type=msg_type, raw=message)

    if msg_type in _TOOL_ITEM_TYPES or msg_type == "response.function_call_arguments.done":
        tool_call = _tool_call_from(message, raw)
        if tool_call is not None:
            return RealtimeEvent(kind=RealtimeEventKind.TOOL_CALL, type=msg_type, tool_call=tool_call, raw=message)

    return RealtimeEvent(kind=RealtimeEventKind.OTHER, type=msg_type, raw=message)
