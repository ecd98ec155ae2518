from __future__ import annotations

import json

import pytest

from agents.errors import DecodeError
from agents.receptionist import RealtimeSessionConfig
from bridge.codec import (
    RealtimeEventKind,
    TelephonyEventKind,
    decode_realtime_message,
    decode_telephony_message,
    encode_audio_append,
    encode_session_update,
    encode_telephony_media,
)


def test_decode_telephony_start_carries_stream_sid():
    frame = decode_telephony_message(
        json.dumps(
            {
                "event": "start",
                "start": {"streamSid": "MZ123", "callSid": "CA9", "customParameters": {"to": "+44"}},
            }
        )
    )
    assert frame.kind is TelephonyEventKind.START
    assert frame.stream_sid == "MZ123"
    assert frame.call_sid == "CA9"
    assert frame.custom_parameters == {"to": "+44"}


def test_decode_telephony_media_and_stop():
    media = decode_telephony_message('{"event": "media", "media": {"payload": "//79"}}')
    assert media.kind is TelephonyEventKind.MEDIA
    assert media.audio == "//79"

    stop = decode_telephony_message(b'{"event": "stop", "stop": {}}')
    assert stop.kind is TelephonyEventKind.STOP
    assert stop.audio is None


def test_decode_telephony_unknown_event_is_ignored_not_error():
    frame = decode_telephony_message('{"event": "mark", "mark": {"name": "x"}}')
    assert frame.kind is TelephonyEventKind.OTHER
    assert frame.event == "mark"


def test_decode_telephony_outbound_track_is_ignored():
    frame = decode_telephony_message('{"event": "media", "media": {"track": "outbound", "payload": "AA"}}')
    assert frame.kind is TelephonyEventKind.OTHER


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[1, 2]",
        '{"no_event": true}',
        '{"event": "start", "start": {}}',
        '{"event": "media", "media": {}}',
    ],
)
def test_decode_telephony_malformed_raises_decode_error_with_raw(raw):
    with pytest.raises(DecodeError) as excinfo:
        decode_telephony_message(raw)
    assert excinfo.value.raw == raw


def test_encode_telephony_media_passes_audio_through():
    envelope = json.loads(encode_telephony_media("MZ1", "abc+/="))
    assert envelope == {"event": "media", "streamSid": "MZ1", "media": {"payload": "abc+/="}}


@pytest.mark.parametrize("stream_sid", [None, ""])
def test_encode_telephony_media_requires_stream_sid(stream_sid):
    with pytest.raises(ValueError):
        encode_telephony_media(stream_sid, "abc")


def test_both_audio_delta_shapes_normalise_to_one_event():
    new_shape = decode_realtime_message('{"type": "response.output_audio.delta", "audio": "QUJD"}')
    old_shape = decode_realtime_message('{"type": "response.audio.delta", "delta": "QUJD"}')

    for event in (new_shape, old_shape):
        assert event.kind is RealtimeEventKind.AUDIO_DELTA
        assert event.audio == "QUJD"
        assert not event.is_terminal


def test_audio_delta_without_payload_is_not_audio():
    event = decode_realtime_message('{"type": "response.audio.delta"}')
    assert event.kind is RealtimeEventKind.OTHER


@pytest.mark.parametrize(
    ("msg_type", "kind"),
    [
        ("response.completed", RealtimeEventKind.RESPONSE_COMPLETED),
        ("response.done", RealtimeEventKind.RESPONSE_COMPLETED),
        ("response.error", RealtimeEventKind.RESPONSE_ERROR),
    ],
)
def test_terminal_events(msg_type, kind):
    event = decode_realtime_message(json.dumps({"type": msg_type}))
    assert event.kind is kind
    assert event.is_terminal


def test_backend_error_event_is_not_terminal():
    event = decode_realtime_message('{"type": "error", "error": {"message": "bad"}}')
    assert event.kind is RealtimeEventKind.ERROR
    assert not event.is_terminal


def test_function_call_item_is_decoded_as_tool_call():
    event = decode_realtime_message(
        json.dumps(
            {
                "type": "response.output_item.added",
                "item": {
                    "type": "function_call",
                    "name": "capture_lead",
                    "call_id": "call_1",
                    "arguments": '{"name": "Jo"}',
                },
            }
        )
    )
    assert event.kind is RealtimeEventKind.TOOL_CALL
    assert event.tool_call.name == "capture_lead"
    assert event.tool_call.call_id == "call_1"
    assert event.tool_call.arguments == '{"name": "Jo"}'


def test_non_function_output_item_is_other():
    event = decode_realtime_message(
        '{"type": "response.output_item.added", "item": {"type": "message", "content": []}}'
    )
    assert event.kind is RealtimeEventKind.OTHER


def test_arguments_done_without_name_is_other():
    event = decode_realtime_message(
        '{"type": "response.function_call_arguments.done", "call_id": "c", "arguments": "{}"}'
    )
    assert event.kind is RealtimeEventKind.OTHER


def test_decode_realtime_malformed():
    with pytest.raises(DecodeError):
        decode_realtime_message("{oops")
    with pytest.raises(DecodeError):
        decode_realtime_message('{"no_type": 1}')


def test_session_update_carries_full_configuration():
    config = RealtimeSessionConfig(instructions="Hello", voice="verse")
    message = json.loads(encode_session_update(config))

    assert message["type"] == "session.update"
    session = message["session"]
    assert session["instructions"] == "Hello"
    assert session["voice"] == "verse"
    assert session["input_audio_format"] == "g711_ulaw"
    assert session["output_audio_format"] == "g711_ulaw"
    assert session["turn_detection"]["type"] == "server_vad"
    assert session["tool_choice"] == "auto"
    assert [tool["name"] for tool in session["tools"]] == ["capture_lead"]


def test_audio_append_shape():
    assert json.loads(encode_audio_append("a1")) == {"type": "input_audio_buffer.append", "audio": "a1"}
