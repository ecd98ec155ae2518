"""Per-call assistant instructions and realtime session configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from agents.lead_capture import LEAD_TOOL_SCHEMA
from config.clients import ClientConfig
from config.settings import Settings
from prompts.loader import load_prompt

RECEPTIONIST_PROMPT = load_prompt("receptionist.txt")

EMERGENCY_TEMPLATE = (
    "If the caller mentions any of these: {keywords}, treat the job as an "
    "emergency, set urgency to high and reassure them it will be passed on straight away.\n"
)


@dataclass(frozen=True)
class RealtimeSessionConfig:
    """Everything pushed to the backend in the one ``session.update``."""

    instructions: str
    voice: str
    input_audio_format: str = "g711_ulaw"
    output_audio_format: str = "g711_ulaw"
    modalities: tuple[str, ...] = ("audio", "text")
    turn_detection: dict[str, Any] = field(
        default_factory=lambda: {
            "type": "server_vad",
            "silence_duration_ms": 2000,
            "prefix_padding_ms": 400,
        }
    )
    tools: tuple[dict[str, Any], ...] = (LEAD_TOOL_SCHEMA,)
    tool_choice: str = "auto"


def build_instructions(client: ClientConfig) -> str:
    if client.assistant_instructions:
        return client.assistant_instructions

    emergency_section = ""
    if client.emergency_enabled and client.emergency_keywords:
        emergency_section = EMERGENCY_TEMPLATE.format(keywords=", ".join(client.emergency_keywords))

    return RECEPTIONIST_PROMPT.format(
        business_name=client.business_name,
        tone=client.tone,
        services=", ".join(client.services) or "general services",
        emergency_section=emergency_section,
    )


def build_session_config(client: ClientConfig, settings: Settings) -> RealtimeSessionConfig:
    return RealtimeSessionConfig(
        instructions=build_instructions(client),
        voice=client.voice or settings.realtime_default_voice,
        input_audio_format=settings.realtime_audio_format,
        output_audio_format=settings.realtime_audio_format,
        turn_detection={
            "type": "server_vad",
            "silence_duration_ms": settings.vad_silence_duration_ms,
            "prefix_padding_ms": settings.vad_prefix_padding_ms,
        },
    )


def build_greeting(client: ClientConfig) -> str:
    return client.greeting or (
        f"Hi, you're through to {client.business_name}. Please speak after the tone."
    )
