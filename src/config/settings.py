"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["local", "dev", "prod"] = Field(default="local")
    log_level: str = Field(default="INFO")

    # Realtime backend
    openai_api_key: str | None = Field(default=None)
    openai_realtime_model: str = Field(default="gpt-4o-realtime-preview")
    openai_realtime_url: str = Field(default="wss://api.openai.com/v1/realtime")
    realtime_default_voice: str = Field(default="alloy")
    realtime_audio_format: str = Field(
        default="g711_ulaw",
        description="Input/output audio format tag. Twilio streams 8 kHz mu-law.",
    )
    vad_silence_duration_ms: int = Field(default=2000, ge=0)
    vad_prefix_padding_ms: int = Field(default=400, ge=0)
    turn_timeout_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="Release a response request that never saw a terminal event. 0 disables.",
    )

    # Public URL for Twilio callbacks and the media stream
    public_base_url: str | None = Field(
        default=None,
        description="Public base URL for Twilio webhooks (e.g. https://<ngrok>.ngrok-free.app).",
    )

    # Per-business configuration
    clients_dir: Path = Field(
        default=Path("./clients"),
        description="Directory holding one JSON client config per business.",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/leads.db",
        description="SQLAlchemy connection string.",
    )
    auto_create_db_schema: bool = Field(
        default=True,
        description="If true, creates tables automatically on startup (useful for local/dev).",
    )
    store_leads: bool = Field(default=True, description="Persist every captured lead.")

    # Lead delivery
    resend_api_key: str | None = Field(default=None)
    lead_email_from: str = Field(default="AI Reception <reception@example.com>")
    lead_webhook_url: str | None = Field(
        default=None,
        description="Fallback webhook for clients without their own lead_webhook_url.",
    )
    lead_webhook_api_key: str | None = Field(default=None)
    lead_webhook_timeout_seconds: float = Field(default=30.0, gt=0.0)

    # Twilio
    twilio_auth_token: str | None = Field(default=None)
    twilio_validate_signatures: bool = Field(
        default=False,
        description="If true, rejects voice webhooks without a valid X-Twilio-Signature.",
    )

    data_dir: Path = Field(default=Path("./data"))

    @field_validator("data_dir")
    @classmethod
    def ensure_data_dir(cls, value: Path) -> Path:
        value.mkdir(parents=True, exist_ok=True)
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
