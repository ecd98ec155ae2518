"""Pydantic schemas for captured leads."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Urgency = Literal["low", "medium", "high"]

LEAD_SOURCE_PHONE = "phone_call"


class LeadRecord(BaseModel):
    """Caller contact and job details captured by the ``capture_lead`` tool."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    phone: str
    address: str
    postcode: str
    job_type: str
    description: str
    urgency: Urgency
    company: str | None = None
    how_found: str | None = None
    email: str | None = None

    @field_validator("name", "phone", "address", "postcode", "job_type", "description")
    @classmethod
    def text_not_empty(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("Field may not be empty.")
        return text

    @field_validator("urgency", mode="before")
    @classmethod
    def normalise_urgency(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("company", "how_found", "email", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class LeadEnvelope(BaseModel):
    """A lead annotated with the call it came from, as handed to delivery."""

    model_config = ConfigDict(frozen=True)

    lead: LeadRecord
    business_name: str
    source: str = LEAD_SOURCE_PHONE
    call_sid: str | None = None
    stream_sid: str | None = None
    called_number: str | None = None
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
