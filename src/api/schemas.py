"""API-facing Pydantic models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class HealthResponse(BaseModel):
    status: str = "ok"


class LeadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    business_name: str
    source: str
    call_sid: str | None
    called_number: str | None
    name: str
    phone: str
    email: str | None
    address: str
    postcode: str
    job_type: str
    description: str
    urgency: str
    company: str | None
    how_found: str | None
    captured_at: datetime
