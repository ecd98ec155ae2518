"""SQLAlchemy models for captured leads."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class Lead(Base):
    """One lead captured during a phone call."""

    __tablename__ = "leads"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    business_name: Mapped[str] = mapped_column(String(255), index=True)
    source: Mapped[str] = mapped_column(String(32))
    call_sid: Mapped[str | None] = mapped_column(String(64), index=True)
    stream_sid: Mapped[str | None] = mapped_column(String(64))
    called_number: Mapped[str | None] = mapped_column(String(32))

    name: Mapped[str] = mapped_column(String(255))
    phone: Mapped[str] = mapped_column(String(64))
    email: Mapped[str | None] = mapped_column(String(255))
    address: Mapped[str] = mapped_column(Text())
    postcode: Mapped[str] = mapped_column(String(16))
    job_type: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text())
    urgency: Mapped[str] = mapped_column(String(8))
    company: Mapped[str | None] = mapped_column(String(255))
    how_found: Mapped[str | None] = mapped_column(String(255))

    payload: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    captured_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(timezone.utc), index=True)
