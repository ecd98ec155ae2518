"""Repository for persisting and listing captured leads."""

from __future__ import annotations

from sqlalchemy import desc, select

from agents.schemas import LeadEnvelope
from db.base import AsyncSessionFactory
from db.models import Lead


class LeadRepository:
    """Async repository encapsulating lead storage."""

    async def add_lead(self, envelope: LeadEnvelope) -> Lead:
        lead = envelope.lead
        async with AsyncSessionFactory() as session:
            row = Lead(
                business_name=envelope.business_name,
                source=envelope.source,
                call_sid=envelope.call_sid,
                stream_sid=envelope.stream_sid,
                called_number=envelope.called_number,
                name=lead.name,
                phone=lead.phone,
                email=lead.email,
                address=lead.address,
                postcode=lead.postcode,
                job_type=lead.job_type,
                description=lead.description,
                urgency=lead.urgency,
                company=lead.company,
                how_found=lead.how_found,
                payload=lead.model_dump(mode="json"),
                captured_at=envelope.captured_at,
            )
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return row

    async def list_leads(
        self,
        *,
        business_name: str | None = None,
        limit: int = 50,
    ) -> list[Lead]:
        async with AsyncSessionFactory() as session:
            query = select(Lead).order_by(desc(Lead.captured_at), desc(Lead.id)).limit(limit)
            if business_name:
                query = query.where(Lead.business_name == business_name)
            result = await session.execute(query)
            return list(result.scalars().all())
