"""FastAPI routes: health, stored leads and the Twilio integration."""

from __future__ import annotations

from fastapi import APIRouter, Query

from api.schemas import HealthResponse, LeadResponse
from api.twilio_routes import router as twilio_router
from db.repository import LeadRepository

router = APIRouter()
router.include_router(twilio_router)


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()


@router.get("/leads", response_model=list[LeadResponse])
async def list_leads(
    business: str | None = None,
    limit: int = Query(default=50, ge=1, le=500),
) -> list[LeadResponse]:
    repo = LeadRepository()
    leads = await repo.list_leads(business_name=business, limit=limit)
    return [LeadResponse.model_validate(lead) for lead in leads]
