"""Fan-out of captured leads to their delivery collaborators.

A delivery failure is logged and reported per sink; it never reaches the call.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol

from agents.schemas import LeadEnvelope
from config.clients import ClientConfig
from config.settings import Settings
from db.repository import LeadRepository
from integrations.lead_email import EmailLeadSink
from integrations.lead_webhook import WebhookLeadSink

LOGGER = logging.getLogger(__name__)


class LeadSink(Protocol):
    name: str

    async def deliver(self, envelope: LeadEnvelope) -> None: ...


class DatabaseLeadSink:
    name = "database"

    def __init__(self, repository: LeadRepository | None = None) -> None:
        self._repo = repository or LeadRepository()

    async def deliver(self, envelope: LeadEnvelope) -> None:
        stored = await self._repo.add_lead(envelope)
        LOGGER.info("Lead %s stored for %s", stored.id, envelope.business_name)


class LeadDispatcher:
    """Delivers one lead to every sink concurrently."""

    def __init__(self, sinks: Sequence[LeadSink]) -> None:
        self._sinks = list(sinks)

    @property
    def sinks(self) -> list[LeadSink]:
        return list(self._sinks)

    async def dispatch(self, envelope: LeadEnvelope) -> dict[str, bool]:
        if not self._sinks:
            LOGGER.warning("No lead delivery configured for %s; lead not delivered", envelope.business_name)
            return {}

        results = await asyncio.gather(
            *(sink.deliver(envelope) for sink in self._sinks),
            return_exceptions=True,
        )
        outcome: dict[str, bool] = {}
        for sink, result in zip(self._sinks, results):
            if isinstance(result, BaseException):
                LOGGER.error(
                    "Lead delivery via %s failed for %s: %s",
                    sink.name,
                    envelope.business_name,
                    result,
                    exc_info=result,
                )
                outcome[sink.name] = False
            else:
                outcome[sink.name] = True
        return outcome


def build_lead_dispatcher(client: ClientConfig, settings: Settings) -> LeadDispatcher:
    sinks: list[LeadSink] = []
    if settings.store_leads:
        sinks.append(DatabaseLeadSink())

    if client.lead_email:
        if settings.resend_api_key:
            sinks.append(
                EmailLeadSink(
                    api_key=settings.resend_api_key,
                    sender=settings.lead_email_from,
                    recipient=client.lead_email,
                )
            )
        else:
            LOGGER.warning("RESEND_API_KEY not set; email delivery to %s disabled", client.lead_email)

    webhook_url = client.lead_webhook_url or settings.lead_webhook_url
    if webhook_url:
        sinks.append(
            WebhookLeadSink(
                webhook_url,
                api_key=settings.lead_webhook_api_key,
                timeout=settings.lead_webhook_timeout_seconds,
            )
        )
    return LeadDispatcher(sinks)
