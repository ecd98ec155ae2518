"""Deliver captured leads to an HTTP webhook."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from agents.schemas import LeadEnvelope

LOGGER = logging.getLogger(__name__)


class WebhookLeadSink:
    """POSTs each lead as JSON to a configured endpoint."""

    name = "webhook"

    def __init__(
        self,
        endpoint: str,
        *,
        api_key: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not endpoint:
            raise ValueError("Lead webhook endpoint is not configured.")
        self._endpoint = endpoint
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    async def deliver(self, envelope: LeadEnvelope) -> None:
        payload: dict[str, Any] = envelope.model_dump(mode="json")
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.post(
                self._endpoint,
                json=payload,
                headers=headers,
            )
        try:
            response.raise_for_status()
        except httpx.HTTPError as exc:
            LOGGER.error("Lead webhook delivery failed: %s", exc)
            raise
        LOGGER.info("Lead for %s posted to webhook", envelope.business_name)
