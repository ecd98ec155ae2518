"""Deliver captured leads by email through the Resend API."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import resend
from jinja2 import Template

from agents.schemas import LeadEnvelope

LOGGER = logging.getLogger(__name__)

EMAIL_TEMPLATE = """A new enquiry has been received:

Name: {{ lead.name }}
Phone: {{ lead.phone }}
{% if lead.email %}Email: {{ lead.email }}
{% endif %}Address: {{ lead.address }}
Postcode: {{ lead.postcode }}
Job Type: {{ lead.job_type }}
Description: {{ lead.description }}
Urgency: {{ lead.urgency }}
{% if lead.company %}Company: {{ lead.company }}
{% endif %}{% if lead.how_found %}Found us via: {{ lead.how_found }}
{% endif %}Time: {{ captured_at }}

----------------------------
JSON Payload:
{{ payload }}
"""


class EmailLeadSink:
    """Sends one plain-text email per lead to the business's lead address."""

    name = "email"

    def __init__(self, *, api_key: str, sender: str, recipient: str) -> None:
        if not api_key:
            raise ValueError("Resend API key is not configured.")
        if not recipient:
            raise ValueError("Lead email recipient is not configured.")
        self._api_key = api_key
        self._sender = sender
        self._recipient = recipient
        self._template = Template(EMAIL_TEMPLATE)

    def render(self, envelope: LeadEnvelope) -> dict[str, Any]:
        lead = envelope.lead
        body = self._template.render(
            lead=lead,
            captured_at=envelope.captured_at.isoformat(timespec="seconds"),
            payload=json.dumps(lead.model_dump(mode="json"), indent=2),
        )
        subject = f"New Lead for {envelope.business_name}"
        if lead.urgency == "high":
            subject = f"[URGENT] {subject}"
        return {
            "from": self._sender,
            "to": [self._recipient],
            "subject": subject,
            "text": body,
        }

    async def deliver(self, envelope: LeadEnvelope) -> None:
        email_data = self.render(envelope)
        resend.api_key = self._api_key
        # The resend SDK is synchronous.
        response = await asyncio.to_thread(resend.Emails.send, email_data)
        LOGGER.info("Lead email sent to %s (id=%s)", self._recipient, response.get("id"))
