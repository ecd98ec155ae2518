"""The ``capture_lead`` tool exposed to the realtime backend."""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from agents.errors import ToolArgumentError
from agents.schemas import LeadRecord

LEAD_TOOL_NAME = "capture_lead"

LEAD_TOOL_SCHEMA: dict[str, Any] = {
    "type": "function",
    "name": LEAD_TOOL_NAME,
    "description": "Capture a fully qualified service lead from the caller.",
    "parameters": {
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "Caller full name"},
            "phone": {"type": "string", "description": "Best contact phone number"},
            "email": {"type": "string", "description": "Email address if provided"},
            "address": {
                "type": "string",
                "description": "Full address including street, town, etc.",
            },
            "postcode": {"type": "string", "description": "UK postcode"},
            "job_type": {
                "type": "string",
                "description": "Short job type/category, e.g. 'consumer unit upgrade'",
            },
            "description": {
                "type": "string",
                "description": "Detailed description of the issue or work requested",
            },
            "urgency": {
                "type": "string",
                "enum": ["low", "medium", "high"],
                "description": "How urgent the job is from the caller's perspective",
            },
            "company": {
                "type": "string",
                "description": "Company name for commercial callers",
            },
            "how_found": {
                "type": "string",
                "description": "How the caller found the business (Google, referral, etc.)",
            },
        },
        "required": [
            "name",
            "phone",
            "address",
            "postcode",
            "job_type",
            "description",
            "urgency",
        ],
    },
}


def parse_lead_arguments(arguments: str) -> LeadRecord:
    """Parse the JSON-encoded arguments string of a ``capture_lead`` call.

    Raises ToolArgumentError when the payload is not JSON or does not
    validate as a LeadRecord.
    """

    try:
        payload = json.loads(arguments)
    except (TypeError, json.JSONDecodeError) as exc:
        raise ToolArgumentError(arguments, "Lead arguments are not valid JSON.") from exc

    if not isinstance(payload, dict):
        raise ToolArgumentError(arguments, "Lead arguments must be a JSON object.")

    try:
        return LeadRecord.model_validate(payload)
    except ValidationError as exc:
        missing = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        raise ToolArgumentError(
            arguments, f"Lead arguments failed validation: {', '.join(missing)}"
        ) from exc
