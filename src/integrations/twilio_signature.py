"""Validation of Twilio webhook signatures."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from twilio.request_validator import RequestValidator

LOGGER = logging.getLogger(__name__)


def is_valid_twilio_request(
    *,
    auth_token: str | None,
    url: str,
    params: Mapping[str, str],
    signature: str | None,
) -> bool:
    """Check ``X-Twilio-Signature`` against the request URL and form params."""

    if not auth_token:
        LOGGER.error("Twilio signature validation enabled without TWILIO_AUTH_TOKEN")
        return False
    if not signature:
        return False
    return RequestValidator(auth_token).validate(url, dict(params), signature)
