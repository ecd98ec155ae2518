"""Per-business client configuration.

Each business lives in its own JSON file under ``clients_dir``. Calls are
matched to a business by the dialled number; ``default.json`` catches the
rest.
"""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from config.settings import get_settings

LOGGER = logging.getLogger(__name__)

DEFAULT_CLIENT_FILE = "default.json"


class ClientConfig(BaseModel):
    """Configuration for one business answering through the bridge."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    business_name: str = "Our Business"
    phone_number: str | None = None
    language: str = "en-GB"
    tone: str = "professional"
    voice: str | None = None
    services: list[str] = Field(default_factory=list)
    emergency_enabled: bool = False
    emergency_keywords: list[str] = Field(default_factory=list)
    lead_email: str | None = None
    lead_webhook_url: str | None = None
    assistant_instructions: str | None = None
    greeting: str | None = None


FALLBACK_CLIENT = ClientConfig()


def normalise_number(number: str | None) -> str | None:
    """Reduce a phone number to ``+`` and digits for matching."""

    if not number:
        return None
    digits = re.sub(r"[^\d+]", "", number.strip())
    if digits.startswith("00"):
        digits = "+" + digits[2:]
    return digits or None


class ClientConfigStore:
    """Loads client configs once and resolves them by dialled number."""

    def __init__(self, clients_dir: Path) -> None:
        self._clients_dir = clients_dir
        self._by_number: dict[str, ClientConfig] = {}
        self._default: ClientConfig | None = None
        self._load()

    def _load(self) -> None:
        if not self._clients_dir.is_dir():
            LOGGER.error("Client config directory %s not found", self._clients_dir)
            return

        for path in sorted(self._clients_dir.glob("*.json")):
            try:
                client = ClientConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
            except (OSError, json.JSONDecodeError, ValidationError) as exc:
                LOGGER.error("Skipping invalid client config %s: %s", path.name, exc)
                continue

            if path.name == DEFAULT_CLIENT_FILE:
                self._default = client
            number = normalise_number(client.phone_number)
            if number:
                if number in self._by_number:
                    LOGGER.warning("Duplicate client phone number %s in %s", number, path.name)
                self._by_number[number] = client

        LOGGER.info(
            "Loaded %d numbered client configs from %s (default=%s)",
            len(self._by_number),
            self._clients_dir,
            self._default is not None,
        )

    def resolve(self, dialled_number: str | None = None) -> ClientConfig:
        number = normalise_number(dialled_number)
        if number and number in self._by_number:
            return self._by_number[number]
        if self._default is not None:
            return self._default
        LOGGER.error("No client config for %s and no %s; using fallback", number, DEFAULT_CLIENT_FILE)
        return FALLBACK_CLIENT


@lru_cache(maxsize=1)
def get_client_store() -> ClientConfigStore:
    return ClientConfigStore(get_settings().clients_dir)
