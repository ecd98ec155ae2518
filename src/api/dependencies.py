"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from agents.receptionist import build_session_config
from bridge.call_bridge import SessionFactory
from bridge.connection import Connector, build_realtime_connector
from bridge.realtime_session import start_realtime_session
from config.clients import ClientConfig, ClientConfigStore, get_client_store
from config.settings import Settings, get_settings
from integrations.lead_delivery import LeadDispatcher, build_lead_dispatcher


@dataclass(frozen=True)
class CallWiring:
    """Builds the per-call collaborators for a resolved client."""

    settings: Settings
    connector: Connector

    def session_factory(self, client: ClientConfig, call_id: str) -> SessionFactory:
        config = build_session_config(client, self.settings)

        def factory():
            return start_realtime_session(
                config,
                connector=self.connector,
                turn_timeout_seconds=self.settings.turn_timeout_seconds,
                call_id=call_id,
            )

        return factory

    def dispatcher(self, client: ClientConfig) -> LeadDispatcher:
        return build_lead_dispatcher(client, self.settings)


@lru_cache(maxsize=1)
def _wiring_factory() -> CallWiring:
    settings = get_settings()
    return CallWiring(settings=settings, connector=build_realtime_connector(settings))


def get_call_wiring() -> CallWiring:
    return _wiring_factory()


def get_clients() -> ClientConfigStore:
    return get_client_store()
