from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from agents.schemas import LeadEnvelope, LeadRecord
from config.clients import ClientConfig
from config.settings import Settings
from integrations import lead_email
from integrations.lead_delivery import DatabaseLeadSink, LeadDispatcher, build_lead_dispatcher
from integrations.lead_email import EmailLeadSink
from integrations.lead_webhook import WebhookLeadSink

LEAD = LeadRecord(
    name="Jo Bloggs",
    phone="07700 900123",
    address="12 High Street, Croydon",
    postcode="CR0 1AA",
    job_type="rewire",
    description="Lights flicker.",
    urgency="high",
    company="Bloggs Ltd",
)


def _envelope(**overrides) -> LeadEnvelope:
    data = {"lead": LEAD, "business_name": "Sparks Electrical", "call_sid": "CA1"}
    data.update(overrides)
    return LeadEnvelope(**data)


def _run(coro):
    return asyncio.run(coro)


class RecordingSink:
    name = "recording"

    def __init__(self) -> None:
        self.envelopes: list[LeadEnvelope] = []

    async def deliver(self, envelope: LeadEnvelope) -> None:
        self.envelopes.append(envelope)


class BrokenSink:
    name = "broken"

    async def deliver(self, envelope: LeadEnvelope) -> None:
        raise RuntimeError("down")


def test_dispatcher_reports_per_sink_outcome():
    recording = RecordingSink()
    dispatcher = LeadDispatcher([recording, BrokenSink()])

    outcome = _run(dispatcher.dispatch(_envelope()))

    assert outcome == {"recording": True, "broken": False}
    assert recording.envelopes[0].lead.name == "Jo Bloggs"


def test_dispatcher_without_sinks_is_a_noop():
    assert _run(LeadDispatcher([]).dispatch(_envelope())) == {}


def test_webhook_posts_envelope_json():
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"ok": True})

    sink = WebhookLeadSink(
        "https://hooks.example.com/leads",
        api_key="secret",
        transport=httpx.MockTransport(handler),
    )
    _run(sink.deliver(_envelope()))

    assert len(requests) == 1
    request = requests[0]
    assert request.headers["Authorization"] == "Bearer secret"
    body = json.loads(request.content)
    assert body["business_name"] == "Sparks Electrical"
    assert body["source"] == "phone_call"
    assert body["lead"]["postcode"] == "CR0 1AA"


def test_webhook_error_status_raises():
    sink = WebhookLeadSink(
        "https://hooks.example.com/leads",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    with pytest.raises(httpx.HTTPStatusError):
        _run(sink.deliver(_envelope()))


def test_email_render_includes_lead_fields():
    sink = EmailLeadSink(api_key="re_test", sender="AI <ai@example.com>", recipient="owner@example.com")
    email = sink.render(_envelope())

    assert email["to"] == ["owner@example.com"]
    assert email["subject"] == "[URGENT] New Lead for Sparks Electrical"
    assert "Name: Jo Bloggs" in email["text"]
    assert "Company: Bloggs Ltd" in email["text"]
    assert "Email:" not in email["text"]
    assert '"postcode": "CR0 1AA"' in email["text"]


def test_email_deliver_uses_resend(monkeypatch):
    sent: list[dict] = []

    def fake_send(params):
        sent.append(params)
        return {"id": "email_1"}

    monkeypatch.setattr(lead_email.resend.Emails, "send", fake_send)
    sink = EmailLeadSink(api_key="re_test", sender="AI <ai@example.com>", recipient="owner@example.com")
    _run(sink.deliver(_envelope()))

    assert len(sent) == 1
    assert sent[0]["from"] == "AI <ai@example.com>"


def test_build_dispatcher_picks_configured_sinks(tmp_path):
    settings = Settings(
        data_dir=tmp_path,
        store_leads=True,
        resend_api_key="re_test",
        lead_webhook_url="https://hooks.example.com/fallback",
    )
    client = ClientConfig(business_name="Sparks", lead_email="owner@example.com")
    names = [sink.name for sink in build_lead_dispatcher(client, settings).sinks]
    assert names == ["database", "email", "webhook"]


def test_build_dispatcher_skips_email_without_key(tmp_path):
    settings = Settings(data_dir=tmp_path, store_leads=False, resend_api_key=None, lead_webhook_url=None)
    client = ClientConfig(business_name="Sparks", lead_email="owner@example.com")
    assert build_lead_dispatcher(client, settings).sinks == []


def test_database_sink_persists_lead():
    async def scenario():
        from db.base import dispose_db, init_db
        from db.repository import LeadRepository

        await init_db()
        await DatabaseLeadSink().deliver(_envelope(business_name="Stored Co", call_sid="CA-db"))
        leads = await LeadRepository().list_leads(business_name="Stored Co")
        await dispose_db()
        return leads

    leads = _run(scenario())
    assert len(leads) == 1
    assert leads[0].call_sid == "CA-db"
    assert leads[0].urgency == "high"
    assert leads[0].payload["company"] == "Bloggs Ltd"
