"""
Tests for the pipeline HTTP routes.

The app is built around an engine on a ManualScheduler, so tests move the
pipeline forward with scheduler.advance() between requests.
"""

import pytest
from fastapi.testclient import TestClient

from utils.config import Config
from web.app import create_app

HOT_PAYLOAD = {
    "id": "lst-3001",
    "address": "88 Harbor Rd, Mobile, AL",
    "price": 185000,
    "score": 88,
    "owner_financing": True,
}


@pytest.fixture
def client(engine):
    app = create_app(engine=engine, config=Config())
    with TestClient(app) as test_client:
        yield test_client


def submit(client, payload=HOT_PAYLOAD):
    response = client.post("/pipeline/flows", json=payload)
    assert response.status_code == 201
    return response.json()["flow_id"]


class TestHealth:
    def test_probes(self, client):
        assert client.get("/").json() == {"status": "ok"}
        assert client.get("/health").json() == {"status": "healthy"}


class TestFlowRoutes:
    def test_submit_and_fetch(self, client):
        flow_id = submit(client)

        body = client.get(f"/pipeline/flows/{flow_id}").json()
        assert body["current_stage"] == "discovery"
        assert body["subject_id"] == "lst-3001"
        assert body["deal_quality"] == "excellent"
        assert body["stage_history"][0]["actions"][0]["action_kind"] == "analyze"

    def test_resubmit_returns_existing_flow_with_200(self, client):
        flow_id = submit(client)

        response = client.post("/pipeline/flows", json={**HOT_PAYLOAD, "score": 91})
        assert response.status_code == 200
        assert response.json() == {"flow_id": flow_id, "created": False}

    def test_invalid_record_rejected(self, client):
        response = client.post("/pipeline/flows", json={**HOT_PAYLOAD, "score": 140})
        assert response.status_code == 422

    def test_auto_advancement_visible(self, client, scheduler):
        flow_id = submit(client)
        scheduler.advance(15)

        body = client.get(f"/pipeline/flows/{flow_id}").json()
        assert [e["stage"] for e in body["stage_history"]] == [
            "discovery",
            "qualification",
            "evaluation",
            "hot_lead",
        ]

    def test_manual_advance(self, client):
        flow_id = submit(client)

        response = client.post(f"/pipeline/flows/{flow_id}/advance", json={"stage": "under_contract"})
        assert response.status_code == 200
        assert response.json()["current_stage"] == "under_contract"

    def test_advance_reports_archive_redirect(self, client):
        flow_id = submit(client, {**HOT_PAYLOAD, "score": 30})

        response = client.post(f"/pipeline/flows/{flow_id}/advance", json={"stage": "hot_lead"})
        assert response.json()["current_stage"] == "archived"

    def test_terminal_flow_conflicts(self, client):
        flow_id = submit(client)
        client.post(f"/pipeline/flows/{flow_id}/advance", json={"stage": "closed"})

        response = client.post(f"/pipeline/flows/{flow_id}/advance", json={"stage": "qualification"})
        assert response.status_code == 409
        assert client.post(f"/pipeline/flows/{flow_id}/pause").status_code == 409

    def test_unknown_flow_and_stage(self, client):
        assert client.get("/pipeline/flows/deal_missing").status_code == 404
        assert client.post("/pipeline/flows/deal_missing/pause").status_code == 404

        flow_id = submit(client)
        response = client.post(f"/pipeline/flows/{flow_id}/advance", json={"stage": "negotiation"})
        assert response.status_code == 404

    def test_pause_and_resume(self, client, scheduler):
        flow_id = submit(client)

        assert client.post(f"/pipeline/flows/{flow_id}/pause").json()["auto_actions_enabled"] is False
        scheduler.advance(30)
        assert client.get(f"/pipeline/flows/{flow_id}").json()["current_stage"] == "discovery"

        client.post(f"/pipeline/flows/{flow_id}/resume")
        scheduler.advance(5)
        assert client.get(f"/pipeline/flows/{flow_id}").json()["current_stage"] == "qualification"


class TestListingRoutes:
    def test_filters(self, client):
        kept = submit(client)
        archived = submit(client, {**HOT_PAYLOAD, "id": "lst-3002"})
        client.post(f"/pipeline/flows/{archived}/advance", json={"stage": "archived"})

        all_flows = client.get("/pipeline/flows").json()
        assert all_flows["count"] == 2

        active = client.get("/pipeline/flows", params={"active": True}).json()
        assert [f["id"] for f in active["flows"]] == [kept]

        by_stage = client.get("/pipeline/flows", params={"stage": "archived"}).json()
        assert [f["id"] for f in by_stage["flows"]] == [archived]

    def test_unknown_stage_filter(self, client):
        assert client.get("/pipeline/flows", params={"stage": "negotiation"}).status_code == 404

    def test_stats(self, client, scheduler):
        submit(client)
        scheduler.advance(15)

        stats = client.get("/pipeline/stats").json()
        assert stats["total_flows"] == 1
        assert stats["hot_leads"] == 1
        assert stats["by_stage"]["hot_lead"] == 1

    def test_stages(self, client):
        stages = client.get("/pipeline/stages").json()["stages"]

        assert [s["id"] for s in stages][0] == "discovery"
        evaluation = next(s for s in stages if s["id"] == "evaluation")
        assert {"kind": "draft_outreach", "trigger": "delayed", "delay_minutes": 15,
                "interval_minutes": None} in evaluation["actions"]
        assert next(s for s in stages if s["id"] == "archived")["terminal"] is True
