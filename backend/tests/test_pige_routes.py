"""
Tests des routes opérateur /api/pige et /api/settings/pige-webhook

MongoDB n'est pas utilisé: le service settings est remplacé par monkeypatch.
"""

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

import routes.pige
import routes.settings
import services.settings
from server import app
from services.pige_coordinator import SUBMISSION_ERROR_PREFIX

client = TestClient(app)

OPERATOR = {"X-Operator-Id": "agent-42"}


@pytest.fixture
def webhook(monkeypatch):
    """URL du webhook en mémoire à la place de la collection settings"""
    state = {"url": ""}

    async def fake_get():
        return state["url"]

    async def fake_set(url, updated_by="system"):
        state["url"] = url
        state["updated_by"] = updated_by
        return {"key": "pige_webhook", "webhook_url": url}

    monkeypatch.setattr(routes.pige, "resolve_pige_webhook_url", fake_get)
    monkeypatch.setattr(routes.settings, "get_pige_webhook_url", fake_get)
    monkeypatch.setattr(routes.settings, "set_pige_webhook_url", fake_set)
    return state


def _board(snapshot):
    return snapshot["board"]


def _ids(criteria):
    return [c["id"] for c in criteria]


class TestWorkspace:

    def test_initial_workspace(self):
        data = client.get("/api/pige/workspace", headers=OPERATOR).json()
        assert data["operator_id"] == "agent-42"
        assert data["location"] == ""
        assert data["radius_km"] == 5
        assert "budget" in _ids(_board(data)["available"])
        assert _board(data)["essential"] == []

    def test_workspaces_isolated_by_operator(self):
        client.put("/api/pige/workspace/location", json={"location": "Nantes"}, headers=OPERATOR)
        other = client.get("/api/pige/workspace", headers={"X-Operator-Id": "agent-7"}).json()
        assert other["location"] == ""

    def test_derive_from_contact_profile(self):
        resp = client.post("/api/pige/workspace/derive", headers=OPERATOR, json={
            "contact_id": "c-1",
            "profile": {
                "targetPrice": 450000,
                "priceMarginPercent": 5,
                "cities": "Toulouse",
                "searchRadiusKm": 10,
                "importantFeatures": ["Ascenseur", "Sans vis-à-vis"],
            },
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["selected_contact_id"] == "c-1"
        assert data["location"] == "Toulouse"
        assert data["radius_km"] == 10

        essential = _board(data)["essential"]
        assert essential[0]["id"] == "budget"
        assert essential[0]["value"] == {"min": 427500, "max": 472500}
        assert _ids(_board(data)["important"]) == ["ascenseur", "custom-feature-0"]

    def test_derive_without_profile_resets(self):
        client.put("/api/pige/workspace/location", json={"location": "Nantes", "radius_km": 20}, headers=OPERATOR)
        data = client.post("/api/pige/workspace/derive", json={}, headers=OPERATOR).json()
        assert data["location"] == ""
        assert data["radius_km"] == 5
        assert data["selected_contact_id"] is None

    def test_location_radius_clamped(self):
        data = client.put(
            "/api/pige/workspace/location",
            json={"location": "  Bordeaux ", "radius_km": 120},
            headers=OPERATOR,
        ).json()
        assert data["location"] == "Bordeaux"
        assert data["radius_km"] == 50

    def test_move_update_delete(self):
        client.post(
            "/api/pige/workspace/move",
            json={"criterion_id": "budget", "target": "essential"},
            headers=OPERATOR,
        )
        resp = client.patch(
            "/api/pige/workspace/criteria/budget",
            json={"value": {"min": 100000, "max": 150000}},
            headers=OPERATOR,
        )
        assert _board(resp.json())["essential"][0]["value"] == {"min": 100000, "max": 150000}

        data = client.delete("/api/pige/workspace/criteria/budget", headers=OPERATOR).json()
        assert _board(data)["essential"] == []
        assert _ids(_board(data)["available"])[-1] == "budget"

    def test_invalid_value_422(self):
        resp = client.patch(
            "/api/pige/workspace/criteria/propertyType",
            json={"value": "Péniche"},
            headers=OPERATOR,
        )
        assert resp.status_code == 422

    def test_free_text(self):
        data = client.post(
            "/api/pige/workspace/free-text",
            json={"text": "Proche tram", "bucket": "secondary"},
            headers=OPERATOR,
        ).json()
        assert _board(data)["secondary"][0]["label"] == "Proche tram"
        assert _board(data)["secondary"][0]["kind"] == "freeText"

    def test_free_text_in_available_422(self):
        resp = client.post(
            "/api/pige/workspace/free-text",
            json={"text": "Proche tram", "bucket": "available"},
            headers=OPERATOR,
        )
        assert resp.status_code == 422

    def test_payload_preview(self):
        client.put("/api/pige/workspace/location", json={"location": "Lyon"}, headers=OPERATOR)
        client.post(
            "/api/pige/workspace/move",
            json={"criterion_id": "garage", "target": "secondary"},
            headers=OPERATOR,
        )
        data = client.get("/api/pige/workspace/payload", headers=OPERATOR).json()
        assert data["location"] == "Lyon"
        assert data["radiusKm"] == 5
        assert data["bonus"] == [{"label": "Garage", "value": True}]
        assert data["callbackUrl"].endswith("/api/pige-results")


class TestSearchRoutes:

    def test_no_search_yet_404(self):
        assert client.get("/api/pige/search", headers=OPERATOR).status_code == 404
        assert client.post("/api/pige/search/cancel", headers=OPERATOR).status_code == 404

    def test_location_required(self, webhook):
        resp = client.post("/api/pige/search", headers=OPERATOR)
        assert resp.status_code == 400

    def test_unconfigured_webhook_gives_failed_session(self, webhook):
        client.put("/api/pige/workspace/location", json={"location": "Lyon"}, headers=OPERATOR)

        resp = client.post("/api/pige/search", headers=OPERATOR)
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "failed"
        assert "n'est pas configurée" in data["error"]
        assert data["summary"] is None

        assert client.get("/api/pige/search", headers=OPERATOR).json()["status"] == "failed"

        # Annuler une session terminée ne change rien
        data = client.post("/api/pige/search/cancel", headers=OPERATOR).json()
        assert data["status"] == "failed"

    def test_settings_store_down_gives_failed_session(self, monkeypatch):
        async def unreachable(key):
            raise ServerSelectionTimeoutError("localhost:27017: [Errno 111] Connection refused")

        monkeypatch.setattr(services.settings, "get_setting", unreachable)
        client.put("/api/pige/workspace/location", json={"location": "Lyon"}, headers=OPERATOR)

        resp = client.post("/api/pige/search", headers=OPERATOR)
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "failed"
        assert data["error"].startswith(SUBMISSION_ERROR_PREFIX)
        assert "Impossible de lire l'URL du webhook" in data["error"]


class TestWebhookSettings:

    def test_put_get_delete(self, webhook):
        resp = client.put(
            "/api/settings/pige-webhook",
            json={"webhook_url": " https://n8n.example.com/webhook/pige "},
            headers=OPERATOR,
        )
        assert resp.status_code == 200
        assert webhook["url"] == "https://n8n.example.com/webhook/pige"
        assert webhook["updated_by"] == "agent-42"

        data = client.get("/api/settings/pige-webhook").json()
        assert data == {"webhook_url": "https://n8n.example.com/webhook/pige", "configured": True}

        client.delete("/api/settings/pige-webhook", headers=OPERATOR)
        assert client.get("/api/settings/pige-webhook").json()["configured"] is False

    @pytest.mark.parametrize("url", ["", "n8n.example.com/webhook", "ftp://n8n.example.com/x"])
    def test_invalid_url_400(self, webhook, url):
        resp = client.put("/api/settings/pige-webhook", json={"webhook_url": url})
        assert resp.status_code == 400
        assert webhook["url"] == ""


class TestHealth:

    def test_health(self):
        data = client.get("/api/health").json()
        assert data["status"] == "running"
        assert data["pige_results_stored"] == 0
