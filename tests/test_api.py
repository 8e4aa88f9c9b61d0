"""
Tests for PromptDash API endpoints.
"""

import json

import pytest
from fastapi.testclient import TestClient

from promptdash.config import get_settings
from promptdash.core.pipeline import CommandInterpreter
from promptdash.exceptions import UpstreamUnavailableException
from promptdash.main import app
from promptdash.modules.commands.router import get_service as get_commands_service
from promptdash.modules.commands.service import CommandsService
from promptdash.observability import get_usage_ledger
from promptdash.observability.usage_ledger import TokenUsage

from conftest import SAMPLE_DASHBOARD, SAMPLE_SCHEMA, ScriptedGateway


@pytest.fixture(autouse=True)
def _fresh_state(monkeypatch):
    """Known settings and an empty ledger for every test."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    get_settings.cache_clear()
    get_usage_ledger.cache_clear()
    yield
    app.dependency_overrides.clear()
    get_settings.cache_clear()
    get_usage_ledger.cache_clear()


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


def script(*outputs, configured=True):
    """Route /api/prompt through a scripted gateway. Returns the gateway."""
    gateway = ScriptedGateway(*outputs, configured=configured)
    ledger = get_usage_ledger()
    interpreter = CommandInterpreter(gateway, ledger=ledger)
    app.dependency_overrides[get_commands_service] = lambda: CommandsService(interpreter)
    return gateway


def prompt_body(prompt="make it dark"):
    return {"prompt": prompt, "currentDashboard": SAMPLE_DASHBOARD, "schema": SAMPLE_SCHEMA}


class TestHealth:
    """Health check tests."""

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["gemini_configured"] is True
        assert data["features"] == {"commands": True, "usage": True}

    def test_health_degraded_without_key(self, client, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "")
        get_settings.cache_clear()

        data = client.get("/health").json()
        assert data["status"] == "degraded"
        assert data["gemini_configured"] is False


class TestRoot:
    """Root endpoint tests."""

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"message": "Welcome to PromptDash API", "docs": "/docs"}

    def test_openapi_available(self, client):
        response = client.get("/openapi.json")
        assert response.status_code == 200
        assert response.json()["info"]["title"] == "PromptDash API"

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"


class TestPrompt:
    """POST /api/prompt."""

    def test_applied_command(self, client):
        script('{"action": "update_theme", "themeUpdate": "dark", "message": "Switched to dark mode"}')

        response = client.post("/api/prompt", json=prompt_body())
        assert response.status_code == 200

        data = response.json()
        assert data["action"] == "update_theme"
        assert data["themeUpdate"] == "dark"
        assert data["message"] == "Switched to dark mode"
        assert data["applied"] is True
        assert data["dashboard"]["theme"] == "dark"

    def test_client_fields_survive(self, client):
        script(
            json.dumps(
                {
                    "action": "update_chart",
                    "targetChartId": "bar-sales",
                    "chartUpdate": {"type": "line"},
                    "message": "Now a line chart",
                }
            )
        )

        data = client.post("/api/prompt", json=prompt_body("make sales a line chart")).json()
        chart = next(c for c in data["dashboard"]["pages"][0]["charts"] if c["id"] == "bar-sales")
        assert chart["type"] == "line"
        assert chart["xAxisTitle"] == "Region"
        assert chart["yAxis"] == ["Sales", "Profit"]

    def test_reject_is_success(self, client):
        script('{"action": "reject", "rejectReason": "data_manipulation", "message": "I can only change visuals."}')

        response = client.post("/api/prompt", json=prompt_body("delete rows where Sales < 0"))
        assert response.status_code == 200

        data = response.json()
        assert data["action"] == "reject"
        assert data["rejectReason"] == "data_manipulation"
        assert data["applied"] is False
        assert data["dashboard"]["theme"] == "light"

    def test_unknown_chart_is_reject(self, client):
        script('{"action": "delete_chart", "targetChartId": "nope", "message": "Deleted"}')

        # delete is idempotent: unknown ids are a no-op, not a reject
        data = client.post("/api/prompt", json=prompt_body("delete the nope chart")).json()
        assert data["action"] == "delete_chart"
        assert data["applied"] is True

        script('{"action": "sort_data", "targetChartId": "nope", "sortUpdate": {"sortBy": "Sales"}, "message": "Sorted"}')
        data = client.post("/api/prompt", json=prompt_body("sort the nope chart")).json()
        assert data["action"] == "reject"
        assert data["rejectReason"] == "no_matching_chart"

    def test_missing_key(self, client, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "")
        get_settings.cache_clear()

        response = client.post("/api/prompt", json=prompt_body())
        assert response.status_code == 500

        data = response.json()
        assert data["error"] == "Missing GEMINI_API_KEY"
        assert data["code"] == "CONFIGURATION_MISSING"
        assert data["request_id"]

    def test_upstream_failure(self, client):
        gateway = script(
            UpstreamUnavailableException("Gemini", "timed out after 30.0s"),
            UpstreamUnavailableException("Gemini", "timed out after 30.0s"),
        )

        response = client.post("/api/prompt", json=prompt_body())
        assert response.status_code == 502
        assert response.json()["code"] == "UPSTREAM_UNAVAILABLE"
        assert len(gateway.prompts) == 2

    def test_unparseable_output(self, client):
        script("Sure! I changed the theme for you.")

        response = client.post("/api/prompt", json=prompt_body())
        assert response.status_code == 400

        data = response.json()
        assert data["error"] == "Failed to process"
        assert "changed the theme" not in json.dumps(data)

    def test_invalid_command(self, client):
        script('{"action": "update_chart", "targetChartId": "bar-sales", "chartUpdate": {"aggregation": "median"}, "message": "ok"}')

        response = client.post("/api/prompt", json=prompt_body("use the median"))
        assert response.status_code == 400

        data = response.json()
        assert data["error"] == "Validation failed"
        assert data["code"] == "VALIDATION_FAILED"
        assert data["details"].startswith('Sorry, "median" is not a valid aggregation')

    def test_duplicate_id(self, client):
        script('{"action": "add_page", "newPage": {"id": "page-details", "name": "Details 2"}, "message": "Added"}')

        response = client.post("/api/prompt", json=prompt_body("add a details page"))
        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_ID"

    def test_empty_prompt_rejected_by_request_validation(self, client):
        script()
        response = client.post("/api/prompt", json=prompt_body(""), headers={"X-Request-ID": "req-422"})
        assert response.status_code == 422

        data = response.json()
        assert data["error"] == "Invalid request"
        assert data["code"] == "REQUEST_INVALID"
        assert data["request_id"] == "req-422"
        assert data["details"]["errors"][0]["field"] == "body.prompt"

    def test_unknown_chart_type_in_document(self, client):
        gateway = script()
        body = prompt_body()
        body["currentDashboard"] = json.loads(json.dumps(SAMPLE_DASHBOARD))
        body["currentDashboard"]["pages"][0]["charts"][0]["type"] = "sparkline"

        response = client.post("/api/prompt", json=body)
        assert response.status_code == 422

        data = response.json()
        assert set(data) == {"error", "details", "code", "request_id"}
        fields = [e["field"] for e in data["details"]["errors"]]
        assert "body.currentDashboard.pages.0.charts.0.type" in fields
        assert gateway.prompts == []

    def test_feature_disabled(self, client, monkeypatch):
        monkeypatch.setenv("FEATURE_COMMANDS", "false")
        get_settings.cache_clear()
        script()

        response = client.post("/api/prompt", json=prompt_body())
        assert response.status_code == 503
        assert response.json()["code"] == "FEATURE_DISABLED"


class TestUsage:
    """GET and DELETE /api/usage."""

    def _record(self, status="ok"):
        get_usage_ledger().record(
            TokenUsage(
                endpoint="/api/prompt",
                input_tokens=900,
                output_tokens=40,
                model="gemini-2.5-flash",
                latency_ms=850.0,
                status=status,
            )
        )

    def test_usage_shape(self, client):
        self._record()
        self._record(status="error")

        response = client.get("/api/usage")
        assert response.status_code == 200

        data = response.json()
        assert data["stats"]["totalRequests"] == 2
        assert data["stats"]["totalTokens"] == 1880
        assert data["stats"]["errorCount"] == 1
        assert data["stats"]["requestsByEndpoint"] == {"/api/prompt": 2}
        assert data["cache"]["size"] == 0
        assert len(data["recentRequests"]) == 2
        assert "T" in data["recentRequests"][0]["timestamp"]

    def test_prompt_populates_schema_cache(self, client):
        script(
            '{"action": "update_theme", "themeUpdate": "dark", "message": "ok"}',
            '{"action": "update_theme", "themeUpdate": "light", "message": "ok"}',
        )
        client.post("/api/prompt", json=prompt_body())
        client.post("/api/prompt", json=prompt_body("back to light"))

        cache = client.get("/api/usage").json()["cache"]
        assert cache["size"] == 1
        assert cache["hits"] == 1
        assert cache["misses"] == 1

    @pytest.mark.parametrize(
        "target,message",
        [("usage", "Usage log cleared"), ("cache", "Statistics cache cleared"), ("all", "All caches cleared")],
    )
    def test_clear(self, client, target, message):
        self._record()

        response = client.delete(f"/api/usage?target={target}")
        assert response.status_code == 200
        assert response.json() == {"message": message}

        remaining = client.get("/api/usage").json()["stats"]["totalRequests"]
        assert remaining == (1 if target == "cache" else 0)

    @pytest.mark.parametrize("query", ["", "?target=everything"])
    def test_clear_invalid_target(self, client, query):
        response = client.delete(f"/api/usage{query}")
        assert response.status_code == 400

        data = response.json()
        assert data["code"] == "INVALID_TARGET"
        assert data["error"] == "Invalid target. Use ?target=usage, ?target=cache, or ?target=all"
