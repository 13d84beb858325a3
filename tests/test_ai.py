"""
Tests for the AI advisory client and endpoints.

The model endpoint is replaced by FakeAI (see conftest), so these tests
never touch the network.
"""

import httpx
import pytest

from irms.services.advisor import (
    FALLBACK_ACTIONS,
    FALLBACK_MITIGATIONS,
    FALLBACK_SUMMARY,
    MAX_ACTIONS,
    AdvisoryClient,
)
from irms.models.audit_log import AuditLog
from irms.models.incident import Incident
from irms.models.risk import Risk

from conftest import make_incident, make_risk

TITLE = "Billing database accessed"
DESCRIPTION = "An unknown IP address queried the billing database overnight."


@pytest.fixture
def advisor(settings, fake_ai) -> AdvisoryClient:
    return AdvisoryClient(settings, transport=httpx.MockTransport(fake_ai.handler))


# =============================================================================
# Client
# =============================================================================


class TestIncidentSuggestion:
    """AdvisoryClient.suggest_incident_severity"""

    def test_parses_model_reply(self, advisor, fake_ai):
        result = advisor.suggest_incident_severity(TITLE, DESCRIPTION, category="Security")

        assert result == {
            "severity": "HIGH",
            "summary": "Unauthorized access to the billing database.",
            "actions": ["Rotate credentials", "Review access logs"],
        }
        call = fake_ai.calls[0]
        assert call["response_format"] == {"type": "json_object"}
        assert "Category: Security" in call["messages"][1]["content"]

    def test_no_key_returns_fallback_without_calling(self, settings, fake_ai):
        keyless = AdvisoryClient(
            settings.model_copy(update={"ai_api_key": None}),
            transport=httpx.MockTransport(fake_ai.handler),
        )
        result = keyless.suggest_incident_severity(TITLE, DESCRIPTION)

        assert result["severity"] == "MEDIUM"
        assert result["summary"] == FALLBACK_SUMMARY
        assert result["actions"] == FALLBACK_ACTIONS
        assert fake_ai.calls == []

    def test_transport_error_returns_fallback(self, advisor, fake_ai):
        fake_ai.fail_with = httpx.ConnectError("connection refused")
        assert advisor.suggest_incident_severity(TITLE, DESCRIPTION)["summary"] == FALLBACK_SUMMARY

    def test_server_error_returns_fallback(self, advisor, fake_ai):
        fake_ai.status = 500
        assert advisor.suggest_incident_severity(TITLE, DESCRIPTION)["severity"] == "MEDIUM"

    def test_non_json_content_returns_fallback(self, advisor, fake_ai):
        fake_ai.content = "I think it is quite bad."
        assert advisor.suggest_incident_severity(TITLE, DESCRIPTION)["actions"] == FALLBACK_ACTIONS

    def test_invalid_severity_becomes_medium(self, advisor, fake_ai):
        fake_ai.reply({"suggestedSeverity": "APOCALYPTIC", "summary": "Bad.", "recommendedActions": ["Act"]})
        result = advisor.suggest_incident_severity(TITLE, DESCRIPTION)
        assert result["severity"] == "MEDIUM"
        assert result["summary"] == "Bad."

    def test_actions_are_capped(self, advisor, fake_ai):
        fake_ai.reply(
            {
                "suggestedSeverity": "LOW",
                "summary": "Minor.",
                "recommendedActions": [f"Step {n}" for n in range(9)],
            }
        )
        assert len(advisor.suggest_incident_severity(TITLE, DESCRIPTION)["actions"]) == MAX_ACTIONS

    def test_missing_actions_get_a_default(self, advisor, fake_ai):
        fake_ai.reply({"suggestedSeverity": "LOW", "summary": "Minor."})
        assert advisor.suggest_incident_severity(TITLE, DESCRIPTION)["actions"] == [
            "Review the incident details and assess impact"
        ]


class TestRiskSuggestion:
    """AdvisoryClient.suggest_risk_mitigation"""

    def test_parses_model_reply(self, advisor):
        result = advisor.suggest_risk_mitigation(TITLE, DESCRIPTION, "Security", "HIGH", "MEDIUM")
        assert result == {"suggestions": ["Enforce MFA", "Quarterly access review"]}

    def test_failure_returns_fallback(self, advisor, fake_ai):
        fake_ai.fail_with = httpx.ReadTimeout("too slow")
        result = advisor.suggest_risk_mitigation(TITLE, DESCRIPTION, "Security", "HIGH", "MEDIUM")
        assert result == {"suggestions": FALLBACK_MITIGATIONS}


# =============================================================================
# Endpoints
# =============================================================================


class TestAnalyzeEndpoint:
    """POST /api/v1/ai/incidents/analyze"""

    def test_free_text_analysis(self, client, world):
        r = client.post(
            "/api/v1/ai/incidents/analyze",
            json={"title": TITLE, "description": DESCRIPTION},
            headers=world["h"]["eng_emp"],
        )
        assert r.status_code == 200
        assert r.json()["severity"] == "HIGH"
        assert r.json()["saved"] is False

    def test_model_outage_is_still_200(self, client, world, fake_ai):
        fake_ai.status = 503
        r = client.post(
            "/api/v1/ai/incidents/analyze",
            json={"title": TITLE, "description": DESCRIPTION},
            headers=world["h"]["eng_emp"],
        )
        assert r.status_code == 200
        assert r.json()["summary"] == FALLBACK_SUMMARY

    def test_suggestion_is_stored_on_own_incident(self, client, db, world):
        incident = make_incident(db, world["eng_emp"], world["eng"])
        r = client.post(
            "/api/v1/ai/incidents/analyze",
            json={"title": TITLE, "description": DESCRIPTION, "incident_id": incident.id},
            headers=world["h"]["eng_emp"],
        )
        assert r.json()["saved"] is True

        db.expire_all()
        stored = db.get(Incident, incident.id)
        assert stored.ai_severity_suggestion == "HIGH"
        assert stored.ai_recommended_actions == "Rotate credentials\nReview access logs"
        # the suggestion never changes the actual severity
        assert stored.severity == "MEDIUM"

        entry = db.query(AuditLog).filter(AuditLog.action == "AI_ANALYZED").one()
        assert entry.entity_id == incident.id
        assert entry.meta["saved"] is True

    def test_invisible_incident_is_403(self, client, db, world, fake_ai):
        incident = make_incident(db, world["ops_emp"], world["ops"])
        r = client.post(
            "/api/v1/ai/incidents/analyze",
            json={"title": TITLE, "description": DESCRIPTION, "incident_id": incident.id},
            headers=world["h"]["eng_mgr"],
        )
        assert r.status_code == 403
        assert fake_ai.calls == []

    def test_keyless_app_serves_fallback(self, app, client, settings, world):
        app.state.advisor = AdvisoryClient(settings.model_copy(update={"ai_api_key": None}))
        r = client.post(
            "/api/v1/ai/incidents/analyze",
            json={"title": TITLE, "description": DESCRIPTION},
            headers=world["h"]["admin"],
        )
        assert r.status_code == 200
        assert r.json()["actions"] == FALLBACK_ACTIONS

    def test_requires_login(self, client):
        r = client.post("/api/v1/ai/incidents/analyze", json={"title": TITLE, "description": DESCRIPTION})
        assert r.status_code == 401


class TestMitigationEndpoint:
    """POST /api/v1/ai/risks/mitigation"""

    def test_suggestions_stored_on_risk(self, client, db, world):
        risk = make_risk(db, world["eng_mgr"], world["eng"])
        r = client.post(
            "/api/v1/ai/risks/mitigation",
            json={
                "title": TITLE,
                "description": DESCRIPTION,
                "category": "Security",
                "likelihood": "HIGH",
                "impact": "HIGH",
                "risk_id": risk.id,
            },
            headers=world["h"]["eng_mgr"],
        )
        assert r.status_code == 200
        assert r.json()["saved"] is True

        db.expire_all()
        assert db.get(Risk, risk.id).ai_mitigation_suggestions == "Enforce MFA\nQuarterly access review"

    def test_invalid_level_is_400(self, client, world):
        r = client.post(
            "/api/v1/ai/risks/mitigation",
            json={"title": TITLE, "description": DESCRIPTION, "category": "Security", "likelihood": "EXTREME"},
            headers=world["h"]["eng_mgr"],
        )
        assert r.status_code == 400
