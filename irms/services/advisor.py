# irms/services/advisor.py
"""
AI advisory calls against an OpenAI-compatible chat-completions API.

Advisory only: every public function returns a usable answer. Missing
credentials, timeouts, HTTP errors and malformed model output all fall back
to a fixed payload instead of raising.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from fastapi import Request

from irms.core.config import Settings
from irms.models.incident import SEVERITY

logger = logging.getLogger("irms.advisor")

FALLBACK_SEVERITY = "MEDIUM"
FALLBACK_SUMMARY = (
    "AI analysis is temporarily unavailable. Please manually assess this incident."
)
FALLBACK_ACTIONS = [
    "Review incident details thoroughly",
    "Assess potential impact on operations",
    "Identify affected parties and systems",
    "Determine immediate response requirements",
    "Document findings and escalate if necessary",
]
FALLBACK_MITIGATIONS = [
    "Implement preventive controls to reduce likelihood",
    "Establish monitoring mechanisms for early detection",
    "Develop contingency plans for risk occurrence",
    "Consider risk transfer through insurance or contracts",
    "Document risk acceptance criteria if mitigation is not feasible",
]

MAX_ACTIONS = 5
MAX_MITIGATIONS = 6

INCIDENT_SYSTEM_PROMPT = """You are an expert incident management analyst. Your role is to analyze workplace and operational incidents and provide:
1. A severity assessment (LOW, MEDIUM, HIGH, or CRITICAL)
2. A concise executive summary (2-3 sentences)
3. 3-5 specific, actionable recommended actions

Base your analysis on:
- Potential impact on operations, safety, and business continuity
- Urgency of response required
- Scope of affected parties or systems
- Regulatory or compliance implications

Respond in valid JSON format only."""

RISK_SYSTEM_PROMPT = """You are an expert risk management consultant. Your role is to analyze operational and business risks and suggest effective mitigation strategies.

Consider preventive controls, detective controls, corrective actions, risk transfer options and acceptance criteria.

Provide practical, implementable suggestions. Respond in valid JSON format only."""


class AdvisorError(Exception):
    """Internal: the model call did not produce a usable answer."""


def fallback_incident_analysis() -> Dict[str, Any]:
    return {
        "severity": FALLBACK_SEVERITY,
        "summary": FALLBACK_SUMMARY,
        "actions": list(FALLBACK_ACTIONS),
    }


def _clean_list(value: Any, limit: int) -> List[str]:
    if not isinstance(value, list):
        return []
    items = [str(v).strip() for v in value if isinstance(v, (str, int, float))]
    return [i for i in items if i][:limit]


class AdvisoryClient:
    """
    Thin wrapper over the chat-completions endpoint.
    `transport` lets callers (tests) swap the network layer.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        self.api_key = settings.ai_api_key
        self.base_url = settings.ai_base_url.rstrip("/")
        self.model = settings.ai_model
        self.timeout = settings.ai_timeout_seconds
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _complete_json(self, system: str, user: str, max_tokens: int) -> Dict[str, Any]:
        if not self.enabled:
            raise AdvisorError("AI_API_KEY is not configured")

        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": 0.3,
            "max_tokens": max_tokens,
            "response_format": {"type": "json_object"},
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(
                    f"{self.base_url}/chat/completions", json=body, headers=headers
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as exc:
            raise AdvisorError("AI request timed out") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise AdvisorError(f"AI request failed: {exc}") from exc

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise AdvisorError("Unexpected response shape") from exc
        if not content:
            raise AdvisorError("Empty response from AI")

        try:
            parsed = json.loads(content)
        except ValueError as exc:
            raise AdvisorError("AI returned invalid JSON") from exc
        if not isinstance(parsed, dict):
            raise AdvisorError("AI returned a non-object JSON value")
        return parsed

    # ---------------------------
    # Incidents
    # ---------------------------
    def suggest_incident_severity(
        self,
        title: str,
        description: str,
        category: Optional[str] = None,
        department: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Return {severity, summary, actions}; never raises."""
        lines = [
            "Analyze this incident:",
            "",
            f"Title: {title}",
            f"Description: {description}",
        ]
        if category:
            lines.append(f"Category: {category}")
        if department:
            lines.append(f"Department: {department}")
        lines += [
            "",
            "Provide your analysis in the following JSON format:",
            '{"suggestedSeverity": "LOW" | "MEDIUM" | "HIGH" | "CRITICAL", '
            '"summary": "2-3 sentence executive summary", '
            '"recommendedActions": ["action 1", "action 2", "action 3"]}',
        ]

        try:
            parsed = self._complete_json(INCIDENT_SYSTEM_PROMPT, "\n".join(lines), 500)
        except AdvisorError as exc:
            logger.warning("Incident analysis fell back to defaults: %s", exc)
            return fallback_incident_analysis()

        severity = parsed.get("suggestedSeverity")
        if severity not in SEVERITY:
            logger.info("AI returned invalid severity %r, using %s", severity, FALLBACK_SEVERITY)
            severity = FALLBACK_SEVERITY

        summary = parsed.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            summary = "Unable to generate summary."

        actions = _clean_list(parsed.get("recommendedActions"), MAX_ACTIONS)
        if not actions:
            actions = ["Review the incident details and assess impact"]

        return {"severity": severity, "summary": summary.strip(), "actions": actions}

    # ---------------------------
    # Risks
    # ---------------------------
    def suggest_risk_mitigation(
        self,
        title: str,
        description: str,
        category: str,
        likelihood: str,
        impact: str,
    ) -> Dict[str, Any]:
        """Return {suggestions}; never raises."""
        prompt = "\n".join(
            [
                "Analyze this risk and suggest mitigation strategies:",
                "",
                f"Title: {title}",
                f"Description: {description}",
                f"Category: {category}",
                f"Likelihood: {likelihood}",
                f"Impact: {impact}",
                "",
                "Provide 4-6 specific mitigation strategies in JSON format:",
                '{"mitigationSuggestions": ["strategy 1", "strategy 2"]}',
            ]
        )
        try:
            parsed = self._complete_json(RISK_SYSTEM_PROMPT, prompt, 400)
        except AdvisorError as exc:
            logger.warning("Risk mitigation fell back to defaults: %s", exc)
            return {"suggestions": list(FALLBACK_MITIGATIONS)}

        suggestions = _clean_list(parsed.get("mitigationSuggestions"), MAX_MITIGATIONS)
        if not suggestions:
            suggestions = ["Develop and implement appropriate controls"]
        return {"suggestions": suggestions}


def get_advisor(request: Request) -> AdvisoryClient:
    return request.app.state.advisor
