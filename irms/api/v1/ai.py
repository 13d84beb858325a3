# irms/api/v1/ai.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from irms.core.auth import get_current_user, get_db
from irms.core.errors import not_found
from irms.core.permissions import ensure_access, resolve_access
from irms.crud import incident as incident_crud
from irms.crud import risk as risk_crud
from irms.models.user import User
from irms.schemas.ai import (
    AnalyzeIncidentOut,
    AnalyzeIncidentRequest,
    MitigationOut,
    MitigationRequest,
)
from irms.services.advisor import AdvisoryClient, get_advisor
from irms.services.audit import audit_log, ip_from_request

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/incidents/analyze", response_model=AnalyzeIncidentOut)
def analyze_incident(
    payload: AnalyzeIncidentRequest,
    request: Request,
    db: Session = Depends(get_db),
    advisor: AdvisoryClient = Depends(get_advisor),
    current_user: User = Depends(get_current_user),
):
    """
    Suggest a severity, summary and next actions. Always 200: when the model
    is unavailable a fixed fallback comes back instead.

    With `incident_id`, the suggestion is also stored on that incident if the
    caller may edit it.
    """
    ensure_access(current_user, "ai", "analyze")

    incident = None
    if payload.incident_id is not None:
        incident = incident_crud.get_incident(db, payload.incident_id)
        if not incident:
            raise not_found("Incident")
        ensure_access(current_user, "incident", "read", incident)
    # release the connection while waiting on the model
    db.commit()

    result = advisor.suggest_incident_severity(
        payload.title,
        payload.description,
        category=payload.category,
        department=payload.department,
    )

    saved = False
    if incident is not None and resolve_access(current_user, "incident", "write", incident):
        incident_crud.update_incident(
            db,
            incident,
            {
                "ai_summary": result["summary"],
                "ai_severity_suggestion": result["severity"],
                "ai_recommended_actions": "\n".join(result["actions"]),
            },
        )
        saved = True

    audit_log(
        db,
        entity_type="INCIDENT",
        entity_id=payload.incident_id,
        action="AI_ANALYZED",
        actor_id=current_user.id,
        meta={"suggested_severity": result["severity"], "saved": saved},
        ip=ip_from_request(request),
    )
    return AnalyzeIncidentOut(saved=saved, **result)


@router.post("/risks/mitigation", response_model=MitigationOut)
def suggest_mitigation(
    payload: MitigationRequest,
    request: Request,
    db: Session = Depends(get_db),
    advisor: AdvisoryClient = Depends(get_advisor),
    current_user: User = Depends(get_current_user),
):
    ensure_access(current_user, "ai", "analyze")

    risk = None
    if payload.risk_id is not None:
        risk = risk_crud.get_risk(db, payload.risk_id)
        if not risk:
            raise not_found("Risk")
        ensure_access(current_user, "risk", "read", risk)
    db.commit()

    result = advisor.suggest_risk_mitigation(
        payload.title,
        payload.description,
        payload.category,
        payload.likelihood,
        payload.impact,
    )

    saved = False
    if risk is not None and resolve_access(current_user, "risk", "write", risk):
        risk_crud.update_risk(
            db, risk, {"ai_mitigation_suggestions": "\n".join(result["suggestions"])}
        )
        saved = True

    audit_log(
        db,
        entity_type="RISK",
        entity_id=payload.risk_id,
        action="AI_ANALYZED",
        actor_id=current_user.id,
        meta={"suggestions": len(result["suggestions"]), "saved": saved},
        ip=ip_from_request(request),
    )
    return MitigationOut(saved=saved, **result)
