# irms/api/v1/dashboard.py
from typing import Dict, Iterable

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from irms.core.auth import get_current_user, get_db
from irms.core.permissions import Scope, allowed_scope, is_admin, scope_for
from irms.models.department import Department
from irms.models.incident import INCIDENT_STATUS, INCIDENT_TERMINAL_STATUS, SEVERITY, Incident
from irms.models.risk import RISK_LEVEL, RISK_STATUS, RISK_TERMINAL_STATUS, Risk
from irms.models.task import TASK_STATUS, Task
from irms.models.user import User
from irms.schemas.dashboard import DashboardOverview

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

RECENT_LIMIT = 5

_SCOPE_NAMES = {Scope.ALL: "all", Scope.DEPARTMENT: "department", Scope.OWN: "own"}


# ----- helpers -----


def _zeroed(keys: Iterable[str]) -> Dict[str, int]:
    return {k: 0 for k in keys}


def _count_by(db: Session, column, scope, keys: Iterable[str]) -> Dict[str, int]:
    """Counts grouped by `column`, with every allowed value present (0 if none)."""
    out = _zeroed(keys)
    for value, n in db.query(column, func.count()).filter(scope).group_by(column).all():
        out[value] = n
    return out


# ----- endpoint -----


@router.get("/overview", response_model=DashboardOverview)
def overview(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Aggregates over exactly the rows the caller could list:
      - ADMIN: everything (plus a per-department incident breakdown)
      - MANAGER: own department
      - EMPLOYEE: own records
    """
    incident_scope = allowed_scope(current_user, Incident)
    risk_scope = allowed_scope(current_user, Risk)
    task_scope = allowed_scope(current_user, Task)

    incidents_by_status = _count_by(db, Incident.status, incident_scope, INCIDENT_STATUS)
    incidents_by_severity = _count_by(db, Incident.severity, incident_scope, SEVERITY)
    risks_by_status = _count_by(db, Risk.status, risk_scope, RISK_STATUS)
    tasks_by_status = _count_by(db, Task.status, task_scope, TASK_STATUS)

    heat = {(li, im): 0 for li in RISK_LEVEL for im in RISK_LEVEL}
    for li, im, n in (
        db.query(Risk.likelihood, Risk.impact, func.count())
        .filter(risk_scope)
        .group_by(Risk.likelihood, Risk.impact)
        .all()
    ):
        heat[(li, im)] = n

    incidents_by_department = None
    if is_admin(current_user):
        incidents_by_department = {
            name: n
            for name, n in db.query(Department.name, func.count(Incident.id))
            .join(Incident, Incident.department_id == Department.id)
            .group_by(Department.name)
            .order_by(Department.name)
            .all()
        }

    recent_incidents = (
        db.query(Incident)
        .filter(incident_scope)
        .order_by(Incident.created_at.desc(), Incident.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )
    upcoming_tasks = (
        db.query(Task)
        .filter(task_scope, Task.status != "DONE", Task.due_date.isnot(None))
        .order_by(Task.due_date.asc(), Task.id.asc())
        .limit(RECENT_LIMIT)
        .all()
    )

    return {
        "scope": _SCOPE_NAMES[scope_for(current_user, "dashboard", "read")],
        "summary": {
            "total_incidents": sum(incidents_by_status.values()),
            "open_incidents": sum(
                n for s, n in incidents_by_status.items() if s not in INCIDENT_TERMINAL_STATUS
            ),
            "critical_incidents": incidents_by_severity["CRITICAL"],
            "total_risks": sum(risks_by_status.values()),
            "open_risks": sum(
                n for s, n in risks_by_status.items() if s not in RISK_TERMINAL_STATUS
            ),
            "total_tasks": sum(tasks_by_status.values()),
            "pending_tasks": sum(n for s, n in tasks_by_status.items() if s != "DONE"),
        },
        "charts": {
            "incidents_by_status": incidents_by_status,
            "incidents_by_severity": incidents_by_severity,
            "incidents_by_department": incidents_by_department,
            "risks_by_status": risks_by_status,
            "risk_heatmap": [
                {"likelihood": li, "impact": im, "count": n} for (li, im), n in heat.items()
            ],
            "tasks_by_status": tasks_by_status,
        },
        "recent_activity": {
            "recent_incidents": [
                {
                    "id": i.id,
                    "title": i.title,
                    "status": i.status,
                    "severity": i.severity,
                    "created_at": i.created_at,
                }
                for i in recent_incidents
            ],
            "upcoming_tasks": [
                {
                    "id": t.id,
                    "title": t.title,
                    "status": t.status,
                    "due_date": t.due_date,
                    "assigned_to_id": t.assigned_to_id,
                }
                for t in upcoming_tasks
            ],
        },
    }
