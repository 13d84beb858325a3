# irms/core/permissions.py
"""
Role x department x ownership access rules.

Every router asks this module, both for single-record decisions
(`resolve_access` / `ensure_access`) and for list queries (`allowed_scope`),
so listing and detail views cannot drift apart.
"""
from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, Optional, Set, Tuple

from fastapi import HTTPException, status
from sqlalchemy import false, or_, select, true
from sqlalchemy.sql.elements import ColumnElement

from irms.core.security import ROLES
from irms.models.incident import Incident
from irms.models.risk import Risk
from irms.models.task import Task
from irms.models.user import User


class Scope(IntEnum):
    NONE = 0
    OWN = 1
    DEPARTMENT = 2
    ALL = 3


ADMIN, MANAGER, EMPLOYEE = ROLES

_N, _O, _D, _A = Scope.NONE, Scope.OWN, Scope.DEPARTMENT, Scope.ALL


def _row(admin: Scope, manager: Scope, employee: Scope) -> Dict[str, Scope]:
    return {ADMIN: admin, MANAGER: manager, EMPLOYEE: employee}


# (resource_type, action) -> scope per role
PERMISSIONS: Dict[Tuple[str, str], Dict[str, Scope]] = {
    ("incident", "read"): _row(_A, _D, _O),
    ("incident", "write"): _row(_A, _D, _O),
    ("incident", "create"): _row(_A, _D, _D),
    ("incident", "assign"): _row(_A, _D, _N),
    ("incident", "set_status"): _row(_A, _D, _N),
    ("incident", "delete"): _row(_A, _N, _N),
    ("risk", "read"): _row(_A, _D, _O),
    ("risk", "write"): _row(_A, _D, _O),
    ("risk", "create"): _row(_A, _D, _N),
    ("risk", "delete"): _row(_A, _N, _N),
    ("task", "read"): _row(_A, _D, _O),
    ("task", "write"): _row(_A, _D, _O),
    ("task", "create"): _row(_A, _D, _N),
    ("task", "assign"): _row(_A, _D, _N),
    ("task", "delete"): _row(_A, _N, _N),
    ("comment", "delete"): _row(_A, _N, _N),
    ("user", "read"): _row(_A, _D, _O),
    ("user", "write"): _row(_A, _O, _O),
    ("user", "create"): _row(_A, _N, _N),
    ("user", "delete"): _row(_A, _N, _N),
    ("department", "read"): _row(_A, _A, _A),
    ("department", "write"): _row(_A, _N, _N),
    ("department", "create"): _row(_A, _N, _N),
    ("department", "delete"): _row(_A, _N, _N),
    ("category", "read"): _row(_A, _A, _A),
    ("category", "write"): _row(_A, _N, _N),
    ("category", "create"): _row(_A, _N, _N),
    ("category", "delete"): _row(_A, _N, _N),
    ("audit", "read"): _row(_A, _N, _N),
    ("dashboard", "read"): _row(_A, _D, _O),
    ("ai", "analyze"): _row(_A, _A, _A),
}

MANAGER_WITHOUT_DEPARTMENT = "Manager account has no department assigned"


# -----------------------------
# Helpers
# -----------------------------
def role_of(actor: Optional[User]) -> str:
    """Return the actor's role, refusing anything outside the closed role set."""
    role = getattr(actor, "role", None)
    if role not in ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Unknown role"
        )
    return role


def scope_for(actor: User, resource_type: str, action: str) -> Scope:
    rule = PERMISSIONS.get((resource_type, action))
    if rule is None:
        return Scope.NONE
    return rule[role_of(actor)]


def _require_department(actor: User) -> Optional[int]:
    """
    The actor's department. A manager without one is a misconfigured
    account and gets an explicit 403 rather than an empty scope.
    """
    dept = getattr(actor, "department_id", None)
    if dept is None and role_of(actor) == MANAGER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail=MANAGER_WITHOUT_DEPARTMENT
        )
    return dept


def _owner_ids(resource_type: str, resource: Any) -> Set[int]:
    if resource_type == "user":
        return {getattr(resource, "id", None)} - {None}
    ids = {
        getattr(resource, attr, None)
        for attr in ("reported_by_id", "owner_id", "assigned_to_id", "author_id")
    }
    ids.discard(None)
    return ids


def _department_ids(resource: Any) -> Set[int]:
    if isinstance(resource, dict):
        dept = resource.get("department_id")
        return {dept} if dept is not None else set()
    ids = getattr(resource, "department_ids", None)
    if ids is not None:
        return set(ids)
    dept = getattr(resource, "department_id", None)
    return {dept} if dept is not None else set()


def is_admin(actor: User) -> bool:
    return role_of(actor) == ADMIN


# -----------------------------
# Single-resource decisions
# -----------------------------
def resolve_access(
    actor: Optional[User],
    resource_type: str,
    action: str,
    resource: Any = None,
) -> bool:
    """
    Decide whether `actor` may perform `action` on `resource`.

    `resource` is an ORM row, or for "create" a dict holding the
    prospective `department_id`.
    """
    if actor is None:
        return False
    scope = scope_for(actor, resource_type, action)
    if scope == Scope.ALL:
        return True
    if scope == Scope.NONE or resource is None:
        return False

    if not isinstance(resource, dict) and actor.id in _owner_ids(resource_type, resource):
        return True
    if scope == Scope.OWN:
        return False

    # DEPARTMENT
    dept = _require_department(actor)
    return dept is not None and dept in _department_ids(resource)


def ensure_access(
    actor: User,
    resource_type: str,
    action: str,
    resource: Any = None,
    detail: str = "Forbidden",
) -> None:
    """403 unless `resolve_access` allows it."""
    if not resolve_access(actor, resource_type, action, resource):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


# -----------------------------
# Field-level filtering
# -----------------------------
def strip_incident_update(
    actor: User, incident: Incident, data: Dict[str, Any]
) -> Dict[str, Any]:
    """Drop status/assignment changes the actor is not allowed to make."""
    out = dict(data)
    if "status" in out and not resolve_access(actor, "incident", "set_status", incident):
        out.pop("status")
    if "assigned_to_id" in out and not resolve_access(actor, "incident", "assign", incident):
        out.pop("assigned_to_id")
    return out


def strip_task_update(actor: User, task: Task, data: Dict[str, Any]) -> Dict[str, Any]:
    """Without assign rights only the status of a task can change."""
    if resolve_access(actor, "task", "assign", task):
        return dict(data)
    return {k: v for k, v in data.items() if k == "status"}


USER_SELF_FIELDS = {"name", "email", "password"}


def strip_user_update(actor: User, target: User, data: Dict[str, Any]) -> Dict[str, Any]:
    if is_admin(actor):
        return dict(data)
    return {k: v for k, v in data.items() if k in USER_SELF_FIELDS}


# -----------------------------
# List scoping (applied in SQL)
# -----------------------------
def _own_clause(actor: User, model: Any) -> ColumnElement:
    if model is User:
        return User.id == actor.id
    if model is Incident:
        return or_(Incident.reported_by_id == actor.id, Incident.assigned_to_id == actor.id)
    if model is Risk:
        return Risk.owner_id == actor.id
    if model is Task:
        return Task.assigned_to_id == actor.id
    raise ValueError(f"No ownership rule for {model!r}")


def _department_clause(dept: int, model: Any) -> ColumnElement:
    if model is Task:
        users_in_dept = select(User.id).where(User.department_id == dept)
        incidents_in_dept = select(Incident.id).where(Incident.department_id == dept)
        risks_in_dept = select(Risk.id).where(Risk.department_id == dept)
        return or_(
            Task.assigned_to_id.in_(users_in_dept),
            Task.related_incident_id.in_(incidents_in_dept),
            Task.related_risk_id.in_(risks_in_dept),
        )
    return model.department_id == dept


_MODEL_TYPES = {User: "user", Incident: "incident", Risk: "risk", Task: "task"}


def allowed_scope(actor: User, model: Any, action: str = "read") -> ColumnElement:
    """
    SQL filter limiting `model` rows to what `actor` may see.
    Use as `query.filter(allowed_scope(user, Incident))`.
    """
    scope = scope_for(actor, _MODEL_TYPES[model], action)
    if scope == Scope.ALL:
        return true()
    if scope == Scope.NONE:
        return false()
    own = _own_clause(actor, model)
    if scope == Scope.OWN:
        return own
    dept = _require_department(actor)
    if dept is None:
        return own
    return or_(_department_clause(dept, model), own)
