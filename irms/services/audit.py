# irms/services/audit.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from irms.models.audit_log import AuditLog

log = logging.getLogger("irms.audit")


# -----------------------------
# Helpers
# -----------------------------
def ip_from_request(request: Optional[Request]) -> Optional[str]:
    """
    Best-effort client IP extraction compatible with proxies.
    Order:
      - X-Forwarded-For (first in the list)
      - X-Real-IP
      - request.client.host
    """
    if request is None:
        return None
    xff = request.headers.get("x-forwarded-for")
    if xff:
        first = xff.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    client = getattr(request, "client", None)
    return getattr(client, "host", None)


def _jsonable(meta: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Round-trip through json so datetimes and the like never break the insert."""
    try:
        return json.loads(json.dumps(meta or {}, default=str))
    except (TypeError, ValueError):
        return {"raw": str(meta)}


# -----------------------------
# Core API
# -----------------------------
def audit_log(
    db: Session,
    *,
    entity_type: str,
    entity_id: Optional[int],
    action: str,
    actor_id: Optional[int],
    meta: Optional[Dict[str, Any]] = None,
    ip: Optional[str] = None,
) -> None:
    """
    Append an audit record and commit it.
    Never raises: a failed insert is logged and rolled back so the
    caller's (already committed) operation stands.
    """
    try:
        db.add(
            AuditLog(
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                actor_id=actor_id,
                meta=_jsonable(meta),
                ip_address=ip,
            )
        )
        db.commit()
    except Exception:
        log.warning(
            "Audit write failed for %s:%s action=%s actor=%s",
            entity_type,
            entity_id,
            action,
            actor_id,
            exc_info=True,
        )
        try:
            db.rollback()
        except Exception:
            log.debug("Rollback after audit failure also failed", exc_info=True)


def audit_update(
    db: Session,
    *,
    entity_type: str,
    entity_id: int,
    actor_id: int,
    changes: Iterable[str],
    old_status: Optional[str] = None,
    new_status: Optional[str] = None,
    old_assignee: Optional[int] = None,
    new_assignee: Optional[int] = None,
    ip: Optional[str] = None,
) -> None:
    """
    Records an UPDATED entry, plus STATUS_CHANGED / ASSIGNED entries when
    those fields actually moved.
    """
    if old_status != new_status:
        audit_log(
            db,
            entity_type=entity_type,
            entity_id=entity_id,
            action="STATUS_CHANGED",
            actor_id=actor_id,
            meta={"from": old_status, "to": new_status},
            ip=ip,
        )
    if old_assignee != new_assignee:
        audit_log(
            db,
            entity_type=entity_type,
            entity_id=entity_id,
            action="ASSIGNED",
            actor_id=actor_id,
            meta={"from": old_assignee, "to": new_assignee},
            ip=ip,
        )
    audit_log(
        db,
        entity_type=entity_type,
        entity_id=entity_id,
        action="UPDATED",
        actor_id=actor_id,
        meta={"changes": sorted(changes)},
        ip=ip,
    )
