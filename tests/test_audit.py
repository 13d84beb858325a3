"""
Tests for the audit trail.

Covers:
- Entries written by create / update / status change
- Failures in the audit write never reaching the caller
- Entries being immutable
- Admin-only read access with filters
"""

import pytest
from sqlalchemy.exc import OperationalError

from irms.models.audit_log import AuditLog
from irms.services.audit import audit_log, audit_update

from conftest import PASSWORD, make_incident, make_user


class BrokenSession:
    """Session stand-in whose commit always fails."""

    def __init__(self):
        self.added = []
        self.rolled_back = False

    def add(self, obj):
        self.added.append(obj)

    def commit(self):
        raise OperationalError("INSERT INTO audit_logs", {}, Exception("disk I/O error"))

    def rollback(self):
        self.rolled_back = True


def _actions(db, entity_type, entity_id):
    rows = (
        db.query(AuditLog)
        .filter(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
        .order_by(AuditLog.id)
        .all()
    )
    return [r.action for r in rows]


# =============================================================================
# Writing
# =============================================================================


class TestAuditWrites:
    """Entries produced by ordinary requests."""

    def test_incident_lifecycle_is_recorded(self, client, db, world):
        created = client.post(
            "/api/v1/incidents",
            json={
                "title": "Fire alarm tripped",
                "description": "The alarm in building B went off with no visible cause.",
                "department_id": world["eng"].id,
            },
            headers=world["h"]["eng_emp"],
        ).json()
        client.patch(
            f"/api/v1/incidents/{created['id']}",
            json={"status": "IN_REVIEW", "severity": "HIGH"},
            headers=world["h"]["eng_mgr"],
        )

        assert _actions(db, "INCIDENT", created["id"]) == ["CREATED", "STATUS_CHANGED", "UPDATED"]

        status_entry = (
            db.query(AuditLog).filter(AuditLog.action == "STATUS_CHANGED").one()
        )
        assert status_entry.meta == {"from": "NEW", "to": "IN_REVIEW"}
        assert status_entry.actor_id == world["eng_mgr"].id
        assert status_entry.ip_address

    def test_forwarded_ip_is_recorded(self, client, db, world):
        incident = make_incident(db, world["eng_emp"], world["eng"])
        client.patch(
            f"/api/v1/incidents/{incident.id}",
            json={"severity": "LOW"},
            headers={**world["h"]["admin"], "X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
        )
        entry = db.query(AuditLog).filter(AuditLog.action == "UPDATED").one()
        assert entry.ip_address == "203.0.113.7"
        assert entry.meta == {"changes": ["severity"]}

    def test_forbidden_request_writes_nothing(self, client, db, world):
        incident = make_incident(db, world["ops_emp"], world["ops"])
        client.patch(
            f"/api/v1/incidents/{incident.id}", json={"severity": "LOW"}, headers=world["h"]["eng_mgr"]
        )
        assert _actions(db, "INCIDENT", incident.id) == []

    def test_unchanged_status_writes_only_updated(self, db, world):
        audit_update(
            db,
            entity_type="TASK",
            entity_id=1,
            actor_id=world["admin"].id,
            changes=["title"],
            old_status="TODO",
            new_status="TODO",
        )
        assert _actions(db, "TASK", 1) == ["UPDATED"]


class TestAuditFailure:
    """A broken audit write is logged, never raised."""

    def test_commit_failure_is_swallowed(self, caplog):
        session = BrokenSession()

        audit_log(session, entity_type="INCIDENT", entity_id=1, action="CREATED", actor_id=1)

        assert session.rolled_back is True
        assert len(session.added) == 1
        assert "Audit write failed" in caplog.text

    def test_unserialisable_metadata_is_stringified(self, db, world):
        audit_log(
            db,
            entity_type="USER",
            entity_id=world["admin"].id,
            action="UPDATED",
            actor_id=world["admin"].id,
            meta={"when": object()},
        )
        entry = db.query(AuditLog).filter(AuditLog.entity_type == "USER").one()
        assert isinstance(entry.meta["when"], str)


# =============================================================================
# Immutability
# =============================================================================


class TestAuditImmutability:
    """Audit rows cannot be changed once written."""

    def test_update_is_refused(self, db, world):
        audit_log(db, entity_type="AUTH", entity_id=None, action="LOGIN", actor_id=world["admin"].id)
        entry = db.query(AuditLog).one()

        entry.action = "LOGOUT"
        with pytest.raises(ValueError):
            db.commit()
        db.rollback()

    def test_delete_is_refused(self, db, world):
        audit_log(db, entity_type="AUTH", entity_id=None, action="LOGIN", actor_id=world["admin"].id)
        entry = db.query(AuditLog).one()

        db.delete(entry)
        with pytest.raises(ValueError):
            db.commit()
        db.rollback()

    def test_deleting_the_actor_keeps_their_entries(self, client, db, world):
        leaver = make_user(db, department=world["ops"], email="leaver@acme.io", name="Lee Leaver")
        leaver_id = leaver.id
        login = client.post("/api/v1/auth/login", json={"email": "leaver@acme.io", "password": PASSWORD})
        assert login.status_code == 200
        client.cookies.clear()

        r = client.delete(f"/api/v1/users/{leaver_id}", headers=world["h"]["admin"])
        assert r.status_code == 200

        db.expire_all()
        entry = db.query(AuditLog).filter(AuditLog.action == "LOGIN").one()
        assert entry.actor_id == leaver_id
        assert entry.entity_id == leaver_id


# =============================================================================
# Reading
# =============================================================================


class TestAuditEndpoint:
    """GET /api/v1/audit/logs"""

    def test_admin_reads_with_filters(self, client, db, world):
        incident = make_incident(db, world["eng_emp"], world["eng"])
        client.patch(f"/api/v1/incidents/{incident.id}", json={"severity": "LOW"}, headers=world["h"]["admin"])
        client.patch(f"/api/v1/incidents/{incident.id}", json={"severity": "HIGH"}, headers=world["h"]["admin"])

        r = client.get(
            "/api/v1/audit/logs",
            params={"entity_type": "INCIDENT", "entity_id": incident.id, "action": "UPDATED"},
            headers=world["h"]["admin"],
        )
        assert r.status_code == 200
        body = r.json()
        assert body["pagination"]["total"] == 2
        assert body["data"][0]["metadata"] == {"changes": ["severity"]}
        assert body["data"][0]["id"] > body["data"][1]["id"]

    @pytest.mark.parametrize("who", ["eng_mgr", "eng_emp"])
    def test_non_admin_is_403(self, client, world, who):
        r = client.get("/api/v1/audit/logs", headers=world["h"][who])
        assert r.status_code == 403
        assert r.json()["error"] == "Admin privileges required"
