"""
Tests for tasks and comments.

Covers:
- Single-link rule for tasks and single-parent rule for comments
- Department limits on task creation and reassignment
- Employees moving task status only
- Comments inheriting the parent's read access
"""

from datetime import datetime

from irms.models.audit_log import AuditLog

from conftest import make_incident, make_risk, make_task


# =============================================================================
# Tasks
# =============================================================================


class TestCreateTask:
    """POST /api/v1/tasks"""

    def test_manager_creates_task_on_department_incident(self, client, db, world):
        incident = make_incident(db, world["eng_emp"], world["eng"])
        r = client.post(
            "/api/v1/tasks",
            json={
                "title": "Dry the floor",
                "assigned_to_id": world["eng_emp"].id,
                "related_incident_id": incident.id,
            },
            headers=world["h"]["eng_mgr"],
        )
        assert r.status_code == 201
        body = r.json()
        assert body["status"] == "TODO"
        assert body["created_by_id"] == world["eng_mgr"].id
        assert body["related_incident_id"] == incident.id

    def test_both_links_is_400(self, client, db, world):
        incident = make_incident(db, world["eng_emp"], world["eng"])
        risk = make_risk(db, world["eng_mgr"], world["eng"])
        r = client.post(
            "/api/v1/tasks",
            json={
                "title": "Two masters",
                "assigned_to_id": world["eng_emp"].id,
                "related_incident_id": incident.id,
                "related_risk_id": risk.id,
            },
            headers=world["h"]["admin"],
        )
        assert r.status_code == 400
        assert "not both" in r.json()["details"][0]["message"]

    def test_manager_cannot_assign_outside_department(self, client, world):
        r = client.post(
            "/api/v1/tasks",
            json={"title": "Cross-team chore", "assigned_to_id": world["ops_emp"].id},
            headers=world["h"]["eng_mgr"],
        )
        assert r.status_code == 403

    def test_manager_cannot_link_other_department_incident(self, client, db, world):
        incident = make_incident(db, world["ops_emp"], world["ops"])
        r = client.post(
            "/api/v1/tasks",
            json={
                "title": "Sneaky link",
                "assigned_to_id": world["eng_emp"].id,
                "related_incident_id": incident.id,
            },
            headers=world["h"]["eng_mgr"],
        )
        assert r.status_code == 403

    def test_employee_cannot_create_tasks(self, client, world):
        r = client.post(
            "/api/v1/tasks",
            json={"title": "Self-assigned", "assigned_to_id": world["eng_emp"].id},
            headers=world["h"]["eng_emp"],
        )
        assert r.status_code == 403

    def test_unknown_assignee_is_400(self, client, world):
        r = client.post(
            "/api/v1/tasks",
            json={"title": "Ghost work", "assigned_to_id": 9999},
            headers=world["h"]["admin"],
        )
        assert r.status_code == 400
        assert r.json()["details"][0]["field"] == "assigned_to_id"


class TestUpdateTask:
    """PATCH /api/v1/tasks/{id}"""

    def test_assignee_only_moves_status(self, client, db, world):
        task = make_task(db, world["eng_emp"])
        r = client.patch(
            f"/api/v1/tasks/{task.id}",
            json={"status": "DONE", "title": "Renamed by employee", "assigned_to_id": world["eng_emp2"].id},
            headers=world["h"]["eng_emp"],
        )
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "DONE"
        assert body["title"] == "Replace door lock"
        assert body["assigned_to_id"] == world["eng_emp"].id

    def test_employee_cannot_touch_other_task(self, client, db, world):
        task = make_task(db, world["eng_emp2"])
        r = client.patch(f"/api/v1/tasks/{task.id}", json={"status": "DONE"}, headers=world["h"]["eng_emp"])
        assert r.status_code == 403

    def test_manager_cannot_reassign_outside_department(self, client, db, world):
        task = make_task(db, world["eng_emp"])
        r = client.patch(
            f"/api/v1/tasks/{task.id}",
            json={"assigned_to_id": world["ops_emp"].id},
            headers=world["h"]["eng_mgr"],
        )
        assert r.status_code == 403

    def test_reassignment_is_audited(self, client, db, world):
        task = make_task(db, world["eng_emp"])
        client.patch(
            f"/api/v1/tasks/{task.id}",
            json={"assigned_to_id": world["eng_emp2"].id},
            headers=world["h"]["eng_mgr"],
        )
        entry = (
            db.query(AuditLog)
            .filter(AuditLog.entity_type == "TASK", AuditLog.action == "ASSIGNED")
            .one()
        )
        assert entry.meta == {"from": world["eng_emp"].id, "to": world["eng_emp2"].id}


class TestListTasks:
    """GET /api/v1/tasks"""

    def test_mine_filter(self, client, db, world):
        make_task(db, world["eng_emp"])
        make_task(db, world["eng_emp2"])
        r = client.get("/api/v1/tasks", params={"mine": True}, headers=world["h"]["eng_mgr"])
        assert r.json()["data"] == []

        r = client.get("/api/v1/tasks", headers=world["h"]["eng_mgr"])
        assert r.json()["pagination"]["total"] == 2

    def test_employee_sees_only_assigned(self, client, db, world):
        mine = make_task(db, world["eng_emp"])
        make_task(db, world["eng_emp2"])
        r = client.get("/api/v1/tasks", headers=world["h"]["eng_emp"])
        assert [t["id"] for t in r.json()["data"]] == [mine.id]

    def test_due_date_order_puts_undated_last(self, client, db, world):
        undated = make_task(db, world["eng_emp"], title="Someday")
        later = make_task(db, world["eng_emp"], title="Later", due_date=datetime(2030, 6, 1))
        sooner = make_task(db, world["eng_emp"], title="Sooner", due_date=datetime(2030, 1, 1))

        r = client.get("/api/v1/tasks", headers=world["h"]["admin"])
        assert [t["id"] for t in r.json()["data"]] == [sooner.id, later.id, undated.id]


# =============================================================================
# Comments
# =============================================================================


class TestComments:
    """/api/v1/comments"""

    def test_comment_needs_exactly_one_parent(self, client, db, world):
        incident = make_incident(db, world["eng_emp"], world["eng"])
        risk = make_risk(db, world["eng_mgr"], world["eng"])
        h = world["h"]["admin"]

        neither = client.post("/api/v1/comments", json={"body": "Orphan"}, headers=h)
        both = client.post(
            "/api/v1/comments",
            json={"body": "Greedy", "incident_id": incident.id, "risk_id": risk.id},
            headers=h,
        )
        assert neither.status_code == both.status_code == 400

    def test_reader_can_comment(self, client, db, world):
        incident = make_incident(db, world["eng_emp"], world["eng"])
        r = client.post(
            "/api/v1/comments",
            json={"body": "Mop is on the way", "incident_id": incident.id},
            headers=world["h"]["eng_mgr"],
        )
        assert r.status_code == 201
        assert r.json()["author_id"] == world["eng_mgr"].id

        listed = client.get(
            "/api/v1/comments", params={"incident_id": incident.id}, headers=world["h"]["eng_emp"]
        )
        assert [c["body"] for c in listed.json()] == ["Mop is on the way"]

    def test_cannot_comment_on_invisible_incident(self, client, db, world):
        incident = make_incident(db, world["ops_emp"], world["ops"])
        r = client.post(
            "/api/v1/comments",
            json={"body": "Hello from engineering", "incident_id": incident.id},
            headers=world["h"]["eng_mgr"],
        )
        assert r.status_code == 403

    def test_list_requires_one_parent_filter(self, client, world):
        r = client.get("/api/v1/comments", headers=world["h"]["admin"])
        assert r.status_code == 400

    def test_only_admin_deletes_comments(self, client, db, world):
        incident = make_incident(db, world["eng_emp"], world["eng"])
        created = client.post(
            "/api/v1/comments",
            json={"body": "Regrettable remark", "incident_id": incident.id},
            headers=world["h"]["eng_emp"],
        ).json()

        url = f"/api/v1/comments/{created['id']}"
        assert client.delete(url, headers=world["h"]["eng_emp"]).status_code == 403
        assert client.delete(url, headers=world["h"]["eng_mgr"]).status_code == 403
        assert client.delete(url, headers=world["h"]["admin"]).status_code == 200
