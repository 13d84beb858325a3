"""
Tests for department and incident-category administration.
"""

from irms.crud import department as department_crud
from irms.models.department import Department
from irms.models.category import IncidentCategory

from conftest import make_category, make_department, make_incident, make_risk


# =============================================================================
# Departments
# =============================================================================


class TestDepartments:
    """/api/v1/departments"""

    def test_admin_creates_department(self, client, world):
        r = client.post(
            "/api/v1/departments",
            json={"name": "  Finance ", "description": "Money"},
            headers=world["h"]["admin"],
        )
        assert r.status_code == 201
        assert r.json()["name"] == "Finance"

    def test_non_admin_cannot_create(self, client, world):
        for who in ("eng_mgr", "eng_emp"):
            r = client.post("/api/v1/departments", json={"name": "Finance"}, headers=world["h"][who])
            assert r.status_code == 403, who

    def test_duplicate_name_is_409(self, client, world):
        r = client.post("/api/v1/departments", json={"name": "Engineering"}, headers=world["h"]["admin"])
        assert r.status_code == 409

    def test_unique_constraint_backs_up_the_name_check(self, client, world, monkeypatch):
        monkeypatch.setattr(department_crud, "get_department_by_name", lambda db, name: None)
        r = client.post("/api/v1/departments", json={"name": "Engineering"}, headers=world["h"]["admin"])
        assert r.status_code == 409
        assert r.json() == {"error": "Conflict with existing data"}

    def test_name_match_is_case_sensitive(self, client, world):
        r = client.post("/api/v1/departments", json={"name": "engineering"}, headers=world["h"]["admin"])
        assert r.status_code == 201

    def test_rename_to_existing_name_is_409(self, client, world):
        r = client.patch(
            f"/api/v1/departments/{world['ops'].id}",
            json={"name": "Engineering"},
            headers=world["h"]["admin"],
        )
        assert r.status_code == 409

    def test_list_is_ordered_with_counts(self, client, db, world):
        make_incident(db, world["eng_emp"], world["eng"])
        make_risk(db, world["ops_mgr"], world["ops"])

        r = client.get("/api/v1/departments", headers=world["h"]["eng_emp"])

        assert r.status_code == 200
        rows = {d["name"]: d for d in r.json()}
        assert [d["name"] for d in r.json()] == ["Engineering", "Operations"]
        assert rows["Engineering"]["users_count"] == 4
        assert rows["Engineering"]["incidents_count"] == 1
        assert rows["Operations"]["risks_count"] == 1

    def test_delete_with_users_is_409(self, client, world):
        r = client.delete(f"/api/v1/departments/{world['ops'].id}", headers=world["h"]["admin"])
        assert r.status_code == 409
        assert r.json()["details"]["users"] == 2

    def test_delete_with_incidents_is_409(self, client, db, world):
        legal = make_department(db, "Legal")
        make_incident(db, world["eng_emp"], legal)
        r = client.delete(f"/api/v1/departments/{legal.id}", headers=world["h"]["admin"])
        assert r.status_code == 409
        assert r.json()["details"] == {"incidents": 1}

    def test_delete_empty_department(self, client, db, world):
        empty = make_department(db, "Legal")
        empty_id = empty.id
        r = client.delete(f"/api/v1/departments/{empty_id}", headers=world["h"]["admin"])
        assert r.status_code == 200
        db.expire_all()
        assert db.get(Department, empty_id) is None

    def test_missing_department_is_404(self, client, world):
        r = client.get("/api/v1/departments/424242", headers=world["h"]["admin"])
        assert r.status_code == 404


# =============================================================================
# Categories
# =============================================================================


class TestCategories:
    """/api/v1/categories"""

    def test_create_and_list(self, client, db, world):
        make_category(db, "Safety")
        r = client.post("/api/v1/categories", json={"name": "Fraud"}, headers=world["h"]["admin"])
        assert r.status_code == 201

        names = [c["name"] for c in client.get("/api/v1/categories", headers=world["h"]["eng_emp"]).json()]
        assert names == ["Fraud", "Safety"]

    def test_manager_cannot_create(self, client, world):
        r = client.post("/api/v1/categories", json={"name": "Fraud"}, headers=world["h"]["eng_mgr"])
        assert r.status_code == 403

    def test_duplicate_name_is_409(self, client, db, world):
        make_category(db, "Safety")
        r = client.post("/api/v1/categories", json={"name": "Safety"}, headers=world["h"]["admin"])
        assert r.status_code == 409

    def test_delete_in_use_is_409(self, client, db, world):
        cat = make_category(db, "Safety")
        make_incident(db, world["eng_emp"], world["eng"], category_id=cat.id)

        r = client.delete(f"/api/v1/categories/{cat.id}", headers=world["h"]["admin"])
        assert r.status_code == 409
        assert r.json()["details"] == {"incidents": 1}

    def test_delete_unused_category(self, client, db, world):
        cat = make_category(db, "Obsolete")
        cat_id = cat.id
        r = client.delete(f"/api/v1/categories/{cat_id}", headers=world["h"]["admin"])
        assert r.status_code == 200
        db.expire_all()
        assert db.get(IncidentCategory, cat_id) is None
