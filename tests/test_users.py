"""
Tests for user administration.
"""

import pytest

from irms.core.security import verify_password
from irms.models.user import User

from conftest import PASSWORD, make_incident


def _new_user(department_id=None, **overrides):
    body = {
        "name": "Nora New",
        "email": "Nora.New@Acme.io",
        "password": "Str0ngPass",
        "role": "EMPLOYEE",
        "department_id": department_id,
    }
    body.update(overrides)
    return body


# =============================================================================
# Create
# =============================================================================


class TestCreateUser:
    """POST /api/v1/users"""

    def test_admin_creates_user_with_hashed_password(self, client, db, world):
        r = client.post("/api/v1/users", json=_new_user(world["eng"].id), headers=world["h"]["admin"])

        assert r.status_code == 201
        body = r.json()
        assert body["email"] == "nora.new@acme.io"
        assert "password" not in body and "password_hash" not in body

        stored = db.get(User, body["id"])
        assert stored.password_hash != "Str0ngPass"
        assert verify_password("Str0ngPass", stored.password_hash)

    @pytest.mark.parametrize(
        "password, message",
        [
            ("Sh0rt", "at least 8 characters"),
            ("alllower1", "uppercase"),
            ("ALLUPPER1", "lowercase"),
            ("NoDigitsHere", "number"),
        ],
    )
    def test_weak_password_is_400(self, client, world, password, message):
        r = client.post(
            "/api/v1/users", json=_new_user(password=password), headers=world["h"]["admin"]
        )
        assert r.status_code == 400
        detail = r.json()["details"][0]
        assert detail["field"] == "password"
        assert message in detail["message"]

    def test_duplicate_email_is_409(self, client, world):
        r = client.post(
            "/api/v1/users",
            json=_new_user(email="ENG.EMP@acme.io"),
            headers=world["h"]["admin"],
        )
        assert r.status_code == 409

    def test_unknown_department_is_400(self, client, world):
        r = client.post("/api/v1/users", json=_new_user(4242), headers=world["h"]["admin"])
        assert r.status_code == 400

    def test_manager_cannot_create_users(self, client, world):
        r = client.post("/api/v1/users", json=_new_user(world["eng"].id), headers=world["h"]["eng_mgr"])
        assert r.status_code == 403


# =============================================================================
# Read / list
# =============================================================================


class TestListUsers:
    """GET /api/v1/users"""

    def test_manager_sees_own_department(self, client, world):
        r = client.get("/api/v1/users", params={"limit": 100}, headers=world["h"]["eng_mgr"])
        emails = {u["email"] for u in r.json()["data"]}
        assert emails == {"admin@acme.io", "eng.mgr@acme.io", "eng.emp@acme.io", "eng.emp2@acme.io"}

    def test_employee_sees_only_self(self, client, world):
        r = client.get("/api/v1/users", headers=world["h"]["ops_emp"])
        assert [u["id"] for u in r.json()["data"]] == [world["ops_emp"].id]

    def test_search_by_name(self, client, world):
        r = client.get("/api/v1/users", params={"search": "oli"}, headers=world["h"]["admin"])
        assert [u["name"] for u in r.json()["data"]] == ["Oli Manager"]

    def test_employee_cannot_read_colleague(self, client, world):
        r = client.get(f"/api/v1/users/{world['eng_emp2'].id}", headers=world["h"]["eng_emp"])
        assert r.status_code == 403


# =============================================================================
# Update
# =============================================================================


class TestUpdateUser:
    """PATCH /api/v1/users/{id}"""

    def test_non_admin_cannot_change_own_role_or_department(self, client, world):
        r = client.patch(
            f"/api/v1/users/{world['eng_emp'].id}",
            json={"role": "ADMIN", "department_id": world["ops"].id, "name": "Eli Renamed"},
            headers=world["h"]["eng_emp"],
        )
        assert r.status_code == 200
        body = r.json()
        assert body["role"] == "EMPLOYEE"
        assert body["department_id"] == world["eng"].id
        assert body["name"] == "Eli Renamed"

    def test_manager_cannot_edit_subordinate(self, client, world):
        r = client.patch(
            f"/api/v1/users/{world['eng_emp'].id}", json={"name": "Changed"}, headers=world["h"]["eng_mgr"]
        )
        assert r.status_code == 403

    def test_admin_promotes_user(self, client, world):
        r = client.patch(
            f"/api/v1/users/{world['eng_emp'].id}", json={"role": "MANAGER"}, headers=world["h"]["admin"]
        )
        assert r.json()["role"] == "MANAGER"

    def test_password_change_rehashes(self, client, db, world):
        r = client.patch(
            f"/api/v1/users/{world['eng_emp'].id}",
            json={"password": "An0therOne"},
            headers=world["h"]["eng_emp"],
        )
        assert r.status_code == 200
        db.expire_all()
        stored = db.get(User, world["eng_emp"].id)
        assert verify_password("An0therOne", stored.password_hash)
        assert not verify_password(PASSWORD, stored.password_hash)

    def test_email_taken_by_someone_else_is_409(self, client, world):
        r = client.patch(
            f"/api/v1/users/{world['eng_emp'].id}",
            json={"email": "ops.emp@acme.io"},
            headers=world["h"]["eng_emp"],
        )
        assert r.status_code == 409


# =============================================================================
# Delete
# =============================================================================


class TestDeleteUser:
    """DELETE /api/v1/users/{id}"""

    def test_admin_cannot_delete_self(self, client, world):
        r = client.delete(f"/api/v1/users/{world['admin'].id}", headers=world["h"]["admin"])
        assert r.status_code == 400

    def test_user_with_records_is_409(self, client, db, world):
        make_incident(db, world["ops_emp"], world["ops"])
        r = client.delete(f"/api/v1/users/{world['ops_emp'].id}", headers=world["h"]["admin"])
        assert r.status_code == 409
        assert r.json()["details"] == {"incidents": 1}

    def test_delete_user_without_records(self, client, db, world):
        user_id = world["ops_emp"].id
        r = client.delete(f"/api/v1/users/{user_id}", headers=world["h"]["admin"])
        assert r.status_code == 200
        db.expire_all()
        assert db.get(User, user_id) is None

    def test_non_admin_cannot_delete(self, client, world):
        r = client.delete(f"/api/v1/users/{world['ops_emp'].id}", headers=world["h"]["ops_mgr"])
        assert r.status_code == 403
