"""
Tests for the reference-data seed.
"""

from irms.core.config import Settings
from irms.core.security import verify_password
from irms.db.seed import CATEGORIES, DEPARTMENTS, seed_all
from irms.models.category import IncidentCategory
from irms.models.department import Department
from irms.models.user import User

from conftest import TEST_ROUNDS, make_user


def test_admin_credentials_come_from_settings(monkeypatch):
    monkeypatch.setenv("SEED_ADMIN_EMAIL", "root@acme.io")
    monkeypatch.setenv("SEED_ADMIN_PASSWORD", "S33dPassword")

    settings = Settings()

    assert settings.seed_admin_email == "root@acme.io"
    assert settings.seed_admin_password == "S33dPassword"


def test_seed_is_idempotent(db):
    first = seed_all(db, " Root@Acme.io ", "S33dPassword", rounds=TEST_ROUNDS)
    second = seed_all(db, "root@acme.io", "Ignored123", rounds=TEST_ROUNDS)

    assert first.id == second.id
    assert second.role == "ADMIN"
    assert verify_password("S33dPassword", second.password_hash)
    assert db.query(Department).count() == len(DEPARTMENTS)
    assert db.query(IncidentCategory).count() == len(CATEGORIES)
    assert db.query(User).count() == 1


def test_existing_user_is_promoted(db):
    make_user(db, role="EMPLOYEE", email="root@acme.io")

    admin = seed_all(db, "root@acme.io", "S33dPassword", rounds=TEST_ROUNDS)

    assert admin.role == "ADMIN"
    assert db.query(User).count() == 1
