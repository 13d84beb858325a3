"""
Pytest configuration and shared fixtures.

Every test gets a fresh application bound to its own in-memory SQLite
database, and an AI client whose network layer is an httpx.MockTransport.
"""

import json
from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from irms.core.config import Settings
from irms.core.security import create_access_token, get_password_hash
from irms.main import create_app
from irms.models.category import IncidentCategory
from irms.models.department import Department
from irms.models.incident import Incident
from irms.models.risk import Risk
from irms.models.task import Task
from irms.models.user import User

PASSWORD = "Passw0rd!"
TEST_ROUNDS = 4


# =============================================================================
# AI stand-in
# =============================================================================


class FakeAI:
    """Scriptable chat-completions endpoint."""

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.status = 200
        self.content: Optional[str] = json.dumps(
            {
                "suggestedSeverity": "HIGH",
                "summary": "Unauthorized access to the billing database.",
                "recommendedActions": ["Rotate credentials", "Review access logs"],
                "mitigationSuggestions": ["Enforce MFA", "Quarterly access review"],
            }
        )
        self.fail_with: Optional[Exception] = None

    def reply(self, payload: Dict[str, Any]) -> None:
        self.content = json.dumps(payload)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(json.loads(request.content))
        if self.fail_with is not None:
            raise self.fail_with
        return httpx.Response(
            self.status,
            json={"choices": [{"message": {"content": self.content}}]},
        )


@pytest.fixture
def fake_ai() -> FakeAI:
    return FakeAI()


# =============================================================================
# App / DB
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        secret_key="test-secret",
        bcrypt_rounds=TEST_ROUNDS,
        enable_create_all=True,
        ai_api_key="test-key",
        ai_base_url="http://ai.test/v1",
        log_level="WARNING",
    )


@pytest.fixture
def app(settings, fake_ai):
    return create_app(settings, advisor_transport=httpx.MockTransport(fake_ai.handler))


@pytest.fixture
def client(app):
    # context manager runs startup (create_all) and shutdown (dispose)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(app, client):
    session = app.state.db.SessionLocal()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# Factories
# =============================================================================


def make_department(db, name: str = "Engineering") -> Department:
    d = Department(name=name, description=f"{name} department")
    db.add(d)
    db.commit()
    return d


def make_category(db, name: str = "Security") -> IncidentCategory:
    c = IncidentCategory(name=name)
    db.add(c)
    db.commit()
    return c


def make_user(
    db,
    role: str = "EMPLOYEE",
    department: Optional[Department] = None,
    email: Optional[str] = None,
    name: str = "Test User",
) -> User:
    u = User(
        name=name,
        email=email or f"{role.lower()}-{db.query(User).count() + 1}@acme.io",
        password_hash=get_password_hash(PASSWORD, rounds=TEST_ROUNDS),
        role=role,
        department_id=department.id if department else None,
    )
    db.add(u)
    db.commit()
    return u


def make_incident(db, reporter: User, department: Department, **overrides) -> Incident:
    fields = dict(
        title="Server room door left open",
        description="The server room door was found propped open overnight.",
        department_id=department.id,
        reported_by_id=reporter.id,
    )
    fields.update(overrides)
    i = Incident(**fields)
    db.add(i)
    db.commit()
    return i


def make_risk(db, owner: User, department: Department, **overrides) -> Risk:
    fields = dict(
        title="Single point of failure in DNS",
        description="All internal DNS resolution depends on one server.",
        category="Infrastructure",
        department_id=department.id,
        owner_id=owner.id,
    )
    fields.update(overrides)
    r = Risk(**fields)
    db.add(r)
    db.commit()
    return r


def make_task(db, assignee: User, **overrides) -> Task:
    fields = dict(title="Replace door lock", assigned_to_id=assignee.id)
    fields.update(overrides)
    t = Task(**fields)
    db.add(t)
    db.commit()
    return t


def auth_headers(settings: Settings, user: User) -> Dict[str, str]:
    token = create_access_token(
        settings, user_id=user.id, role=user.role, department_id=user.department_id
    )
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# Common actors
# =============================================================================


@pytest.fixture
def world(db, settings):
    """
    Two departments with one manager and two employees each, plus an admin.
    Returns a dict of rows and ready-made auth headers.
    """
    eng = make_department(db, "Engineering")
    ops = make_department(db, "Operations")
    admin = make_user(db, "ADMIN", eng, email="admin@acme.io", name="Ada Admin")
    eng_mgr = make_user(db, "MANAGER", eng, email="eng.mgr@acme.io", name="Eve Manager")
    eng_emp = make_user(db, "EMPLOYEE", eng, email="eng.emp@acme.io", name="Eli Employee")
    eng_emp2 = make_user(db, "EMPLOYEE", eng, email="eng.emp2@acme.io", name="Ema Employee")
    ops_mgr = make_user(db, "MANAGER", ops, email="ops.mgr@acme.io", name="Oli Manager")
    ops_emp = make_user(db, "EMPLOYEE", ops, email="ops.emp@acme.io", name="Ola Employee")

    users = dict(
        admin=admin,
        eng_mgr=eng_mgr,
        eng_emp=eng_emp,
        eng_emp2=eng_emp2,
        ops_mgr=ops_mgr,
        ops_emp=ops_emp,
    )
    return {
        "eng": eng,
        "ops": ops,
        **users,
        "h": {k: auth_headers(settings, u) for k, u in users.items()},
    }
