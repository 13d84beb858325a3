# irms/db/seed.py
"""
Idempotent reference data: demo departments, incident categories and an
administrator account. Existing rows are left alone; only missing ones
are inserted.
"""
import logging
from typing import Dict, Optional

from sqlalchemy.orm import Session

from irms.core.security import get_password_hash
from irms.models.category import IncidentCategory
from irms.models.department import Department
from irms.models.user import User

log = logging.getLogger("irms.seed")

DEPARTMENTS = (
    ("Engineering", "Software development and IT operations"),
    ("Operations", "Day-to-day business operations"),
    ("Human Resources", "Employee management and workplace safety"),
    ("Finance", "Financial operations and reporting"),
    ("Sales", "Sales and customer relations"),
)

CATEGORIES = (
    ("Security", "Security-related incidents including breaches and vulnerabilities"),
    ("Safety", "Workplace safety incidents and hazards"),
    ("IT Infrastructure", "System outages, hardware failures, network issues"),
    ("Compliance", "Regulatory and policy compliance issues"),
    ("Customer Impact", "Incidents affecting customer service or satisfaction"),
    ("Data", "Data loss, corruption, or privacy incidents"),
)


def seed_departments(db: Session) -> Dict[str, Department]:
    out = {}
    for name, description in DEPARTMENTS:
        row = db.query(Department).filter(Department.name == name).first()
        if row is None:
            row = Department(name=name, description=description)
            db.add(row)
            log.info("Created department %s", name)
        out[name] = row
    db.commit()
    return out


def seed_categories(db: Session) -> Dict[str, IncidentCategory]:
    out = {}
    for name, description in CATEGORIES:
        row = db.query(IncidentCategory).filter(IncidentCategory.name == name).first()
        if row is None:
            row = IncidentCategory(name=name, description=description)
            db.add(row)
            log.info("Created category %s", name)
        out[name] = row
    db.commit()
    return out


def ensure_admin(
    db: Session,
    email: str,
    password: str,
    department_id: Optional[int] = None,
    rounds: int = 12,
) -> User:
    """Create the admin account, or promote an existing user with that email."""
    email = email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if user:
        if user.role != "ADMIN":
            user.role = "ADMIN"
            db.add(user)
            db.commit()
            db.refresh(user)
            log.info("Promoted %s to ADMIN", email)
        return user

    user = User(
        name="System Admin",
        email=email,
        password_hash=get_password_hash(password, rounds=rounds),
        role="ADMIN",
        department_id=department_id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    log.info("Created admin %s", email)
    return user


def seed_all(db: Session, admin_email: str, admin_password: str, rounds: int = 12) -> User:
    departments = seed_departments(db)
    seed_categories(db)
    return ensure_admin(
        db,
        admin_email,
        admin_password,
        department_id=departments["Engineering"].id,
        rounds=rounds,
    )
