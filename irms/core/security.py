# irms/core/security.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

from irms.core.config import Settings

ROLES = ("ADMIN", "MANAGER", "EMPLOYEE")


class InvalidToken(Exception):
    """Token is missing, malformed, expired or carries an unknown role."""


# -----------------------------
# Passwords
# -----------------------------
def get_password_hash(password: str, rounds: int = 12) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )
    except ValueError:
        # corrupt/unknown hash format
        return False


# -----------------------------
# Session tokens
# -----------------------------
def create_access_token(
    settings: Settings,
    *,
    user_id: int,
    role: str,
    department_id: Optional[int],
    now: Optional[datetime] = None,
) -> str:
    if role not in ROLES:
        raise ValueError(f"Unknown role {role!r}")
    issued = now or datetime.now(timezone.utc)
    claims: Dict[str, Any] = {
        "sub": str(user_id),
        "role": role,
        "department_id": department_id,
        "iat": issued,
        "exp": issued + timedelta(hours=settings.session_ttl_hours),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(settings: Settings, token: str) -> Dict[str, Any]:
    """
    Decode and check a session token.
    Returns the claims with `sub` converted to int.
    """
    try:
        payload = jwt.decode(
            token, settings.secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError as exc:
        raise InvalidToken(str(exc)) from exc

    sub = payload.get("sub")
    if sub is None or not str(sub).isdigit():
        raise InvalidToken("Missing subject")
    if payload.get("role") not in ROLES:
        raise InvalidToken("Unknown role claim")

    payload["sub"] = int(sub)
    return payload
