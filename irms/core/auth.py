# irms/core/auth.py
import logging
from typing import Iterator, Optional

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import func
from sqlalchemy.orm import Session

from irms.core.config import Settings
from irms.core.security import (
    InvalidToken,
    decode_access_token,
    get_password_hash,
    verify_password,
)
from irms.models.user import User

log = logging.getLogger("irms.auth")

# Bearer scheme for API clients and the Swagger "Authorize" button.
# Browsers use the session cookie instead, so this never errors on its own.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

_dummy_hash: Optional[str] = None


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Iterator[Session]:
    yield from request.app.state.db.session()


def _burn_password_check(password: str, rounds: int) -> None:
    # Same bcrypt cost for unknown emails, so timing does not leak existence.
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = get_password_hash("not-a-real-password", rounds=rounds)
    verify_password(password, _dummy_hash)


def authenticate_user(
    db: Session, email: str, password: str, rounds: int = 12
) -> Optional[User]:
    """
    Return the user for valid credentials, otherwise None.
    Unknown email and wrong password are indistinguishable to the caller.
    """
    normalized = (email or "").strip().lower()
    user = db.query(User).filter(func.lower(User.email) == normalized).first()
    if not user:
        _burn_password_check(password, rounds)
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def _token_from_request(request: Request, bearer: Optional[str], settings: Settings) -> Optional[str]:
    # an explicit Authorization header wins over the browser cookie
    return bearer or request.cookies.get(settings.session_cookie_name)


def get_current_user(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Decode the session token and load the user from DB or return 401.

    Role and department come from the stored row, not from the token claims,
    so a role change or deletion takes effect on the next request.
    Side-effect: store user context on request.state (for request logging).
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token = _token_from_request(request, bearer, settings)
    if not token:
        raise credentials_exception

    try:
        claims = decode_access_token(settings, token)
    except InvalidToken as exc:
        log.info("Rejected session token: %s", exc)
        raise credentials_exception

    user = db.get(User, claims["sub"])
    if user is None:
        raise credentials_exception

    request.state.user_id = user.id
    request.state.user_role = user.role
    return user
