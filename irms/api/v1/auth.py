# irms/api/v1/auth.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from irms.core.auth import authenticate_user, get_current_user, get_db, get_settings
from irms.core.config import Settings
from irms.core.security import create_access_token
from irms.crud.user import touch_last_login
from irms.models.user import User
from irms.schemas.auth import LoginRequest, TokenOut
from irms.schemas.common import Message
from irms.schemas.user import UserOut
from irms.services.audit import audit_log, ip_from_request

log = logging.getLogger("irms.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenOut)
def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = authenticate_user(db, payload.email, payload.password, rounds=settings.bcrypt_rounds)
    if not user:
        log.info("Failed login for %s from %s", payload.email, ip_from_request(request))
        # same message for unknown email and wrong password
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    token = create_access_token(
        settings,
        user_id=user.id,
        role=user.role,
        department_id=user.department_id,
    )
    max_age = settings.session_ttl_hours * 3600
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
        path="/",
    )

    touch_last_login(db, user)
    audit_log(
        db,
        entity_type="AUTH",
        entity_id=user.id,
        action="LOGIN",
        actor_id=user.id,
        meta={"email": user.email},
        ip=ip_from_request(request),
    )

    return TokenOut(
        access_token=token,
        expires_in=max_age,
        user=UserOut.model_validate(user),
    )


@router.post("/logout", response_model=Message)
def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user),
):
    response.delete_cookie(settings.session_cookie_name, path="/")
    audit_log(
        db,
        entity_type="AUTH",
        entity_id=current_user.id,
        action="LOGOUT",
        actor_id=current_user.id,
        ip=ip_from_request(request),
    )
    return Message(message="Logged out")


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return UserOut.model_validate(current_user)
