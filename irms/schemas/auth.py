# irms/schemas/auth.py
from pydantic import BaseModel, EmailStr, Field

from irms.schemas.user import UserOut


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Seconds until the session expires")
    user: UserOut
