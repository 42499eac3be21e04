from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, field_validator

from pharmadesk.core.config import settings


def _check_length(v: str) -> str:
    if len(v) < settings.MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long")
    return v


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    full_name: Optional[str] = None

    @field_validator('password')
    @classmethod
    def password_min_length(cls, v: str) -> str:
        return _check_length(v)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: Optional[datetime] = None


class SessionResponse(BaseModel):
    user: UserResponse
    expires_at: Optional[datetime] = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str

    @field_validator('new_password')
    @classmethod
    def new_password_min_length(cls, v: str) -> str:
        return _check_length(v)


class ProfileUpdate(BaseModel):
    full_name: str
    email: EmailStr

    @field_validator('full_name')
    @classmethod
    def full_name_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Please fill in all fields")
        return v.strip()
