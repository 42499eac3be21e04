"""Auth and account: sign-in, sign-out, session, password, profile, photo.

- Password hashing with bcrypt
- Token returned in the body and set as httpOnly, SameSite cookie
- Generic error on failed sign-in (no user enumeration)
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile, status
from sqlalchemy.orm import Session

from pharmadesk.api.deps import get_db, get_current_user, get_token
from pharmadesk.core.audit import AuditLog
from pharmadesk.core.config import settings
from pharmadesk.core.security import create_access_token, decode_token_claims, get_password_hash, verify_password
from pharmadesk.models.user import User
from pharmadesk.schemas.user import (
    PasswordChange,
    ProfileUpdate,
    SessionResponse,
    Token,
    UserCreate,
    UserLogin,
    UserResponse,
)
from pharmadesk.services.storage_service import save_avatar

router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _clear_auth_cookie(response: Response):
    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        secure=settings.SECURE_COOKIES,
        httponly=True,
        samesite=settings.SAME_SITE_COOKIE,
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(data: UserCreate, request: Request, db: Session = Depends(get_db)):
    """Create a staff account."""
    if db.query(User).filter(User.email == data.email).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    user = User(
        email=data.email,
        full_name=(data.full_name or "").strip() or None,
        hashed_password=get_password_hash(data.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    AuditLog.log_authentication("register", user.email, _client_ip(request), True)
    return user


@router.post("/login", response_model=Token)
def login(data: UserLogin, request: Request, response: Response, db: Session = Depends(get_db)):
    """Sign in with email and password."""
    user = db.query(User).filter(User.email == data.email).first()
    if not user or not verify_password(data.password, user.hashed_password):
        AuditLog.log_authentication("failed_login", data.email, _client_ip(request), False, reason="Invalid credentials")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = create_access_token(subject=str(user.id))
    claims = decode_token_claims(token)
    expires_at = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)

    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        secure=settings.SECURE_COOKIES,
        httponly=True,
        samesite=settings.SAME_SITE_COOKIE,
    )
    AuditLog.log_authentication("login", user.email, _client_ip(request), True)
    return Token(access_token=token, expires_at=expires_at)


@router.post("/logout")
def logout(request: Request, response: Response, current_user: User = Depends(get_current_user)):
    """Sign out by clearing the auth cookie. Bearer clients drop their token."""
    _clear_auth_cookie(response)
    AuditLog.log_authentication("logout", current_user.email, _client_ip(request), True)
    return {"message": "Logged out successfully"}


@router.get("/session", response_model=SessionResponse)
def get_session(token: str = Depends(get_token), current_user: User = Depends(get_current_user)):
    """Current user and when the token expires."""
    claims = decode_token_claims(token) or {}
    expires_at = None
    if "exp" in claims:
        expires_at = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
    return SessionResponse(user=UserResponse.model_validate(current_user), expires_at=expires_at)


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/password")
def change_password(
    data: PasswordChange,
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Change password. The auth cookie is cleared so the user signs in again."""
    if not verify_password(data.current_password, current_user.hashed_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    if data.new_password != data.confirm_password:
        raise HTTPException(status_code=400, detail="New passwords do not match")
    if data.new_password == data.current_password:
        raise HTTPException(status_code=400, detail="New password must be different from your current password")

    current_user.hashed_password = get_password_hash(data.new_password)
    db.commit()
    _clear_auth_cookie(response)
    AuditLog.log_security_event("password_changed", current_user.id)
    return {"message": "Password changed successfully! You will be logged out for security."}


@router.put("/profile", response_model=UserResponse)
def update_profile(
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update full name and email."""
    email = str(data.email)
    if email != current_user.email:
        taken = db.query(User).filter(User.email == email, User.id != current_user.id).first()
        if taken:
            raise HTTPException(status_code=409, detail="Email already registered")
        AuditLog.log_security_event("email_changed", current_user.id)

    current_user.full_name = data.full_name
    current_user.email = email
    db.commit()
    db.refresh(current_user)
    return current_user


@router.post("/avatar", response_model=UserResponse)
async def upload_avatar(
    photo: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Upload a profile photo and store its public URL on the user."""
    content = await photo.read()
    current_user.avatar_url = save_avatar(current_user.id, content, photo.content_type)
    db.commit()
    db.refresh(current_user)
    AuditLog.log_security_event("avatar_updated", current_user.id)
    return current_user
