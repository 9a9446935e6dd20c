import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from storefront.auth.dependencies import get_current_user
from storefront.auth.security import create_access_token, hash_password, verify_password
from storefront.db.database import get_db
from storefront.errors import AuthenticationFailed, ConflictError, PermissionDenied
from storefront.middleware.rate_limit import client_identifier, get_rule, limiter, rate_limit
from storefront.models.models import Profile, UserRole
from storefront.schemas.schemas import (
    AuthResponse,
    LoginRequest,
    PasswordChange,
    ProfileResponse,
    ProfileUpdate,
    RegisterRequest,
)
from storefront.config.settings import settings

logger = logging.getLogger(__name__)

# Router
router = APIRouter(prefix="/api/auth", tags=["auth"])


# =========================
# REGISTER
# =========================
@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=201,
    dependencies=[Depends(rate_limit("register"))],
)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    if db.query(Profile).filter(Profile.email == payload.email).first():
        raise ConflictError("User already exists with this email", code="EMAIL_EXISTS")

    user = Profile(
        email=payload.email,
        password_hash=hash_password(payload.password),
        full_name=payload.full_name,
        role=UserRole.CUSTOMER.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user.id}")

    return {
        "message": "User registered successfully",
        "user": user,
        "token": create_access_token(user.id, user.role),
    }


# =========================
# LOGIN
# =========================
@router.post("/login", response_model=AuthResponse, dependencies=[Depends(rate_limit("login"))])
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    user = db.query(Profile).filter(Profile.email == payload.email).first()
    if not user or not verify_password(payload.password, user.password_hash):
        logger.info(f"Failed login for {payload.email}")
        raise AuthenticationFailed("Invalid email or password", code="INVALID_CREDENTIALS")
    if not user.is_active:
        raise PermissionDenied("Account is deactivated", code="ACCOUNT_INACTIVE")

    # Successful logins do not count against the login limit
    if settings.rate_limit_enabled:
        limiter.refund(get_rule("login"), client_identifier(request))

    return {
        "message": "Login successful",
        "user": user,
        "token": create_access_token(user.id, user.role),
    }


# =========================
# PROFILE
# =========================
@router.get("/me", response_model=ProfileResponse)
def me(user: Profile = Depends(get_current_user)):
    return user


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    payload: ProfileUpdate,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user


@router.put("/password")
def change_password(
    payload: PasswordChange,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not verify_password(payload.current_password, user.password_hash):
        raise AuthenticationFailed("Current password is incorrect", code="INVALID_CREDENTIALS")
    user.password_hash = hash_password(payload.new_password)
    db.commit()
    return {"message": "Password updated successfully"}
