import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import Optional

from storefront.auth.dependencies import require_admin
from storefront.auth.security import hash_password
from storefront.db.database import get_db
from storefront.errors import ConflictError, ValidationFailed
from storefront.models.models import Order, Profile
from storefront.schemas.schemas import AdminUserCreate, AdminUserUpdate, ProfileResponse
from storefront.services.catalog_service import paginate

logger = logging.getLogger(__name__)

# Router
router = APIRouter(prefix="/api/admin/users", tags=["admin"], dependencies=[Depends(require_admin)])


def _get_user(db: Session, user_id: str) -> Profile:
    user = db.query(Profile).filter(Profile.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _user_dict(user: Profile) -> dict:
    return ProfileResponse.model_validate(user).model_dump(mode="json")


# =========================
# LIST USERS
# =========================
@router.get("")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[str] = Query(None, pattern="^(customer|seller|admin)$"),
    status: Optional[str] = Query(None, pattern="^(active|inactive)$"),
    db: Session = Depends(get_db),
):
    query = db.query(Profile)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Profile.email.ilike(pattern), Profile.full_name.ilike(pattern)))
    if role:
        query = query.filter(Profile.role == role)
    if status:
        query = query.filter(Profile.is_active.is_(status == "active"))

    total = query.count()
    users = query.order_by(Profile.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return {"data": [_user_dict(u) for u in users], "pagination": paginate(page, limit, total)}


# =========================
# GET USER
# =========================
@router.get("/{user_id}")
def get_user(user_id: str, db: Session = Depends(get_db)):
    user = _get_user(db, user_id)
    data = _user_dict(user)
    orders = db.query(Order).filter(Order.user_id == user.id).all()
    data["order_count"] = len(orders)
    data["total_spent"] = round(sum(o.total_amount for o in orders if o.payment_status == "paid"), 2)
    return {"data": data}


# =========================
# CREATE / UPDATE / DELETE
# =========================
@router.post("", status_code=201)
def create_user(payload: AdminUserCreate, db: Session = Depends(get_db)):
    if db.query(Profile).filter(Profile.email == payload.email).first():
        raise ConflictError("User already exists with this email", code="EMAIL_EXISTS")

    user = Profile(
        email=payload.email,
        password_hash=hash_password(payload.password),
        full_name=payload.full_name,
        role=payload.role,
        phone=payload.phone,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Admin created user {user.id} with role {user.role}")
    return {"message": "User created successfully", "data": _user_dict(user)}


@router.put("/{user_id}")
def update_user(
    user_id: str,
    payload: AdminUserUpdate,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = _get_user(db, user_id)
    values = payload.model_dump(exclude_unset=True)
    if user.id == admin.id and values.get("is_active") is False:
        raise ValidationFailed("You cannot deactivate your own account", code="INVALID_OPERATION")

    for field, value in values.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return {"message": "User updated successfully", "data": _user_dict(user)}


@router.delete("/{user_id}")
def delete_user(user_id: str, admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    user = _get_user(db, user_id)
    if user.id == admin.id:
        raise ValidationFailed("You cannot delete your own account", code="INVALID_OPERATION")
    db.delete(user)
    db.commit()
    logger.info(f"Admin {admin.id} deleted user {user_id}")
    return {"message": "User deleted successfully"}


@router.patch("/{user_id}/toggle-status")
def toggle_user_status(user_id: str, admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    user = _get_user(db, user_id)
    if user.id == admin.id:
        raise ValidationFailed("You cannot deactivate your own account", code="INVALID_OPERATION")
    user.is_active = not user.is_active
    db.commit()
    db.refresh(user)
    state = "activated" if user.is_active else "deactivated"
    return {"message": f"User {state} successfully", "data": _user_dict(user)}
