from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.auth.dependencies import get_current_user
from storefront.db.database import get_db
from storefront.models.models import NotificationPreference, Profile
from storefront.schemas.schemas import NotificationPreferenceResponse, NotificationPreferenceUpdate

# Router
router = APIRouter(prefix="/api/notification-preferences", tags=["notifications"])


def _get_or_create(db: Session, user: Profile) -> NotificationPreference:
    prefs = db.query(NotificationPreference).filter(NotificationPreference.user_id == user.id).first()
    if prefs is None:
        prefs = NotificationPreference(
            user_id=user.id,
            email_notifications=True,
            sms_notifications=False,
            push_notifications=True,
            order_updates=True,
            promotional_emails=False,
            newsletter=True,
            product_updates=True,
        )
        db.add(prefs)
        db.commit()
        db.refresh(prefs)
    return prefs


@router.get("", response_model=NotificationPreferenceResponse)
def get_preferences(user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    return _get_or_create(db, user)


@router.put("", response_model=NotificationPreferenceResponse)
def update_preferences(
    payload: NotificationPreferenceUpdate,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    prefs = _get_or_create(db, user)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(prefs, field, value)
    db.commit()
    db.refresh(prefs)
    return prefs
