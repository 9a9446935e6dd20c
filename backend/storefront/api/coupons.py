from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from storefront.auth.dependencies import get_current_user
from storefront.db.database import get_db
from storefront.schemas.schemas import CouponResponse, CouponValidateRequest
from storefront.services.coupon_service import CouponService

# Router
router = APIRouter(prefix="/api/coupons", tags=["coupons"])


@router.post("/validate", dependencies=[Depends(get_current_user)])
def validate_coupon(payload: CouponValidateRequest, db: Session = Depends(get_db)):
    result = CouponService(db).validate_coupon(payload.code, payload.order_amount)
    return {
        "valid": result.valid,
        "discount": result.discount,
        "message": result.message,
        "coupon": CouponResponse.model_validate(result.coupon).model_dump(mode="json")
        if result.valid
        else None,
    }


@router.get("/active", response_model=List[CouponResponse])
def active_coupons(db: Session = Depends(get_db)):
    return CouponService(db).list_active()
