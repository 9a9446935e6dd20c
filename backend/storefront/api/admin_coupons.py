from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from storefront.auth.dependencies import require_admin
from storefront.db.database import get_db
from storefront.schemas.schemas import CouponCreate, CouponResponse, CouponUpdate, CouponUsageResponse
from storefront.services.coupon_service import CouponService

# Router
router = APIRouter(prefix="/api/admin/coupons", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("", response_model=List[CouponResponse])
def list_coupons(is_active: Optional[bool] = None, db: Session = Depends(get_db)):
    return CouponService(db).list_coupons(is_active)


@router.get("/{coupon_id}", response_model=CouponResponse)
def get_coupon(coupon_id: str, db: Session = Depends(get_db)):
    return CouponService(db).get_coupon(coupon_id)


@router.post("", response_model=CouponResponse, status_code=201)
def create_coupon(payload: CouponCreate, db: Session = Depends(get_db)):
    return CouponService(db).create_coupon(payload)


@router.put("/{coupon_id}", response_model=CouponResponse)
def update_coupon(coupon_id: str, payload: CouponUpdate, db: Session = Depends(get_db)):
    return CouponService(db).update_coupon(coupon_id, payload)


@router.delete("/{coupon_id}")
def delete_coupon(coupon_id: str, db: Session = Depends(get_db)):
    CouponService(db).delete_coupon(coupon_id)
    return {"message": "Coupon deleted successfully"}


@router.get("/{coupon_id}/usage", response_model=List[CouponUsageResponse])
def coupon_usage(coupon_id: str, db: Session = Depends(get_db)):
    return CouponService(db).list_usage(coupon_id)
