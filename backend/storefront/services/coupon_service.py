import logging
from datetime import datetime
from typing import List, NamedTuple, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.errors import ConflictError, NotFoundError
from storefront.models.models import Coupon, CouponType, CouponUsage
from storefront.schemas.schemas import CouponCreate, CouponUpdate

logger = logging.getLogger(__name__)

INVALID_COUPON_MESSAGE = "Invalid or expired coupon code"


class CouponResult(NamedTuple):
    valid: bool
    discount: float
    message: str
    coupon: Optional[Coupon] = None


def calculate_discount(coupon: Coupon, order_amount: float) -> float:
    if coupon.type == CouponType.PERCENTAGE.value:
        discount = order_amount * coupon.value / 100
        if coupon.maximum_discount is not None:
            discount = min(discount, coupon.maximum_discount)
    else:
        discount = min(coupon.value, order_amount)
    return round(discount, 2)


def is_currently_valid(coupon: Coupon, now: datetime) -> bool:
    """Active, inside its validity window and under its usage limit."""
    if not coupon.is_active:
        return False
    if coupon.valid_from and coupon.valid_from > now:
        return False
    if coupon.valid_until and coupon.valid_until < now:
        return False
    if coupon.usage_limit is not None and (coupon.used_count or 0) >= coupon.usage_limit:
        return False
    return True


class CouponService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_code(self, code: str) -> Optional[Coupon]:
        return (
            self.db.query(Coupon)
            .filter(func.upper(Coupon.code) == code.strip().upper())
            .first()
        )

    def validate_coupon(self, code: str, order_amount: float, now: Optional[datetime] = None) -> CouponResult:
        """
        Check a coupon code against an order amount.

        Returns:
            CouponResult(valid, discount, message, coupon)
        """
        now = now or datetime.utcnow()
        coupon = self.get_by_code(code) if code else None
        if coupon is None or not is_currently_valid(coupon, now):
            return CouponResult(False, 0, INVALID_COUPON_MESSAGE)

        minimum = coupon.minimum_amount or 0
        if order_amount < minimum:
            return CouponResult(False, 0, f"Minimum order amount of {minimum:g} not met", coupon)

        discount = calculate_discount(coupon, order_amount)
        return CouponResult(True, discount, "Coupon applied successfully", coupon)

    def apply_coupon(self, coupon: Coupon, user_id: str, order_id: str, discount: float) -> CouponUsage:
        """Record a usage row. Flushes but does not commit; runs inside order creation."""
        coupon.used_count = (coupon.used_count or 0) + 1
        usage = CouponUsage(
            coupon_id=coupon.id,
            user_id=user_id,
            order_id=order_id,
            discount_amount=discount,
        )
        self.db.add(usage)
        self.db.flush()
        return usage

    def list_active(self, now: Optional[datetime] = None) -> List[Coupon]:
        now = now or datetime.utcnow()
        coupons = (
            self.db.query(Coupon)
            .filter(Coupon.is_active.is_(True))
            .order_by(Coupon.created_at.desc())
            .all()
        )
        return [c for c in coupons if is_currently_valid(c, now)]

    # =========================
    # ADMIN CRUD
    # =========================
    def list_coupons(self, is_active: Optional[bool] = None) -> List[Coupon]:
        query = self.db.query(Coupon)
        if is_active is not None:
            query = query.filter(Coupon.is_active.is_(is_active))
        return query.order_by(Coupon.created_at.desc()).all()

    def get_coupon(self, coupon_id: str) -> Coupon:
        coupon = self.db.query(Coupon).filter(Coupon.id == coupon_id).first()
        if not coupon:
            raise NotFoundError("Coupon not found")
        return coupon

    def create_coupon(self, data: CouponCreate) -> Coupon:
        if self.get_by_code(data.code):
            raise ConflictError("Coupon code already exists", code="COUPON_EXISTS")

        values = data.model_dump()
        if values.get("valid_from") is None:
            values.pop("valid_from")
        coupon = Coupon(**values)
        self.db.add(coupon)
        self.db.commit()
        self.db.refresh(coupon)
        logger.info(f"Created coupon {coupon.code}")
        return coupon

    def update_coupon(self, coupon_id: str, data: CouponUpdate) -> Coupon:
        coupon = self.get_coupon(coupon_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(coupon, field, value)
        self.db.commit()
        self.db.refresh(coupon)
        return coupon

    def delete_coupon(self, coupon_id: str) -> None:
        coupon = self.get_coupon(coupon_id)
        self.db.delete(coupon)
        self.db.commit()

    def list_usage(self, coupon_id: str) -> List[CouponUsage]:
        self.get_coupon(coupon_id)
        return (
            self.db.query(CouponUsage)
            .filter(CouponUsage.coupon_id == coupon_id)
            .order_by(CouponUsage.created_at.desc())
            .all()
        )
