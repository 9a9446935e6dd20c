from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import Optional

from storefront.auth.dependencies import require_admin
from storefront.db.database import get_db
from storefront.models.models import Order, OrderStatus, Profile
from storefront.schemas.schemas import (
    OrderStatusUpdate,
    PaymentStatusUpdate,
    RefundRequest,
    TrackingUpdate,
)
from storefront.services.catalog_service import paginate
from storefront.services.order_service import OrderService, order_to_dict
from storefront.services.payment_service import PaymentService

# Router
router = APIRouter(prefix="/api/admin/orders", tags=["admin"], dependencies=[Depends(require_admin)])

SORTABLE_COLUMNS = {
    "order_number": Order.order_number,
    "total_amount": Order.total_amount,
    "status": Order.status,
    "created_at": Order.created_at,
}


def _admin_view(order: Order) -> dict:
    data = order_to_dict(order, detail=True)
    data["customer"] = (
        {"id": order.user.id, "full_name": order.user.full_name, "email": order.user.email}
        if order.user
        else None
    )
    return data


# =========================
# LIST ORDERS
# =========================
@router.get("")
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    payment_status: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: str = Query("created_at", pattern="^(order_number|total_amount|status|created_at)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
):
    query = db.query(Order).outerjoin(Profile, Profile.id == Order.user_id)
    if status:
        query = query.filter(Order.status == status)
    if payment_status:
        query = query.filter(Order.payment_status == payment_status)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Order.order_number.ilike(pattern), Profile.email.ilike(pattern)))

    column = SORTABLE_COLUMNS[sort_by]
    query = query.order_by(column.asc() if sort_order == "asc" else column.desc())

    total = query.count()
    orders = query.offset((page - 1) * limit).limit(limit).all()
    return {"data": [_admin_view(o) for o in orders], "pagination": paginate(page, limit, total)}


@router.get("/{order_id}")
def get_order(order_id: str, db: Session = Depends(get_db)):
    return {"data": _admin_view(OrderService(db).get_order(order_id))}


# =========================
# UPDATES
# =========================
@router.patch("/{order_id}/status")
def update_status(order_id: str, payload: OrderStatusUpdate, db: Session = Depends(get_db)):
    service = OrderService(db)
    order = service.update_status(
        service.get_order(order_id), payload.status.value, payload.message, payload.location
    )
    return {"message": "Order status updated", "data": _admin_view(order)}


@router.patch("/{order_id}/payment-status")
def update_payment_status(order_id: str, payload: PaymentStatusUpdate, db: Session = Depends(get_db)):
    service = OrderService(db)
    order = service.set_payment_status(service.get_order(order_id), payload.payment_status.value)
    return {"message": "Payment status updated", "data": _admin_view(order)}


@router.patch("/{order_id}/tracking")
def update_tracking(order_id: str, payload: TrackingUpdate, db: Session = Depends(get_db)):
    service = OrderService(db)
    order = service.set_tracking_number(service.get_order(order_id), payload.tracking_number)
    return {"message": "Tracking number updated", "data": _admin_view(order)}


@router.delete("/{order_id}")
def cancel_order(order_id: str, db: Session = Depends(get_db)):
    """Soft delete: the order is cancelled and kept for records."""
    service = OrderService(db)
    order = service.update_status(
        service.get_order(order_id), OrderStatus.CANCELLED.value, message="Order cancelled by admin"
    )
    return {"message": "Order cancelled successfully", "data": _admin_view(order)}


@router.post("/{order_id}/refund")
def refund_order(order_id: str, payload: Optional[RefundRequest] = None, db: Session = Depends(get_db)):
    amount = payload.amount if payload else None
    return {"data": PaymentService(db).refund_order(order_id, amount)}
