from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from storefront.auth.dependencies import require_seller
from storefront.db.database import get_db
from storefront.models.models import Order, OrderItem, Profile
from storefront.schemas.schemas import (
    OrderItemResponse,
    OrderResponse,
    SellerOrderStatusUpdate,
    TrackingUpdate,
)
from storefront.services.catalog_service import paginate
from storefront.services.order_service import OrderService

# Router
router = APIRouter(prefix="/api/seller/orders", tags=["seller"])


def _seller_view(order: Order, items: List[OrderItem]) -> dict:
    data = OrderResponse.model_validate(order).model_dump(mode="json")
    data["items"] = [OrderItemResponse.model_validate(i).model_dump(mode="json") for i in items]
    data["seller_total"] = round(sum(i.total_price for i in items), 2)
    data["customer"] = (
        {"full_name": order.user.full_name, "email": order.user.email} if order.user else None
    )
    return data


@router.get("")
def list_seller_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    seller: Profile = Depends(require_seller),
    db: Session = Depends(get_db),
):
    service = OrderService(db)
    orders, total = service.list_seller_orders(seller, page=page, limit=limit, status=status)
    return {
        "data": [_seller_view(o, service.seller_items(o, seller)) for o in orders],
        "pagination": paginate(page, limit, total),
    }


@router.get("/{order_id}")
def get_seller_order(order_id: str, seller: Profile = Depends(require_seller), db: Session = Depends(get_db)):
    order, items = OrderService(db).get_seller_order(seller, order_id)
    return {"data": _seller_view(order, items)}


@router.patch("/{order_id}/status")
def update_seller_order_status(
    order_id: str,
    payload: SellerOrderStatusUpdate,
    seller: Profile = Depends(require_seller),
    db: Session = Depends(get_db),
):
    service = OrderService(db)
    order, _ = service.get_seller_order(seller, order_id)
    order = service.update_status(order, payload.status, payload.message)
    return {"message": "Order status updated", "data": _seller_view(order, service.seller_items(order, seller))}


@router.patch("/{order_id}/tracking")
def update_seller_tracking(
    order_id: str,
    payload: TrackingUpdate,
    seller: Profile = Depends(require_seller),
    db: Session = Depends(get_db),
):
    service = OrderService(db)
    order, _ = service.get_seller_order(seller, order_id)
    order = service.set_tracking_number(order, payload.tracking_number)
    return {"message": "Tracking number updated", "data": _seller_view(order, service.seller_items(order, seller))}
