from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.auth.dependencies import get_current_user
from storefront.db.database import get_db
from storefront.middleware.rate_limit import rate_limit
from storefront.models.models import OrderStatus, Profile, UserRole
from storefront.schemas.schemas import OrderCreate, OrderStatusUpdate
from storefront.services.order_service import OrderService, order_to_dict

# Router
router = APIRouter(prefix="/api/orders", tags=["orders"])


# =========================
# CHECKOUT
# =========================
@router.post("", status_code=201, dependencies=[Depends(rate_limit("checkout"))])
def create_order(
    payload: OrderCreate,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order = OrderService(db).create_order(user, payload)
    return {"message": "Order created successfully", "order": order_to_dict(order, detail=True)}


# =========================
# CUSTOMER ORDERS
# =========================
@router.get("")
def list_orders(user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    orders = OrderService(db).list_user_orders(user)
    return {"orders": [order_to_dict(o) for o in orders]}


@router.get("/{order_id}")
def get_order(order_id: str, user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    order = OrderService(db).get_user_order(user, order_id)
    return {"order": order_to_dict(order, detail=True)}


@router.put("/{order_id}/status")
def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = OrderService(db)
    if user.role == UserRole.CUSTOMER.value:
        order = service.customer_update_status(user, order_id, payload.status.value)
    else:
        if user.role == UserRole.SELLER.value:
            order, _ = service.get_seller_order(user, order_id)
        else:
            order = service.get_order(order_id)
        order = service.update_status(order, payload.status.value, payload.message, payload.location)

    return {
        "message": "Order cancelled" if order.status == OrderStatus.CANCELLED.value else "Order status updated",
        "order": order_to_dict(order, detail=True),
    }
