"""
Order lifecycle: checkout, status changes, tracking history and restocking.

Prices always come from the database. Checkout writes the order, its items,
the first tracking row, stock decrements, coupon usage and the cart clear in
one transaction.
"""
import logging
import secrets
import string
import time
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.cache import CacheInvalidation, get_cache_invalidation
from storefront.config.settings import settings
from storefront.errors import NotFoundError, PermissionDenied, ValidationFailed
from storefront.models.models import (
    NotificationPreference,
    Order,
    OrderItem,
    OrderStatus,
    OrderTracking,
    PaymentStatus,
    Product,
    ProductVariant,
    Profile,
)
from storefront.schemas.schemas import OrderCreate, OrderDetailResponse, OrderResponse
from storefront.services.cart_service import CartService, ensure_stock, unit_price
from storefront.services.coupon_service import CouponService
from storefront.services.email_service import EmailService
from storefront.services.shipping_service import calculate_shipping

logger = logging.getLogger(__name__)

ORDER_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
RESTOCKABLE_FROM = {
    OrderStatus.PENDING.value,
    OrderStatus.CONFIRMED.value,
    OrderStatus.PROCESSING.value,
    OrderStatus.SHIPPED.value,
    OrderStatus.DELIVERED.value,
}
# Stock already went back on cancellation; only a refund may follow it
CLOSED_TRANSITIONS = {
    OrderStatus.CANCELLED.value: {OrderStatus.REFUNDED.value},
    OrderStatus.REFUNDED.value: set(),
}


def generate_order_number() -> str:
    """``ORD-<epoch ms>-<9 upper-case alphanumerics>``"""
    suffix = "".join(secrets.choice(ORDER_SUFFIX_ALPHABET) for _ in range(9))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


def order_to_dict(order: Order, detail: bool = False) -> Dict[str, Any]:
    schema = OrderDetailResponse if detail else OrderResponse
    data = schema.model_validate(order).model_dump(mode="json")
    data["item_count"] = sum(item.quantity for item in order.items)
    return data


def product_snapshot(product: Product, variant: Optional[ProductVariant]) -> Dict[str, Any]:
    snapshot = {
        "id": product.id,
        "name": product.name,
        "slug": product.slug,
        "sku": product.sku,
        "price": product.price,
        "image": (product.images or [None])[0],
        "seller_id": product.seller_id,
    }
    if variant is not None:
        snapshot["variant"] = {"id": variant.id, "name": variant.name, "attributes": variant.attributes or {}}
    return snapshot


class OrderService:
    def __init__(
        self,
        db: Session,
        email_service: Optional[EmailService] = None,
        invalidation: Optional[CacheInvalidation] = None,
    ):
        self.db = db
        self.email_service = email_service or EmailService()
        self.invalidation = invalidation or get_cache_invalidation()

    # =========================
    # CHECKOUT
    # =========================
    def _resolve_lines(self, data: OrderCreate) -> List[Tuple[Product, Optional[ProductVariant], int]]:
        lines = []
        requested: Dict[Tuple[str, Optional[str]], int] = defaultdict(int)
        # Every line, variant or not, draws down the parent product's stock
        per_product: Dict[str, int] = defaultdict(int)

        for item in data.items:
            product = (
                self.db.query(Product)
                .filter(Product.id == item.product_id, Product.is_active.is_(True))
                .first()
            )
            if not product:
                raise NotFoundError(f"Product {item.product_id} not found")

            variant = None
            if item.variant_id:
                variant = (
                    self.db.query(ProductVariant)
                    .filter(ProductVariant.id == item.variant_id, ProductVariant.product_id == product.id)
                    .first()
                )
                if not variant:
                    raise NotFoundError(f"Variant {item.variant_id} not found")

            key = (product.id, item.variant_id)
            requested[key] += item.quantity
            ensure_stock(product, variant, requested[key])
            per_product[product.id] += item.quantity
            ensure_stock(product, None, per_product[product.id])
            lines.append((product, variant, item.quantity))
        return lines

    def create_order(self, user: Profile, data: OrderCreate) -> Order:
        if not data.items:
            raise ValidationFailed("Order must contain at least one item")
        if data.shipping_address is None:
            raise ValidationFailed("Shipping address is required")
        if not data.payment_method:
            raise ValidationFailed("Payment method is required")

        lines = self._resolve_lines(data)
        shipping_address = data.shipping_address.model_dump()
        billing_address = data.billing_address.model_dump() if data.billing_address else shipping_address

        subtotal = round(sum(unit_price(p, v) * qty for p, v, qty in lines), 2)
        tax_amount = round(subtotal * settings.tax_rate, 2)
        shipping_amount = calculate_shipping(shipping_address, subtotal)["shipping_cost"]

        coupons = CouponService(self.db)
        coupon = None
        discount = 0.0
        if data.coupon_code:
            result = coupons.validate_coupon(data.coupon_code, subtotal)
            if not result.valid:
                raise ValidationFailed(result.message, code="INVALID_COUPON")
            coupon, discount = result.coupon, result.discount

        total_amount = round(subtotal + tax_amount + shipping_amount - discount, 2)

        try:
            order = Order(
                order_number=generate_order_number(),
                user_id=user.id,
                subtotal=subtotal,
                tax_amount=tax_amount,
                shipping_amount=shipping_amount,
                discount_amount=discount,
                total_amount=total_amount,
                status=OrderStatus.PENDING.value,
                payment_status=PaymentStatus.PENDING.value,
                payment_method=data.payment_method,
                coupon_code=coupon.code if coupon else None,
                shipping_address=shipping_address,
                billing_address=billing_address,
                notes=data.notes,
            )
            self.db.add(order)
            self.db.flush()

            for product, variant, quantity in lines:
                price = unit_price(product, variant)
                self.db.add(OrderItem(
                    order_id=order.id,
                    product_id=product.id,
                    variant_id=variant.id if variant else None,
                    quantity=quantity,
                    unit_price=price,
                    total_price=round(price * quantity, 2),
                    product_snapshot=product_snapshot(product, variant),
                ))
                if variant is not None:
                    variant.stock = (variant.stock or 0) - quantity
                product.stock = (product.stock or 0) - quantity

            self.db.add(OrderTracking(
                order_id=order.id,
                status=OrderStatus.PENDING.value,
                message="Order placed",
            ))

            if coupon is not None:
                coupons.apply_coupon(coupon, user.id, order.id, discount)

            CartService(self.db).clear(user, commit=False)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"Order creation failed for user {user.id}", exc_info=True)
            raise

        self.db.refresh(order)
        logger.info(f"Order {order.order_number} created for user {user.id}: total={total_amount}")

        for product, _, _ in lines:
            self.invalidation.invalidate_product(product.id)

        try:
            self.email_service.send_order_confirmation(order, user.email, user.full_name)
        except Exception as e:
            logger.error(f"Order confirmation email failed for {order.order_number}: {e}")

        return order

    # =========================
    # READS
    # =========================
    def list_user_orders(self, user: Profile) -> List[Order]:
        return (
            self.db.query(Order)
            .filter(Order.user_id == user.id)
            .order_by(Order.created_at.desc())
            .all()
        )

    def get_order(self, order_id: str) -> Order:
        order = self.db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise NotFoundError("Order not found")
        return order

    def get_user_order(self, user: Profile, order_id: str) -> Order:
        order = (
            self.db.query(Order)
            .filter(Order.id == order_id, Order.user_id == user.id)
            .first()
        )
        if not order:
            raise NotFoundError("Order not found")
        return order

    def _seller_order_ids(self, seller: Profile):
        return (
            select(OrderItem.order_id)
            .join(Product, Product.id == OrderItem.product_id)
            .where(Product.seller_id == seller.id)
            .distinct()
        )

    def list_seller_orders(
        self,
        seller: Profile,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
    ) -> Tuple[List[Order], int]:
        """Orders containing at least one of the seller's products, newest first."""
        query = self.db.query(Order).filter(Order.id.in_(self._seller_order_ids(seller)))
        if status:
            query = query.filter(Order.status == status)
        total = query.count()
        orders = (
            query.order_by(Order.created_at.desc())
            .offset((max(page, 1) - 1) * limit)
            .limit(limit)
            .all()
        )
        return orders, total

    def seller_items(self, order: Order, seller: Profile) -> List[OrderItem]:
        return [i for i in order.items if i.product is not None and i.product.seller_id == seller.id]

    def get_seller_order(self, seller: Profile, order_id: str) -> Tuple[Order, List[OrderItem]]:
        order = self.db.query(Order).filter(Order.id == order_id).first()
        items = self.seller_items(order, seller) if order else []
        if not items:
            raise NotFoundError("Order not found")
        return order, items

    # =========================
    # STATUS CHANGES
    # =========================
    def add_tracking(self, order: Order, status: str, message: Optional[str] = None, location: Optional[str] = None) -> None:
        self.db.add(OrderTracking(order_id=order.id, status=status, message=message, location=location))

    def restock(self, order: Order) -> None:
        for item in order.items:
            if item.product is not None:
                item.product.stock = (item.product.stock or 0) + item.quantity
            if item.variant_id:
                variant = self.db.query(ProductVariant).filter(ProductVariant.id == item.variant_id).first()
                if variant is not None:
                    variant.stock = (variant.stock or 0) + item.quantity

    def update_status(
        self,
        order: Order,
        status: str,
        message: Optional[str] = None,
        location: Optional[str] = None,
        notify: bool = True,
    ) -> Order:
        status = OrderStatus(status).value
        previous = order.status
        if status == previous:
            return order
        if previous in CLOSED_TRANSITIONS and status not in CLOSED_TRANSITIONS[previous]:
            raise ValidationFailed(
                f"Cannot move a {previous} order to {status}",
                code="INVALID_STATUS",
                details={"from": previous, "to": status},
            )

        restocked = False
        if status == OrderStatus.CANCELLED.value and previous in RESTOCKABLE_FROM:
            self.restock(order)
            restocked = True

        now = datetime.utcnow()
        if status == OrderStatus.SHIPPED.value and order.shipped_at is None:
            order.shipped_at = now
        if status == OrderStatus.DELIVERED.value and order.delivered_at is None:
            order.delivered_at = now

        order.status = status
        self.add_tracking(order, status, message or f"Order {status}", location)
        self.db.commit()
        self.db.refresh(order)
        logger.info(f"Order {order.order_number} status {previous} -> {status}")

        if restocked:
            for item in order.items:
                if item.product_id:
                    self.invalidation.invalidate_product(item.product_id)
        if notify:
            self.notify_status(order, message)
        return order

    def customer_update_status(self, user: Profile, order_id: str, status: str) -> Order:
        order = self.get_user_order(user, order_id)
        if status != OrderStatus.CANCELLED.value:
            raise PermissionDenied("Customers can only cancel orders")
        if order.status != OrderStatus.PENDING.value:
            raise ValidationFailed("Only pending orders can be cancelled", code="INVALID_STATUS")
        return self.update_status(order, OrderStatus.CANCELLED.value, message="Order cancelled by customer")

    def set_tracking_number(self, order: Order, tracking_number: str) -> Order:
        order.tracking_number = tracking_number
        self.add_tracking(order, order.status, f"Tracking number added: {tracking_number}")
        self.db.commit()
        self.db.refresh(order)
        return order

    def set_payment_status(self, order: Order, payment_status: str, message: Optional[str] = None) -> Order:
        order.payment_status = PaymentStatus(payment_status).value
        self.add_tracking(order, order.status, message or f"Payment {order.payment_status}")
        self.db.commit()
        self.db.refresh(order)
        return order

    # =========================
    # NOTIFICATIONS
    # =========================
    def wants_order_emails(self, user_id: str) -> bool:
        prefs = (
            self.db.query(NotificationPreference)
            .filter(NotificationPreference.user_id == user_id)
            .first()
        )
        if prefs is None:
            # Defaults: email and order updates both on
            return True
        return bool(prefs.order_updates and prefs.email_notifications)

    def notify_status(self, order: Order, message: Optional[str] = None) -> bool:
        user = order.user
        if user is None or not self.wants_order_emails(user.id):
            return False
        try:
            return self.email_service.send_status_update(order, user.email, user.full_name, message)
        except Exception as e:
            logger.error(f"Status email failed for {order.order_number}: {e}")
            return False
