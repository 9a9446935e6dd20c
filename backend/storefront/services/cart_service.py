import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from storefront.errors import ConflictError, NotFoundError
from storefront.models.models import CartItem, Product, ProductVariant, Profile
from storefront.schemas.schemas import CartItemCreate

logger = logging.getLogger(__name__)


def unit_price(product: Product, variant: Optional[ProductVariant]) -> float:
    if variant is not None and variant.price is not None:
        return variant.price
    return product.price


def available_stock(product: Product, variant: Optional[ProductVariant]) -> int:
    if variant is not None:
        return variant.stock or 0
    return product.stock or 0


def ensure_stock(product: Product, variant: Optional[ProductVariant], quantity: int) -> None:
    stock = available_stock(product, variant)
    if stock < quantity:
        raise ConflictError(
            f"Insufficient stock for {product.name}",
            code="INSUFFICIENT_STOCK",
            details={"product_id": product.id, "available": stock, "requested": quantity},
        )


class CartService:
    def __init__(self, db: Session):
        self.db = db

    def _serialize(self, item: CartItem) -> Dict[str, Any]:
        product = item.product
        variant = item.variant
        price = unit_price(product, variant)
        return {
            "id": item.id,
            "product_id": item.product_id,
            "variant_id": item.variant_id,
            "quantity": item.quantity,
            "unit_price": price,
            "line_total": round(price * item.quantity, 2),
            "created_at": item.created_at.isoformat() if item.created_at else None,
            "product": {
                "id": product.id,
                "name": product.name,
                "slug": product.slug,
                "price": product.price,
                "original_price": product.original_price,
                "images": product.images or [],
                "stock": product.stock,
                "is_active": product.is_active,
            },
            "variant": (
                {"id": variant.id, "name": variant.name, "price": variant.price, "stock": variant.stock}
                if variant
                else None
            ),
        }

    def get_cart(self, user: Profile) -> Dict[str, Any]:
        items = (
            self.db.query(CartItem)
            .filter(CartItem.user_id == user.id)
            .order_by(CartItem.created_at.desc())
            .all()
        )
        serialized = [self._serialize(i) for i in items]
        return {
            "items": serialized,
            "subtotal": round(sum(i["line_total"] for i in serialized), 2),
            "item_count": sum(i["quantity"] for i in serialized),
        }

    def _load_product(self, product_id: str, variant_id: Optional[str]) -> Tuple[Product, Optional[ProductVariant]]:
        product = (
            self.db.query(Product)
            .filter(Product.id == product_id, Product.is_active.is_(True))
            .first()
        )
        if not product:
            raise NotFoundError("Product not found")

        variant = None
        if variant_id:
            variant = (
                self.db.query(ProductVariant)
                .filter(ProductVariant.id == variant_id, ProductVariant.product_id == product_id)
                .first()
            )
            if not variant:
                raise NotFoundError("Product variant not found")
        return product, variant

    def _get_item(self, user: Profile, item_id: str) -> CartItem:
        item = (
            self.db.query(CartItem)
            .filter(CartItem.id == item_id, CartItem.user_id == user.id)
            .first()
        )
        if not item:
            raise NotFoundError("Cart item not found")
        return item

    def add_item(self, user: Profile, data: CartItemCreate) -> Tuple[Dict[str, Any], bool]:
        """
        Add a line to the cart, merging with an existing (product, variant) line.

        Returns:
            (serialized item, created) where created is False on a merge
        """
        product, variant = self._load_product(data.product_id, data.variant_id)

        query = self.db.query(CartItem).filter(
            CartItem.user_id == user.id,
            CartItem.product_id == data.product_id,
        )
        if data.variant_id:
            query = query.filter(CartItem.variant_id == data.variant_id)
        else:
            query = query.filter(CartItem.variant_id.is_(None))
        existing = query.first()

        if existing:
            new_quantity = existing.quantity + data.quantity
            ensure_stock(product, variant, new_quantity)
            existing.quantity = new_quantity
            self.db.commit()
            self.db.refresh(existing)
            return self._serialize(existing), False

        ensure_stock(product, variant, data.quantity)
        item = CartItem(
            user_id=user.id,
            product_id=data.product_id,
            variant_id=data.variant_id,
            quantity=data.quantity,
        )
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return self._serialize(item), True

    def update_quantity(self, user: Profile, item_id: str, quantity: int) -> Dict[str, Any]:
        item = self._get_item(user, item_id)
        ensure_stock(item.product, item.variant, quantity)
        item.quantity = quantity
        self.db.commit()
        self.db.refresh(item)
        return self._serialize(item)

    def remove_item(self, user: Profile, item_id: str) -> None:
        item = self._get_item(user, item_id)
        self.db.delete(item)
        self.db.commit()

    def clear(self, user: Profile, commit: bool = True) -> int:
        removed = self.db.query(CartItem).filter(CartItem.user_id == user.id).delete(synchronize_session=False)
        if commit:
            self.db.commit()
        return removed
