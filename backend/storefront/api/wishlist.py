from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.auth.dependencies import get_current_user
from storefront.db.database import get_db
from storefront.errors import ConflictError
from storefront.models.models import Product, Profile, WishlistItem
from storefront.schemas.schemas import WishlistItemCreate

# Router
router = APIRouter(prefix="/api/wishlist", tags=["wishlist"])


def _serialize(item: WishlistItem) -> dict:
    product = item.product
    return {
        "id": item.id,
        "product_id": item.product_id,
        "created_at": item.created_at.isoformat() if item.created_at else None,
        "product": {
            "id": product.id,
            "name": product.name,
            "slug": product.slug,
            "price": product.price,
            "original_price": product.original_price,
            "images": product.images or [],
            "stock": product.stock,
            "rating": product.rating,
            "is_active": product.is_active,
            "category_name": product.category.name if product.category else None,
        },
    }


@router.get("")
def get_wishlist(user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    items = (
        db.query(WishlistItem)
        .filter(WishlistItem.user_id == user.id)
        .order_by(WishlistItem.created_at.desc())
        .all()
    )
    return {"items": [_serialize(i) for i in items]}


@router.post("", status_code=201)
def add_to_wishlist(
    payload: WishlistItemCreate,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    product = db.query(Product).filter(Product.id == payload.product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    existing = (
        db.query(WishlistItem)
        .filter(WishlistItem.user_id == user.id, WishlistItem.product_id == payload.product_id)
        .first()
    )
    if existing:
        raise ConflictError("Product already in wishlist", code="ALREADY_EXISTS")

    item = WishlistItem(user_id=user.id, product_id=payload.product_id)
    db.add(item)
    db.commit()
    db.refresh(item)
    return {"message": "Added to wishlist", "item": _serialize(item)}


@router.delete("/{product_id}")
def remove_from_wishlist(
    product_id: str,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = (
        db.query(WishlistItem)
        .filter(WishlistItem.user_id == user.id, WishlistItem.product_id == product_id)
        .first()
    )
    if not item:
        raise HTTPException(status_code=404, detail="Item not found in wishlist")
    db.delete(item)
    db.commit()
    return {"message": "Removed from wishlist"}


@router.delete("")
def clear_wishlist(user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    removed = db.query(WishlistItem).filter(WishlistItem.user_id == user.id).delete(synchronize_session=False)
    db.commit()
    return {"message": "Wishlist cleared", "removed": removed}
