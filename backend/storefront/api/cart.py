from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storefront.auth.dependencies import get_current_user
from storefront.db.database import get_db
from storefront.models.models import Profile
from storefront.schemas.schemas import CartItemCreate, CartItemUpdate
from storefront.services.cart_service import CartService

# Router
router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.get("")
def get_cart(user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    return CartService(db).get_cart(user)


@router.post("", status_code=201)
def add_to_cart(
    payload: CartItemCreate,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item, created = CartService(db).add_item(user, payload)
    if not created:
        return JSONResponse(status_code=200, content={"message": "Cart item updated", "item": item})
    return {"message": "Item added to cart", "item": item}


@router.put("/{item_id}")
def update_cart_item(
    item_id: str,
    payload: CartItemUpdate,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = CartService(db).update_quantity(user, item_id, payload.quantity)
    return {"message": "Cart item updated", "item": item}


@router.delete("/{item_id}")
def remove_cart_item(
    item_id: str,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    CartService(db).remove_item(user, item_id)
    return {"message": "Item removed from cart"}


@router.delete("")
def clear_cart(user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    removed = CartService(db).clear(user)
    return {"message": "Cart cleared", "removed": removed}
