from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from storefront.auth.dependencies import get_current_user, get_optional_user, require_seller
from storefront.db.database import get_db
from storefront.models.models import Profile
from storefront.schemas.schemas import (
    ProductCreate,
    ProductResponse,
    ProductUpdate,
    ReviewCreate,
    ReviewResponse,
)
from storefront.services.catalog_service import CatalogService, DEFAULT_PAGE_SIZE

# Router
router = APIRouter(prefix="/api/products", tags=["products"])


# =========================
# LIST PRODUCTS
# =========================
@router.get("")
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    category_id: Optional[str] = None,
    search: Optional[str] = None,
    featured: Optional[bool] = None,
    sort: Optional[str] = Query(None, pattern="^(latest|best_sellers)$"),
    db: Session = Depends(get_db),
):
    return CatalogService(db).list_products(
        page=page,
        limit=limit,
        category_id=category_id,
        search=search,
        featured=featured,
        sort=sort,
    )


# =========================
# GET PRODUCT
# =========================
@router.get("/{product_id}")
def get_product(
    product_id: str,
    user: Optional[Profile] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return {"data": CatalogService(db).get_product(product_id, viewer=user)}


# =========================
# SELLER / ADMIN WRITES
# =========================
@router.post("", response_model=ProductResponse, status_code=201)
def create_product(
    payload: ProductCreate,
    user: Profile = Depends(require_seller),
    db: Session = Depends(get_db),
):
    return CatalogService(db).create_product(payload, user)


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str,
    payload: ProductUpdate,
    user: Profile = Depends(require_seller),
    db: Session = Depends(get_db),
):
    return CatalogService(db).update_product(product_id, payload, user)


@router.delete("/{product_id}")
def delete_product(
    product_id: str,
    user: Profile = Depends(require_seller),
    db: Session = Depends(get_db),
):
    CatalogService(db).delete_product(product_id, user)
    return {"message": "Product deleted successfully"}


# =========================
# REVIEWS
# =========================
@router.get("/{product_id}/reviews", response_model=List[ReviewResponse])
def list_reviews(product_id: str, db: Session = Depends(get_db)):
    return CatalogService(db).list_reviews(product_id)


@router.post("/{product_id}/reviews", response_model=ReviewResponse, status_code=201)
def add_review(
    product_id: str,
    payload: ReviewCreate,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return CatalogService(db).add_review(product_id, user, payload)
