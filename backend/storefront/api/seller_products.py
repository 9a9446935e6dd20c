from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from storefront.auth.dependencies import require_seller
from storefront.db.database import get_db
from storefront.errors import NotFoundError
from storefront.models.models import Profile
from storefront.schemas.schemas import ProductCreate, ProductResponse, ProductUpdate
from storefront.services.catalog_service import CatalogService, product_to_dict

# Router
router = APIRouter(prefix="/api/seller/products", tags=["seller"])


def _own_product(service: CatalogService, seller: Profile, product_id: str):
    product = service.get_product_row(product_id)
    if product.seller_id != seller.id:
        # Other sellers' products are invisible here, admins included
        raise NotFoundError("Product not found")
    return product


@router.get("")
def list_my_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    status: Optional[str] = Query(None, pattern="^(active|inactive)$"),
    seller: Profile = Depends(require_seller),
    db: Session = Depends(get_db),
):
    return CatalogService(db).search_products(
        page=page, limit=limit, search=search, status=status, seller_id=seller.id
    )


@router.get("/{product_id}")
def get_my_product(product_id: str, seller: Profile = Depends(require_seller), db: Session = Depends(get_db)):
    service = CatalogService(db)
    return {"data": product_to_dict(_own_product(service, seller, product_id))}


@router.post("", response_model=ProductResponse, status_code=201)
def create_my_product(
    payload: ProductCreate,
    seller: Profile = Depends(require_seller),
    db: Session = Depends(get_db),
):
    return CatalogService(db).create_product(payload, seller)


@router.put("/{product_id}", response_model=ProductResponse)
def update_my_product(
    product_id: str,
    payload: ProductUpdate,
    seller: Profile = Depends(require_seller),
    db: Session = Depends(get_db),
):
    service = CatalogService(db)
    _own_product(service, seller, product_id)
    return service.update_product(product_id, payload, seller)


@router.delete("/{product_id}")
def delete_my_product(product_id: str, seller: Profile = Depends(require_seller), db: Session = Depends(get_db)):
    service = CatalogService(db)
    _own_product(service, seller, product_id)
    service.delete_product(product_id, seller)
    return {"message": "Product deleted successfully"}
