from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from storefront.auth.dependencies import require_admin
from storefront.db.database import get_db
from storefront.models.models import Profile
from storefront.schemas.schemas import BulkDeleteRequest, ProductCreate, ProductResponse, ProductUpdate
from storefront.services.catalog_service import CatalogService

# Router
router = APIRouter(prefix="/api/admin/products", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("")
def list_all_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    category_id: Optional[str] = None,
    status: Optional[str] = Query(None, pattern="^(active|inactive)$"),
    seller_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return CatalogService(db).search_products(
        page=page,
        limit=limit,
        search=search,
        category_id=category_id,
        status=status,
        seller_id=seller_id,
    )


@router.get("/{product_id}")
def get_product(product_id: str, db: Session = Depends(get_db)):
    product = CatalogService(db).get_product_row(product_id)
    return {"data": ProductResponse.model_validate(product).model_dump(mode="json")}


@router.post("", response_model=ProductResponse, status_code=201)
def create_product(payload: ProductCreate, admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    return CatalogService(db).create_product(payload, admin)


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str,
    payload: ProductUpdate,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return CatalogService(db).update_product(product_id, payload, admin)


@router.delete("/{product_id}")
def delete_product(product_id: str, admin: Profile = Depends(require_admin), db: Session = Depends(get_db)):
    CatalogService(db).delete_product(product_id, admin)
    return {"message": "Product deleted successfully"}


@router.post("/bulk-delete")
def bulk_delete(payload: BulkDeleteRequest, db: Session = Depends(get_db)):
    deleted = CatalogService(db).bulk_delete(payload.ids)
    return {"message": f"{deleted} products deleted successfully", "deleted": deleted}
