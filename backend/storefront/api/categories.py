from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.auth.dependencies import require_admin
from storefront.db.database import get_db
from storefront.schemas.schemas import CategoryCreate, CategoryResponse, CategoryUpdate
from storefront.services.catalog_service import CatalogService

# Router
router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("")
def list_categories(db: Session = Depends(get_db)):
    return {"data": CatalogService(db).list_categories()}


@router.get("/{category_id}")
def get_category(category_id: str, db: Session = Depends(get_db)):
    return {"data": CatalogService(db).get_category(category_id)}


# =========================
# ADMIN WRITES
# =========================
@router.post("", response_model=CategoryResponse, status_code=201, dependencies=[Depends(require_admin)])
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    return CatalogService(db).create_category(payload)


@router.put("/{category_id}", response_model=CategoryResponse, dependencies=[Depends(require_admin)])
def update_category(category_id: str, payload: CategoryUpdate, db: Session = Depends(get_db)):
    return CatalogService(db).update_category(category_id, payload)


@router.delete("/{category_id}", dependencies=[Depends(require_admin)])
def delete_category(category_id: str, db: Session = Depends(get_db)):
    CatalogService(db).delete_category(category_id)
    return {"message": "Category deleted successfully"}
