from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.auth.dependencies import require_admin
from storefront.db.database import get_db
from storefront.services.analytics_service import AnalyticsService

# Router
router = APIRouter(prefix="/api/admin/analytics", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db)):
    return {"data": AnalyticsService(db).dashboard()}


@router.get("/revenue")
def revenue(period: int = Query(30, ge=1, le=365), db: Session = Depends(get_db)):
    return {"data": AnalyticsService(db).revenue(period)}


@router.get("/products")
def products(db: Session = Depends(get_db)):
    return {"data": AnalyticsService(db).products()}


@router.get("/users")
def users(db: Session = Depends(get_db)):
    return {"data": AnalyticsService(db).users()}
