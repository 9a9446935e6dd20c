"""
Storefront FastAPI REST API
Combines modular routers with utility endpoints (health, endpoint map)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Import routers from modular structure
from storefront.api import auth, products, categories, cart, wishlist, addresses
from storefront.api import orders, coupons, shipping, payments, notification_preferences
from storefront.api import seller_products, seller_orders
from storefront.api import admin_users, admin_products, admin_orders, admin_analytics, admin_coupons

# Database objects and helpers
from storefront.config.settings import settings
from storefront.db.database import check_database, init_db
from storefront.errors import setup_exception_handlers
from storefront.middleware.rate_limit import rate_limit
from storefront.middleware.request_logging import setup_request_logging

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Ensure DB tables exist (safe for dev)
    init_db()
    logger.info(f"{settings.app_name} {settings.version} started ({settings.environment})")
    yield


# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Multi-role e-commerce storefront: catalog, cart, orders, seller and admin dashboards",
    version=settings.version,
    lifespan=lifespan,
)

# CORS config for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
setup_request_logging(app)
setup_exception_handlers(app)

api_limit = [Depends(rate_limit("api"))]
admin_limit = [Depends(rate_limit("admin"))]

# Include routers
for module in (
    auth, products, categories, cart, wishlist, addresses,
    orders, coupons, shipping, payments, notification_preferences,
    seller_products, seller_orders,
):
    app.include_router(module.router, dependencies=api_limit)

for module in (admin_users, admin_products, admin_orders, admin_analytics, admin_coupons):
    app.include_router(module.router, dependencies=admin_limit)


@app.get("/")
def root():
    """API info and endpoint map"""
    return {
        "message": f"{settings.app_name} is running",
        "version": settings.version,
        "status": "operational",
        "docs": "/docs",
        "endpoints": {
            "auth": "/api/auth",
            "products": "/api/products",
            "categories": "/api/categories",
            "cart": "/api/cart",
            "wishlist": "/api/wishlist",
            "addresses": "/api/addresses",
            "orders": "/api/orders",
            "coupons": "/api/coupons",
            "shipping": "/api/shipping",
            "payments": "/api/payments",
            "notification_preferences": "/api/notification-preferences",
            "seller_products": "/api/seller/products",
            "seller_orders": "/api/seller/orders",
            "admin_users": "/api/admin/users",
            "admin_products": "/api/admin/products",
            "admin_orders": "/api/admin/orders",
            "admin_analytics": "/api/admin/analytics",
            "admin_coupons": "/api/admin/coupons",
        },
    }


@app.get("/health")
def health_check():
    """Health endpoint (never rate limited)"""
    database_ok = check_database()
    return {
        "status": "healthy" if database_ok else "degraded",
        "database": "connected" if database_ok else "unreachable",
        "version": settings.version,
    }


# Run with:
#   uvicorn main:app --reload --port 8000   (from backend/)
