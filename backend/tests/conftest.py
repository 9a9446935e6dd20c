import os
import sys
from pathlib import Path

import pytest

# Ensure backend/ is on sys.path for `import storefront` and `import main`
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Force SQLite for tests; settings are read once at import time
test_db_path = ROOT / "test_run.db"
if test_db_path.exists():
    test_db_path.unlink()

os.environ["DATABASE_URL"] = f"sqlite:///{test_db_path}"
os.environ["AUTO_CREATE_TABLES"] = "1"
os.environ["RATE_LIMIT_ENABLED"] = "0"
os.environ["PASSWORD_HASH_ITERATIONS"] = "1000"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["SMTP_HOST"] = ""
os.environ["RAZORPAY_KEY_ID"] = ""
os.environ["RAZORPAY_KEY_SECRET"] = ""
os.environ["RAZORPAY_WEBHOOK_SECRET"] = ""

# Create tables if needed
from storefront.db.database import engine, Base, SessionLocal
import storefront.models.models  # noqa: F401 ensures models are registered

Base.metadata.create_all(bind=engine)

from fastapi.testclient import TestClient

from main import app
from storefront.auth.security import create_access_token, hash_password
from storefront.cache import get_catalog_cache
from storefront.middleware.rate_limit import limiter
from storefront.models.models import Category, Product, Profile


@pytest.fixture(autouse=True)
def clean_state():
    """Empty every table, the catalog cache and the rate limiter after each test."""
    yield
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    get_catalog_cache().clear_all()
    limiter.reset()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


def auth_headers(user: Profile) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
def make_user(db):
    """Factory creating a user row directly and returning it with bearer headers."""
    counter = {"n": 0}

    def _make(role: str = "customer", email: str | None = None, password: str = "password123", **fields):
        counter["n"] += 1
        user = Profile(
            email=email or f"{role}{counter['n']}@example.com",
            password_hash=hash_password(password),
            full_name=fields.pop("full_name", f"Test {role.title()} {counter['n']}"),
            role=role,
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user, auth_headers(user)

    return _make


@pytest.fixture
def customer(make_user):
    return make_user("customer")


@pytest.fixture
def seller(make_user):
    return make_user("seller")


@pytest.fixture
def admin(make_user):
    return make_user("admin")


@pytest.fixture
def category(db):
    cat = Category(name="Perfumes", slug="perfumes", sort_order=1)
    db.add(cat)
    db.commit()
    db.refresh(cat)
    return cat


@pytest.fixture
def make_product(db, category, seller):
    seller_user, _ = seller

    def _make(name: str = "Royal Oud", price: float = 1000.0, stock: int = 10, **fields):
        product = Product(
            name=name,
            slug=fields.pop("slug", name.lower().replace(" ", "-")),
            price=price,
            stock=stock,
            category_id=fields.pop("category_id", category.id),
            seller_id=fields.pop("seller_id", seller_user.id),
            **fields,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture
def product(make_product):
    return make_product()


@pytest.fixture
def shipping_address():
    return {
        "full_name": "Asha Rao",
        "phone": "9999999999",
        "address_line1": "12 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "postal_code": "560001",
        "country": "IN",
    }
