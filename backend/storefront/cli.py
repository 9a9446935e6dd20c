"""
Storefront maintenance commands.

Usage:
    storefront init-db
    storefront create-admin --email admin@example.com --password secret123 --name "Site Admin"
    storefront seed-categories
    storefront seed-products --count 20
    storefront list-products
"""
import argparse
import logging
import random
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from storefront.auth.security import hash_password
from storefront.cache import get_cache_invalidation
from storefront.db.database import SessionLocal, init_db
from storefront.models.models import Category, Product, Profile, UserRole
from storefront.services.catalog_service import slugify

logger = logging.getLogger(__name__)

# ============================================================================
# SEED DATA
# ============================================================================
DEFAULT_CATEGORIES = [
    {"name": "Perfumes", "slug": "perfumes", "description": "Long-lasting eau de parfum", "sort_order": 1},
    {"name": "Colognes", "slug": "colognes", "description": "Fresh everyday colognes", "sort_order": 2},
    {"name": "Fragrances", "slug": "fragrances", "description": "Body mists and light fragrances", "sort_order": 3},
    {"name": "Attars", "slug": "attars", "description": "Traditional alcohol-free attars", "sort_order": 4},
    {"name": "Essential Oils", "slug": "essential-oils", "description": "Pure essential oils", "sort_order": 5},
    {"name": "Oud Collection", "slug": "oud-collection", "description": "Premium oud blends", "sort_order": 6},
    {"name": "Floral Scents", "slug": "floral-scents", "description": "Rose, jasmine and other florals", "sort_order": 7},
    {"name": "Woody Fragrances", "slug": "woody-fragrances", "description": "Sandalwood and cedar notes", "sort_order": 8},
]

PRODUCT_ADJECTIVES = ["Royal", "Classic", "Midnight", "Golden", "Velvet", "Amber", "Saffron", "Crystal"]
PRODUCT_NOUNS = ["Oud", "Rose", "Musk", "Sandalwood", "Jasmine", "Vetiver", "Citrus", "Leather"]


# ============================================================================
# COMMANDS
# ============================================================================
def create_admin(db: Session, email: str, password: str, name: Optional[str] = None) -> Tuple[Profile, bool]:
    """Create an admin account, or promote an existing user. Returns (user, created)."""
    email = email.strip().lower()
    user = db.query(Profile).filter(Profile.email == email).first()
    if user:
        user.role = UserRole.ADMIN.value
        user.is_active = True
        db.commit()
        db.refresh(user)
        return user, False

    user = Profile(
        email=email,
        password_hash=hash_password(password),
        full_name=name,
        role=UserRole.ADMIN.value,
        is_active=True,
        email_verified=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user, True


def seed_categories(db: Session) -> int:
    """Insert the default categories; existing slugs are left untouched."""
    existing = {slug for (slug,) in db.query(Category.slug).all()}
    created = 0
    for data in DEFAULT_CATEGORIES:
        if data["slug"] in existing:
            continue
        db.add(Category(**data))
        created += 1
    db.commit()
    if created:
        get_cache_invalidation().invalidate_categories()
    return created


def seed_products(db: Session, count: int = 20, seed: int = 42) -> List[Product]:
    categories = db.query(Category).filter(Category.is_active.is_(True)).all()
    if not categories:
        raise RuntimeError("No categories found. Run seed-categories first.")

    owner = (
        db.query(Profile)
        .filter(Profile.role.in_([UserRole.SELLER.value, UserRole.ADMIN.value]))
        .order_by(Profile.created_at)
        .first()
    )
    if not owner:
        raise RuntimeError("No seller or admin account found. Run create-admin first.")

    rng = random.Random(seed)
    taken = {slug for (slug,) in db.query(Product.slug).all()}
    products = []
    for _ in range(count):
        name = f"{rng.choice(PRODUCT_ADJECTIVES)} {rng.choice(PRODUCT_NOUNS)} {rng.choice([30, 50, 100])}ml"
        base = slugify(name)
        slug, suffix = base, 1
        while slug in taken:
            slug = f"{base}-{suffix}"
            suffix += 1
        taken.add(slug)

        price = float(rng.randrange(499, 9999, 50))
        product = Product(
            name=name,
            slug=slug,
            description=f"{name}: a hand-blended fragrance.",
            short_description=name,
            price=price,
            original_price=round(price * 1.2, 2),
            category_id=rng.choice(categories).id,
            seller_id=owner.id,
            stock=rng.randint(0, 100),
            tags=["seed"],
            is_featured=rng.random() < 0.2,
        )
        db.add(product)
        products.append(product)

    db.commit()
    get_cache_invalidation().invalidate_products()
    return products


def list_products(db: Session) -> List[Product]:
    return db.query(Product).order_by(Product.created_at.desc()).all()


# ============================================================================
# CLI INTERFACE
# ============================================================================
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="storefront", description="Storefront maintenance commands")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create database tables")

    admin = sub.add_parser("create-admin", help="Create or promote an admin account")
    admin.add_argument("--email", required=True)
    admin.add_argument("--password", required=True)
    admin.add_argument("--name", default=None)

    sub.add_parser("seed-categories", help="Insert default categories (idempotent)")

    seed = sub.add_parser("seed-products", help="Insert sample products")
    seed.add_argument("--count", type=int, default=20)
    seed.add_argument("--seed", type=int, default=42, help="Random seed for reproducibility")

    sub.add_parser("list-products", help="Print all products")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = build_parser().parse_args(argv)

    init_db()
    if args.command == "init-db":
        print("Database tables created")
        return 0

    db = SessionLocal()
    try:
        if args.command == "create-admin":
            if len(args.password) < 8:
                print("Password must be at least 8 characters")
                return 1
            user, created = create_admin(db, args.email, args.password, args.name)
            print(f"{'Created' if created else 'Promoted'} admin {user.email} (id={user.id})")
        elif args.command == "seed-categories":
            print(f"Created {seed_categories(db)} categories")
        elif args.command == "seed-products":
            try:
                products = seed_products(db, args.count, args.seed)
            except RuntimeError as e:
                print(e)
                return 1
            print(f"Created {len(products)} products")
        elif args.command == "list-products":
            for p in list_products(db):
                status = "active" if p.is_active else "inactive"
                print(f"{p.id}  {p.name:<40} {p.price:>10.2f}  stock={p.stock:<4} {status}")
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
