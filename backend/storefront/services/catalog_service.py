"""
Products, categories and reviews.

Public reads go through the catalog TTL cache (values are JSON-ready dicts,
never ORM objects); every write invalidates the affected keys.
"""
import logging
import math
import re
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from storefront.cache import (
    CATEGORY_LIST_TTL_SECONDS,
    CacheInvalidation,
    TTLCache,
    category_cache_key,
    category_list_cache_key,
    get_cache_invalidation,
    get_catalog_cache,
    product_cache_key,
    product_list_cache_key,
)
from storefront.errors import ConflictError, NotFoundError, PermissionDenied
from storefront.models.models import (
    CartItem,
    Category,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    Profile,
    Review,
    UserRole,
    WishlistItem,
)
from storefront.schemas.schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
    ReviewCreate,
    ReviewResponse,
    VariantResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
DETAIL_REVIEW_LIMIT = 10
CATEGORY_PRODUCT_LIMIT = 50


def slugify(name: str) -> str:
    """Lower-case ``name`` and collapse whitespace runs into ``-``."""
    return re.sub(r"\s+", "-", name.strip().lower())


def product_to_dict(product: Product) -> Dict[str, Any]:
    return ProductResponse.model_validate(product).model_dump(mode="json")


def can_see_hidden(viewer: Optional[Profile], seller_id: Optional[str]) -> bool:
    if viewer is None:
        return False
    return viewer.role == UserRole.ADMIN.value or viewer.id == seller_id


def paginate(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


class CatalogService:
    def __init__(
        self,
        db: Session,
        cache: Optional[TTLCache] = None,
        invalidation: Optional[CacheInvalidation] = None,
    ):
        self.db = db
        self.cache = cache or get_catalog_cache()
        self.invalidation = invalidation or get_cache_invalidation()

    # =========================
    # PRODUCT READS
    # =========================
    def _filtered_products(
        self,
        category_id: Optional[str] = None,
        search: Optional[str] = None,
        featured: Optional[bool] = None,
        seller_id: Optional[str] = None,
        status: Optional[str] = None,
        active_only: bool = True,
    ):
        query = self.db.query(Product)
        if active_only:
            query = query.filter(Product.is_active.is_(True))
        elif status == "active":
            query = query.filter(Product.is_active.is_(True))
        elif status == "inactive":
            query = query.filter(Product.is_active.is_(False))

        if category_id:
            query = query.filter(Product.category_id == category_id)
        if seller_id:
            query = query.filter(Product.seller_id == seller_id)
        if featured is not None:
            query = query.filter(Product.is_featured.is_(featured))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(Product.name.ilike(pattern), Product.description.ilike(pattern))
            )
        return query

    def _page(self, query, page: int, limit: int, sort: Optional[str] = None) -> Dict[str, Any]:
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        page = max(page, 1)
        total = query.count()

        if sort == "best_sellers":
            query = query.order_by(
                (Product.rating * Product.review_count).desc(),
                Product.rating.desc(),
                Product.review_count.desc(),
            )
        else:
            query = query.order_by(Product.created_at.desc())

        products = query.offset((page - 1) * limit).limit(limit).all()
        return {
            "data": [product_to_dict(p) for p in products],
            "pagination": paginate(page, limit, total),
        }

    def list_products(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        category_id: Optional[str] = None,
        search: Optional[str] = None,
        featured: Optional[bool] = None,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Public storefront listing: active products only, cached per filter set."""
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        key = product_list_cache_key(
            page=page, limit=limit, category_id=category_id, search=search, featured=featured, sort=sort
        )

        def load():
            query = self._filtered_products(category_id=category_id, search=search, featured=featured)
            return self._page(query, page, limit, sort)

        return self.cache.get_or_set(key, load)

    def search_products(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        search: Optional[str] = None,
        category_id: Optional[str] = None,
        status: Optional[str] = None,
        seller_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Dashboard listing including inactive products. Not cached."""
        query = self._filtered_products(
            category_id=category_id,
            search=search,
            seller_id=seller_id,
            status=status,
            active_only=False,
        )
        return self._page(query, page, limit)

    def get_product_row(self, product_id: str) -> Product:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError("Product not found")
        return product

    def get_product(self, product_id: str, viewer: Optional[Profile] = None) -> Dict[str, Any]:
        """
        Product with variants, category and its latest approved reviews.

        Inactive products are only visible to their seller and to admins.
        """

        def load():
            product = self.db.query(Product).filter(Product.id == product_id).first()
            if not product:
                return None
            data = product_to_dict(product)
            data["variants"] = [
                VariantResponse.model_validate(v).model_dump(mode="json") for v in product.variants
            ]
            data["category"] = (
                {"id": product.category.id, "name": product.category.name, "slug": product.category.slug}
                if product.category
                else None
            )
            reviews = (
                self.db.query(Review)
                .filter(Review.product_id == product_id, Review.is_approved.is_(True))
                .order_by(Review.created_at.desc())
                .limit(DETAIL_REVIEW_LIMIT)
                .all()
            )
            data["reviews"] = [ReviewResponse.model_validate(r).model_dump(mode="json") for r in reviews]
            return data

        data = self.cache.get_or_set(product_cache_key(product_id), load)
        if data is None:
            raise NotFoundError("Product not found")
        if not data["is_active"] and not can_see_hidden(viewer, data["seller_id"]):
            raise NotFoundError("Product not found")
        return data

    # =========================
    # PRODUCT WRITES
    # =========================
    def generate_unique_slug(self, name: str, exclude_id: Optional[str] = None) -> str:
        base = slugify(name) or "product"
        slug = base
        suffix = 1
        while self._slug_taken(slug, exclude_id):
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug

    def _slug_taken(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        query = self.db.query(Product.id).filter(Product.slug == slug)
        if exclude_id:
            query = query.filter(Product.id != exclude_id)
        return query.first() is not None

    def _check_sku(self, sku: Optional[str], exclude_id: Optional[str] = None) -> None:
        if not sku:
            return
        query = self.db.query(Product.id).filter(Product.sku == sku)
        if exclude_id:
            query = query.filter(Product.id != exclude_id)
        if query.first():
            raise ConflictError("SKU already exists", code="SKU_EXISTS")

    def _check_category(self, category_id: Optional[str]) -> None:
        if category_id and not self.db.query(Category.id).filter(Category.id == category_id).first():
            raise NotFoundError("Category not found")

    def check_owner(self, product: Product, user: Profile) -> None:
        if user.role != UserRole.ADMIN.value and product.seller_id != user.id:
            raise PermissionDenied("You can only manage your own products")

    def create_product(self, data: ProductCreate, seller: Profile) -> Product:
        values = data.model_dump()
        self._check_category(values.get("category_id"))
        self._check_sku(values.get("sku"))

        if values.get("slug"):
            if self._slug_taken(values["slug"]):
                raise ConflictError("Slug already exists", code="SLUG_EXISTS")
        else:
            values["slug"] = self.generate_unique_slug(values["name"])

        product = Product(seller_id=seller.id, **values)
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)

        self.invalidation.invalidate_product(product.id)
        logger.info(f"Product {product.id} created by {seller.id}")
        return product

    def update_product(self, product_id: str, data: ProductUpdate, user: Profile) -> Product:
        product = self.get_product_row(product_id)
        self.check_owner(product, user)

        values = data.model_dump(exclude_unset=True)
        if "category_id" in values:
            self._check_category(values["category_id"])
        if values.get("sku"):
            self._check_sku(values["sku"], exclude_id=product.id)
        if values.get("slug") and self._slug_taken(values["slug"], exclude_id=product.id):
            raise ConflictError("Slug already exists", code="SLUG_EXISTS")
        if "slug" in values and not values["slug"]:
            values.pop("slug")

        for field, value in values.items():
            setattr(product, field, value)
        self.db.commit()
        self.db.refresh(product)

        self.invalidation.invalidate_product(product.id)
        return product

    def _remove_saved_lines(self, product_ids: List[str]) -> None:
        # Carts and wishlists must not point at deleted products, even without FK enforcement
        self.db.query(CartItem).filter(CartItem.product_id.in_(product_ids)).delete(synchronize_session=False)
        self.db.query(WishlistItem).filter(WishlistItem.product_id.in_(product_ids)).delete(synchronize_session=False)

    def delete_product(self, product_id: str, user: Profile) -> None:
        product = self.get_product_row(product_id)
        self.check_owner(product, user)
        self._remove_saved_lines([product_id])
        self.db.delete(product)
        self.db.commit()
        self.invalidation.invalidate_product(product_id)
        logger.info(f"Product {product_id} deleted by {user.id}")

    def bulk_delete(self, product_ids: List[str]) -> int:
        products = self.db.query(Product).filter(Product.id.in_(product_ids)).all()
        self._remove_saved_lines([p.id for p in products])
        for product in products:
            self.db.delete(product)
        self.db.commit()
        self.invalidation.invalidate_products()
        self.invalidation.invalidate_categories()
        return len(products)

    # =========================
    # REVIEWS
    # =========================
    def _has_purchased(self, user_id: str, product_id: str) -> bool:
        return (
            self.db.query(OrderItem.id)
            .join(Order, Order.id == OrderItem.order_id)
            .filter(
                Order.user_id == user_id,
                Order.status != OrderStatus.CANCELLED.value,
                OrderItem.product_id == product_id,
            )
            .first()
            is not None
        )

    def _refresh_rating(self, product: Product) -> None:
        avg, count = (
            self.db.query(func.avg(Review.rating), func.count(Review.id))
            .filter(Review.product_id == product.id, Review.is_approved.is_(True))
            .one()
        )
        product.rating = round(float(avg), 2) if avg is not None else 0.0
        product.review_count = count or 0

    def add_review(self, product_id: str, user: Profile, data: ReviewCreate) -> Review:
        product = self.get_product_row(product_id)
        existing = (
            self.db.query(Review)
            .filter(Review.product_id == product_id, Review.user_id == user.id)
            .first()
        )
        if existing:
            raise ConflictError("You have already reviewed this product", code="ALREADY_EXISTS")

        review = Review(
            product_id=product_id,
            user_id=user.id,
            is_verified_purchase=self._has_purchased(user.id, product_id),
            **data.model_dump(),
        )
        self.db.add(review)
        self.db.flush()
        self._refresh_rating(product)
        self.db.commit()
        self.db.refresh(review)

        self.invalidation.invalidate_product(product_id)
        return review

    def list_reviews(self, product_id: str, limit: int = 50) -> List[Review]:
        self.get_product_row(product_id)
        return (
            self.db.query(Review)
            .filter(Review.product_id == product_id, Review.is_approved.is_(True))
            .order_by(Review.created_at.desc())
            .limit(limit)
            .all()
        )

    # =========================
    # CATEGORIES
    # =========================
    def list_categories(self) -> List[Dict[str, Any]]:
        def load():
            counts = dict(
                self.db.query(Product.category_id, func.count(Product.id))
                .filter(Product.is_active.is_(True))
                .group_by(Product.category_id)
                .all()
            )
            categories = (
                self.db.query(Category)
                .filter(Category.is_active.is_(True))
                .order_by(Category.sort_order, Category.name)
                .all()
            )
            result = []
            for c in categories:
                data = CategoryResponse.model_validate(c).model_dump(mode="json")
                data["product_count"] = counts.get(c.id, 0)
                result.append(data)
            return result

        return self.cache.get_or_set(category_list_cache_key(), load, ttl_seconds=CATEGORY_LIST_TTL_SECONDS)

    def get_category_row(self, category_id: str) -> Category:
        category = self.db.query(Category).filter(Category.id == category_id).first()
        if not category:
            raise NotFoundError("Category not found")
        return category

    def get_category(self, category_id: str) -> Dict[str, Any]:
        def load():
            category = self.db.query(Category).filter(Category.id == category_id).first()
            if not category:
                return None
            products = (
                self.db.query(Product)
                .filter(Product.category_id == category_id, Product.is_active.is_(True))
                .order_by(Product.created_at.desc())
                .limit(CATEGORY_PRODUCT_LIMIT)
                .all()
            )
            data = CategoryResponse.model_validate(category).model_dump(mode="json")
            data["products"] = [product_to_dict(p) for p in products]
            return data

        data = self.cache.get_or_set(category_cache_key(category_id), load)
        if data is None:
            raise NotFoundError("Category not found")
        return data

    def _check_category_slug(self, slug: str, exclude_id: Optional[str] = None) -> None:
        query = self.db.query(Category.id).filter(Category.slug == slug)
        if exclude_id:
            query = query.filter(Category.id != exclude_id)
        if query.first():
            raise ConflictError("Category slug already exists", code="SLUG_EXISTS")

    def create_category(self, data: CategoryCreate) -> Category:
        self._check_category_slug(data.slug)
        category = Category(**data.model_dump())
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        self.invalidation.invalidate_categories()
        return category

    def update_category(self, category_id: str, data: CategoryUpdate) -> Category:
        category = self.get_category_row(category_id)
        values = data.model_dump(exclude_unset=True)
        if values.get("slug"):
            self._check_category_slug(values["slug"], exclude_id=category_id)
        for field, value in values.items():
            setattr(category, field, value)
        self.db.commit()
        self.db.refresh(category)
        self.invalidation.invalidate_categories()
        return category

    def delete_category(self, category_id: str) -> None:
        category = self.get_category_row(category_id)
        product_count = self.db.query(Product).filter(Product.category_id == category_id).count()
        if product_count:
            raise ConflictError(
                "Cannot delete category with products",
                code="CATEGORY_HAS_PRODUCTS",
                details={"product_count": product_count},
            )
        self.db.delete(category)
        self.db.commit()
        self.invalidation.invalidate_categories()
