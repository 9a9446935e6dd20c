"""Process-wide catalog cache and the write-side invalidation rules."""
import logging
from typing import Optional

from storefront.cache.cache_key import product_cache_key
from storefront.cache.ttl_cache import TTLCache
from storefront.config.settings import settings

logger = logging.getLogger(__name__)

# Category listings change rarely; keep them for a day
CATEGORY_LIST_TTL_SECONDS = 24 * 60 * 60


class CacheInvalidation:
    """Drops cached catalog reads after writes."""

    def __init__(self, cache: TTLCache):
        self.cache = cache

    def invalidate_products(self) -> int:
        return self.cache.invalidate_pattern("products*")

    def invalidate_product(self, product_id: str) -> int:
        # Category product counts depend on products too
        removed = 0
        self.cache.clear(product_cache_key(product_id))
        removed += self.cache.invalidate_pattern("products:list*")
        removed += self.cache.invalidate_pattern("categories*")
        logger.debug(f"Invalidated cache for product {product_id}")
        return removed

    def invalidate_categories(self) -> int:
        return self.cache.invalidate_pattern("categories*")

    def invalidate_all(self) -> None:
        self.cache.clear_all()


_catalog_cache: Optional[TTLCache] = None
_invalidation: Optional[CacheInvalidation] = None


def get_catalog_cache() -> TTLCache:
    global _catalog_cache
    if _catalog_cache is None:
        _catalog_cache = TTLCache(
            ttl_seconds=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
        )
    return _catalog_cache


def get_cache_invalidation() -> CacheInvalidation:
    global _invalidation
    if _invalidation is None:
        _invalidation = CacheInvalidation(get_catalog_cache())
    return _invalidation


__all__ = [
    "CATEGORY_LIST_TTL_SECONDS",
    "CacheInvalidation",
    "get_cache_invalidation",
    "get_catalog_cache",
]
