"""TTL cache for catalog reads with pattern-based invalidation."""
from .ttl_cache import TTLCache
from .cache_key import (
    category_cache_key,
    category_list_cache_key,
    product_cache_key,
    product_list_cache_key,
)
from .invalidation import (
    CATEGORY_LIST_TTL_SECONDS,
    CacheInvalidation,
    get_cache_invalidation,
    get_catalog_cache,
)

__all__ = [
    "TTLCache",
    "CacheInvalidation",
    "CATEGORY_LIST_TTL_SECONDS",
    "category_cache_key",
    "category_list_cache_key",
    "product_cache_key",
    "product_list_cache_key",
    "get_cache_invalidation",
    "get_catalog_cache",
]
