"""Cache key generation logic."""


def product_cache_key(product_id: str) -> str:
    """
    Generate a cache key for a single product.

    Example:
        >>> product_cache_key("42")
        "products:42"
    """
    return f"products:{product_id}"


def product_list_cache_key(**filters) -> str:
    """
    Generate a cache key for a product listing page.

    Filters with a None value are skipped and the rest are sorted, so the
    same query always maps to the same key regardless of argument order.

    Example:
        >>> product_list_cache_key(page=1, limit=20, search=None)
        "products:list:limit=20&page=1"
    """
    parts = [f"{k}={v}" for k, v in sorted(filters.items()) if v is not None]
    return "products:list:" + "&".join(parts)


def category_cache_key(category_id: str) -> str:
    return f"categories:{category_id}"


def category_list_cache_key() -> str:
    return "categories:list"
