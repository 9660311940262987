# app/cache/cache_config.py
"""
Centralized cache TTL and key configuration
Every cached analytics query derives its key here
"""

class CacheTTL:
    """Cache Time-To-Live constants (in seconds)"""

    # Analytics aggregations (uniform across all cached query types)
    ANALYTICS = 3600                                                         # 1 hour

class CacheKeys:
    """Standardized cache key prefixes"""

    CUSTOMER_SPENDING = "customer_spending"
    TOP_PRODUCTS = "top_products"
    SALES_ANALYTICS = "sales_analytics"

    @staticmethod
    def customer_spending(customer_id: str) -> str:
        return f"{CacheKeys.CUSTOMER_SPENDING}:{customer_id}"

    @staticmethod
    def top_products(limit: int) -> str:
        return f"{CacheKeys.TOP_PRODUCTS}:{limit}"

    @staticmethod
    def sales_analytics(start_date: str, end_date: str) -> str:
        # Raw request strings, never re-serialized dates
        return f"{CacheKeys.SALES_ANALYTICS}:{start_date}_{end_date}"

    @staticmethod
    def prefix_pattern(prefix: str) -> str:
        """Glob pattern matching every key under a prefix"""
        return f"{prefix}:*"

    @staticmethod
    def query_type(key: str) -> str:
        """Prefix part of a key, used as a metrics label"""
        return key.split(":", 1)[0]
