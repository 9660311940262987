# app/utils/metrics.py
"""
Prometheus metrics shared by the middleware and the cache layer
"""
from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('http_request_duration_seconds', 'HTTP request duration', ['method', 'endpoint'])

CACHE_HITS = Counter('cache_hits_total', 'Cache hits', ['cache_type'])
CACHE_MISSES = Counter('cache_misses_total', 'Cache misses', ['cache_type'])
CACHE_ERRORS = Counter('cache_errors_total', 'Cache backend failures', ['operation'])
CACHE_INVALIDATIONS = Counter('cache_invalidated_keys_total', 'Cache keys removed by invalidation', ['cache_type'])

ORDERS_PLACED = Counter('orders_placed_total', 'Orders persisted by the placement workflow')
ORDERS_REJECTED = Counter('orders_rejected_total', 'Order placements that failed validation', ['reason'])
