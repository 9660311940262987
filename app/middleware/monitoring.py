# app/middleware/monitoring.py
"""
Monitoring and logging middleware
Tracks request performance, logs every call and unhandled errors
"""
import time
import logging
import uuid
import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable
from app.utils.metrics import REQUEST_COUNT, REQUEST_DURATION

logger = logging.getLogger(__name__)

def setup_logging(level: str = "INFO", environment: str = "Development"):
    """Configure standard logging and structured logging"""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.dev.ConsoleRenderer() if environment == 'Development'
            else structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

def _route_path(request: Request) -> str:
    """Route template (e.g. /customers/{customer_id}/spending) to keep label cardinality bounded"""
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class PerformanceMonitoringMiddleware(BaseHTTPMiddleware):
    """
    Request count and latency per route into Prometheus; slow requests are
    logged with their route
    """

    UNMONITORED_PATHS = frozenset({"/health", "/metrics"})

    def __init__(self, app, slow_threshold: float = 2.0):
        super().__init__(app)
        self.slow_threshold = slow_threshold

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.UNMONITORED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        response.headers["X-Process-Time"] = f"{duration:.3f}"

        path = _route_path(request)
        REQUEST_COUNT.labels(method=request.method, endpoint=path, status=response.status_code).inc()
        REQUEST_DURATION.labels(method=request.method, endpoint=path).observe(duration)

        if duration > self.slow_threshold:
            logger.warning(
                f"🐌 SLOW REQUEST: {request.method} {path} took {duration:.2f}s"
            )

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Request/response logging
    Logs all API calls with a request id
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex[:16])

        client_ip = request.client.host if request.client else "unknown"

        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            logger.info(
                f"[{request_id}] ➡️  {request.method} {request.url.path} from {client_ip}"
            )

            start_time = time.time()
            response = await call_next(request)
            duration = time.time() - start_time

            status_emoji = "✅" if response.status_code < 400 else "❌"
            logger.info(
                f"[{request_id}] {status_emoji} {response.status_code} "
                f"in {duration:.3f}s"
            )

            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            structlog.contextvars.unbind_contextvars("request_id")


class ErrorTrackingMiddleware(BaseHTTPMiddleware):
    """
    Log unhandled errors with request context
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            response = await call_next(request)
            return response
        except Exception as e:
            logger.error(
                f"❌ UNHANDLED ERROR: {type(e).__name__} in {request.url.path}",
                exc_info=True,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "client": request.client.host if request.client else "unknown",
                    "error_type": type(e).__name__
                }
            )

            # Re-raise to let FastAPI handle
            raise
