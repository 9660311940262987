from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from app.middleware.setup import setup_middleware
from app.routes import analytics, customers, orders
from app.utils.errors import ServiceError
from datetime import datetime
import logging
import os

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

def _error_body(message: str, request: Request, code: str) -> dict:
    return {"message": message, "path": request.url.path, "code": code}

def register_exception_handlers(app: FastAPI):
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.error(f"❌ {exc.code} on {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, request, exc.code)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', []))}: {err.get('msg')}"
            for err in exc.errors()
        )
        return JSONResponse(
            status_code=400,
            content=_error_body(f"Invalid input: {details}", request, "INVALID_INPUT")
        )

def create_app(lifespan=None) -> FastAPI:
    """
    Create the storefront analytics application
    Services are expected on app.state (db, cache, analytics, order_service)
    """
    app = FastAPI(
        title="Storefront Analytics API",
        version=API_VERSION,
        description="Customer, product and order analytics with cache-aside aggregations",
        lifespan=lifespan,
        docs_url="/docs" if os.getenv('ENVIRONMENT') != 'Production' else None
    )

    setup_middleware(app)
    register_exception_handlers(app)

    app.include_router(customers.router, prefix="/api/customers", tags=["Customers"])
    app.include_router(analytics.router, prefix="/api/analytics", tags=["Analytics"])
    app.include_router(orders.router, prefix="/api/orders", tags=["Orders"])

    @app.get("/health")
    async def health_check(request: Request):
        """Store and cache connectivity"""
        health_status = {
            "status": "healthy",
            "timestamp": datetime.utcnow().isoformat(),
            "version": API_VERSION,
            "services": {}
        }

        try:
            await request.app.state.db.ping()
            health_status["services"]["database"] = "healthy"
        except Exception as e:
            health_status["services"]["database"] = f"unhealthy: {str(e)}"
            health_status["status"] = "unhealthy"

        # Cache outages only degrade performance
        try:
            if await request.app.state.cache.ping():
                health_status["services"]["cache"] = "healthy"
            else:
                health_status["services"]["cache"] = "unavailable"
                if health_status["status"] == "healthy":
                    health_status["status"] = "degraded"
        except Exception as e:
            health_status["services"]["cache"] = f"unhealthy: {str(e)}"
            if health_status["status"] == "healthy":
                health_status["status"] = "degraded"

        return health_status

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics"""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/")
    async def root():
        return {
            "message": "Storefront Analytics API",
            "status": "running",
            "version": API_VERSION
        }

    return app
