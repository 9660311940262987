# app/middleware/setup.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from app.middleware.monitoring import (
    PerformanceMonitoringMiddleware,
    RequestLoggingMiddleware,
    ErrorTrackingMiddleware
)
from db.config import Settings, get_settings
import logging

logger = logging.getLogger(__name__)

def _cors_origins(settings: Settings) -> list:
    if settings.environment != 'Production':
        return ["*"]
    return [origin.strip() for origin in settings.allowed_origins.split(',') if origin.strip()]

def setup_middleware(app: FastAPI, settings: Settings = None):
    """
    Register middleware; the last one added is the outermost

    Resulting request path: GZip -> request log -> timing/metrics ->
    error tracking -> CORS -> routes
    """
    settings = settings or get_settings()

    origins = _cors_origins(settings)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Process-Time"],
        max_age=3600
    )

    app.add_middleware(ErrorTrackingMiddleware)
    app.add_middleware(PerformanceMonitoringMiddleware, slow_threshold=settings.slow_request_threshold)
    app.add_middleware(RequestLoggingMiddleware)

    # Analytics payloads (recent orders, daily series) compress well
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    logger.info(f"✅ Middleware configured (CORS origins: {', '.join(origins)})")
