# main.py
from fastapi import FastAPI
from contextlib import asynccontextmanager
import structlog
from app.app import create_app
from app.cache.redis_manager import RedisCache
from app.middleware.monitoring import setup_logging
from app.services.analytics_service import AnalyticsService
from app.services.cached_analytics import CachedAnalyticsService
from app.services.order_service import OrderService
from db.config import get_settings
from db.db_connection import get_connection
from db.db_manager import DatabaseManager

settings = get_settings()

setup_logging(settings.log_level, settings.environment)

logger = structlog.get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        logger.info("🚀 Starting Storefront Analytics API...")

        # Initialize database
        client = get_connection(settings)
        db = DatabaseManager(client, settings.db_name)
        app.state.db = db
        await db.ping()
        logger.info("✅ Database connected successfully")

        # Initialize cache (a failed connection leaves the API running uncached)
        cache = RedisCache(settings.redis_url)
        await cache.connect()
        app.state.cache = cache

        analytics = CachedAnalyticsService(
            AnalyticsService(db),
            cache,
            ttl=settings.cache_ttl_seconds
        )
        app.state.analytics = analytics
        app.state.order_service = OrderService(
            db,
            analytics,
            atomic_reservation=settings.atomic_stock_reservation
        )
        if settings.atomic_stock_reservation:
            logger.info("🔒 Atomic stock reservation enabled")

        await db.ensure_indexes()
        logger.info("✅ Database indexes verified")

        logger.info("🎉 Storefront Analytics API started successfully")
        logger.info(f"📍 Environment: {settings.environment}")

    except Exception as e:
        logger.error(f"💥 Failed to initialize application: {str(e)}")
        raise e

    yield

    # Cleanup on shutdown
    logger.info("🔄 Shutting down Storefront Analytics API...")

    if hasattr(app.state, 'db'):
        app.state.db.client.close()
        logger.info("✅ Database connection closed")

    if hasattr(app.state, 'cache'):
        await app.state.cache.close()

    logger.info("👋 Shutdown complete")

app = create_app(lifespan=lifespan)

if __name__ == "__main__":
    import uvicorn

    if settings.environment == 'Development':
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.port,
            reload=True,
            log_level="info"
        )
    else:
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.port,
            reload=False,
            log_level="warning",
            workers=1
        )
