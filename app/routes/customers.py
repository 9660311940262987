# app/routes/customers.py
from typing import List
from fastapi import APIRouter, Depends, Query
import logging
from app.services.cached_analytics import CachedAnalyticsService, get_analytics
from app.utils.errors import ServiceError
from schema.analytics import CustomerSpending
from schema.customer import CustomerResponse
from schema.order import OrderPagination

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("", response_model=List[CustomerResponse])
@router.get("/", response_model=List[CustomerResponse])
async def get_customers(analytics: CachedAnalyticsService = Depends(get_analytics)):
    try:
        return await analytics.list_customers()
    except Exception as e:
        logger.error(f"Customer list error: {e}")
        raise ServiceError("Failed to fetch customers") from e

@router.get("/{customer_id}/spending", response_model=CustomerSpending)
async def get_customer_spending(
    customer_id: str,
    analytics: CachedAnalyticsService = Depends(get_analytics)
):
    """Lifetime spending summary of a customer (cached)"""
    try:
        return await analytics.get_customer_spending(customer_id)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Customer spending error for {customer_id}: {e}")
        raise ServiceError("Failed to compute customer spending") from e

@router.get("/{customer_id}/orders", response_model=OrderPagination)
async def get_customer_orders(
    customer_id: str,
    page: int = Query(1),
    limit: int = Query(10),
    analytics: CachedAnalyticsService = Depends(get_analytics)
):
    """Paginated order history, newest first (never cached)"""
    try:
        return await analytics.get_customer_orders(customer_id, page, limit)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Customer orders error for {customer_id}: {e}")
        raise ServiceError("Failed to fetch customer orders") from e
