# app/routes/analytics.py
from typing import List
from fastapi import APIRouter, Depends, Query
import logging
from app.services.cached_analytics import CachedAnalyticsService, get_analytics
from app.utils.errors import ServiceError
from schema.analytics import SalesAnalytics, TopProduct

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/top-products", response_model=List[TopProduct])
async def get_top_selling_products(
    limit: int = Query(..., description="Number of products to return"),
    analytics: CachedAnalyticsService = Depends(get_analytics)
):
    """Best selling products by quantity (cached per limit)"""
    try:
        return await analytics.get_top_selling_products(limit)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Top products error: {e}")
        raise ServiceError("Failed to compute top selling products") from e

@router.get("/sales", response_model=SalesAnalytics)
async def get_sales_analytics(
    start_date: str = Query(..., alias="startDate"),
    end_date: str = Query(..., alias="endDate"),
    analytics: CachedAnalyticsService = Depends(get_analytics)
):
    """Sales metrics for an inclusive date range (cached per range)"""
    try:
        return await analytics.get_sales_analytics(start_date, end_date)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Sales analytics error: {e}")
        raise ServiceError("Failed to compute sales analytics") from e
