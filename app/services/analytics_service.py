# app/services/analytics_service.py
"""
Analytical views over the orders collection
Read-only and deterministic for a given store state; caching is layered on
top by CachedAnalyticsService
"""
import asyncio
import logging
import math
from typing import Any, Dict, List, Optional

from db.db_manager import DatabaseManager
from db.pipeline import (
    Pipeline, Match, Unwind, Group, Lookup, Project, Sort, Limit,
    safe_divide
)
from app.utils.errors import NotFoundError, InvalidInputError
from app.utils.get_time import parse_date_param
from app.utils.mongo import fix_mongo_types, populate_order_products

logger = logging.getLogger(__name__)

RECENT_ORDERS_LIMIT = 5
SALES_TOP_PRODUCTS_LIMIT = 5
DEFAULT_PAGE_SIZE = 10

RECENT_ORDER_PRODUCT_FIELDS = {"name": 1, "price": 1, "category": 1}
ORDER_HISTORY_PRODUCT_FIELDS = {"name": 1, "price": 1, "category": 1, "description": 1}
CUSTOMER_LIST_FIELDS = {"name": 1, "email": 1, "address": 1, "phone": 1, "registration_date": 1}

ITEM_REVENUE = {"$multiply": ["$items.price", "$items.quantity"]}


def _join_item_products(as_field: str = "productDetails") -> List:
    """Unwind order items and inner-join each with its product"""
    return [
        Unwind(path="items"),
        Lookup(from_collection="products", local_field="items.product", as_field=as_field),
        Unwind(path=as_field),
    ]


def top_products_pipeline(limit: int, match: Optional[Dict[str, Any]] = None) -> Pipeline:
    """
    Best sellers by quantity

    Ties on totalSold are broken by product id ascending, so a larger limit
    always returns a superset of a smaller one.
    """
    pipeline = Pipeline(Match(query=match)) if match else Pipeline()
    return pipeline.then(
        Unwind(path="items"),
        Group(key="$items.product", accumulators={
            "totalSold": {"$sum": "$items.quantity"},
            "revenue": {"$sum": ITEM_REVENUE},
            "orders": {"$addToSet": "$_id"}
        }),
        Lookup(from_collection="products", local_field="_id", as_field="productDetails"),
        Unwind(path="productDetails"),
        Sort(keys=[("totalSold", -1), ("_id", 1)]),
        Limit(count=limit),
        Project(spec={
            "_id": 0,
            "product": "$productDetails",
            "totalSold": 1,
            "revenue": 1,
            "orderCount": {"$size": "$orders"}
        })
    )


def customer_summary_pipeline(customer_id: str) -> Pipeline:
    return Pipeline(
        Match(query={"customer": customer_id}),
        Group(key="$customer", accumulators={
            "totalSpent": {"$sum": "$total"},
            "orderCount": {"$sum": 1}
        }),
        Project(spec={
            "_id": 0,
            "totalSpent": 1,
            "orderCount": 1,
            "averageOrderValue": safe_divide("totalSpent", "orderCount")
        })
    )


def customer_category_pipeline(customer_id: str) -> Pipeline:
    return Pipeline(
        Match(query={"customer": customer_id}),
        *_join_item_products(),
        Group(key="$productDetails.category", accumulators={
            "amount": {"$sum": ITEM_REVENUE}
        }),
        Sort(keys=[("amount", -1), ("_id", 1)])
    )


def sales_overall_pipeline(date_match: Dict[str, Any]) -> Pipeline:
    return Pipeline(
        Match(query=date_match),
        Group(key=None, accumulators={
            "totalSales": {"$sum": "$total"},
            "orderCount": {"$sum": 1}
        }),
        Project(spec={
            "_id": 0,
            "totalSales": 1,
            "orderCount": 1,
            "averageOrderValue": safe_divide("totalSales", "orderCount")
        })
    )


def sales_by_day_pipeline(date_match: Dict[str, Any]) -> Pipeline:
    return Pipeline(
        Match(query=date_match),
        Group(
            key={"$dateToString": {"format": "%Y-%m-%d", "date": "$order_date"}},
            accumulators={
                "sales": {"$sum": "$total"},
                "orderCount": {"$sum": 1}
            }
        ),
        Sort(keys=[("_id", 1)]),
        Project(spec={"_id": 0, "date": "$_id", "sales": 1, "orderCount": 1})
    )


def sales_by_category_pipeline(date_match: Dict[str, Any]) -> Pipeline:
    return Pipeline(
        Match(query=date_match),
        *_join_item_products(),
        Group(key="$productDetails.category", accumulators={
            "sales": {"$sum": ITEM_REVENUE}
        }),
        Sort(keys=[("sales", -1), ("_id", 1)])
    )


def _percentage(part: float, whole: float) -> float:
    if not whole:
        return 0
    return (part / whole) * 100


class AnalyticsService:
    def __init__(self, db: DatabaseManager):
        self.db = db

    async def _require_customer(self, customer_id: str) -> Dict[str, Any]:
        customer = await self.db.find_one("customers", {"_id": customer_id})
        if not customer:
            raise NotFoundError("Customer not found")
        return customer

    async def list_customers(self) -> List[Dict[str, Any]]:
        """All customers with their contact fields"""
        customers = await self.db.find_many(
            "customers",
            {},
            sort=[("_id", 1)],
            projection=CUSTOMER_LIST_FIELDS
        )
        return fix_mongo_types(customers)

    async def get_customer_spending(self, customer_id: str) -> Dict[str, Any]:
        """
        Lifetime spending of one customer

        Returns totals, the 5 most recent orders with products resolved and
        spend per product category. A customer with no orders gets zeroes and
        empty lists.
        """
        customer = await self._require_customer(customer_id)

        summary_rows, recent_orders, category_rows = await asyncio.gather(
            self.db.aggregate("orders", customer_summary_pipeline(customer_id)),
            self.db.find_many(
                "orders",
                {"customer": customer_id},
                sort=[("order_date", -1), ("_id", 1)],
                limit=RECENT_ORDERS_LIMIT
            ),
            self.db.aggregate("orders", customer_category_pipeline(customer_id))
        )

        if not summary_rows:
            logger.info(f"📭 No orders found for customer {customer_id}")
            return fix_mongo_types({
                "customer": customer,
                "totalSpent": 0,
                "orderCount": 0,
                "averageOrderValue": 0,
                "recentOrders": [],
                "purchasesByCategory": []
            })

        summary = summary_rows[0]
        total_spent = summary["totalSpent"]

        await populate_order_products(self.db, recent_orders, RECENT_ORDER_PRODUCT_FIELDS)

        purchases_by_category = [
            {
                "category": row["_id"],
                "amount": row["amount"],
                "percentage": _percentage(row["amount"], total_spent)
            }
            for row in category_rows
        ]

        return fix_mongo_types({
            "customer": customer,
            "totalSpent": total_spent,
            "orderCount": summary["orderCount"],
            "averageOrderValue": summary["averageOrderValue"],
            "recentOrders": recent_orders,
            "purchasesByCategory": purchases_by_category
        })

    async def get_top_selling_products(self, limit: int) -> List[Dict[str, Any]]:
        """Products ranked by total quantity sold across all orders"""
        if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
            raise InvalidInputError("Limit must be a positive integer")

        top_products = await self.db.aggregate("orders", top_products_pipeline(limit))
        return fix_mongo_types(top_products)

    async def get_sales_analytics(self, start_date: str, end_date: str) -> Dict[str, Any]:
        """
        Sales metrics for orders placed within [start_date, end_date]

        Both bounds are inclusive on the order timestamp. The four breakdowns
        run concurrently against the same date filter.
        """
        start = parse_date_param(start_date)
        end = parse_date_param(end_date)

        if start is None or end is None:
            raise InvalidInputError("Invalid date format")

        date_match = {"order_date": {"$gte": start, "$lte": end}}

        overall_rows, sales_by_day, category_rows, top_products = await asyncio.gather(
            self.db.aggregate("orders", sales_overall_pipeline(date_match)),
            self.db.aggregate("orders", sales_by_day_pipeline(date_match)),
            self.db.aggregate("orders", sales_by_category_pipeline(date_match)),
            self.db.aggregate("orders", top_products_pipeline(SALES_TOP_PRODUCTS_LIMIT, date_match))
        )

        overall = overall_rows[0] if overall_rows else {
            "totalSales": 0,
            "orderCount": 0,
            "averageOrderValue": 0
        }
        total_sales = overall["totalSales"]

        sales_by_category = [
            {
                "category": row["_id"],
                "sales": row["sales"],
                "percentage": _percentage(row["sales"], total_sales)
            }
            for row in category_rows
        ]

        return fix_mongo_types({
            "totalSales": total_sales,
            "orderCount": overall["orderCount"],
            "averageOrderValue": overall["averageOrderValue"],
            "salesByDay": sales_by_day,
            "salesByCategory": sales_by_category,
            "topProducts": top_products
        })

    async def get_customer_orders(
        self,
        customer_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE
    ) -> Dict[str, Any]:
        """One page of a customer's order history, newest first"""
        if page is None:
            page = 1
        if limit is None:
            limit = DEFAULT_PAGE_SIZE
        if page < 1:
            raise InvalidInputError("Page must be at least 1")
        if limit < 1:
            raise InvalidInputError("Limit must be at least 1")

        await self._require_customer(customer_id)

        skip = (page - 1) * limit

        total_orders, orders = await asyncio.gather(
            self.db.count_documents("orders", {"customer": customer_id}),
            self.db.find_many(
                "orders",
                {"customer": customer_id},
                skip=skip,
                limit=limit,
                sort=[("order_date", -1), ("_id", 1)]
            )
        )
        total_pages = math.ceil(total_orders / limit)

        await populate_order_products(self.db, orders, ORDER_HISTORY_PRODUCT_FIELDS)

        return fix_mongo_types({
            "orders": orders,
            "totalOrders": total_orders,
            "totalPages": total_pages,
            "currentPage": page,
            "hasNextPage": page < total_pages,
            "hasPreviousPage": page > 1
        })
