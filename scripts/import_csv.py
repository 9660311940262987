"""
One-shot CSV loader for customers, products and orders

Usage:
    python -m scripts.import_csv customers.csv products.csv orders.csv

Replaces the content of the three collections. Any malformed row aborts the
whole import before anything is written.
"""
import argparse
import asyncio
import csv
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from pydantic import ValidationError

from app.cache.redis_manager import RedisCache
from app.middleware.monitoring import setup_logging
from app.services.analytics_service import AnalyticsService
from app.services.cached_analytics import CachedAnalyticsService
from app.utils.get_time import now_utc, parse_date_param
from db.config import get_settings
from db.db_connection import get_connection
from db.db_manager import DatabaseManager
from schema.customer import CustomerCreate
from schema.order import ImportedOrder
from schema.product import ProductCreate

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


class ImportFailed(Exception):
    """Raised when a CSV row cannot be mapped; nothing is written"""


def read_csv(path: Path) -> List[Dict[str, str]]:
    with open(path, newline='', encoding='utf-8') as handle:
        return list(csv.DictReader(handle))


def map_customer(row: Dict[str, str]) -> Dict[str, Any]:
    try:
        customer = CustomerCreate(
            _id=row["_id"],
            name=row["name"],
            email=row["email"],
            address={
                "street": UNKNOWN,
                "city": row.get("location") or UNKNOWN,
                "state": UNKNOWN,
                "zip": UNKNOWN,
                "country": UNKNOWN
            },
            phone=UNKNOWN,
            registration_date=now_utc()
        )
    except (KeyError, ValidationError) as e:
        raise ImportFailed(f"Invalid customer row {row.get('_id', '?')}: {e}") from e
    return customer.model_dump(by_alias=True)


def map_product(row: Dict[str, str]) -> Dict[str, Any]:
    try:
        product_id = row["_id"]
        name = row["name"]
        product = ProductCreate(
            _id=product_id,
            name=name,
            description=f"Description for {name}",
            price=float(row["price"]),
            category=row["category"],
            stock=int(row["stock"]),
            sku=f"SKU-{product_id[:8]}",
            image_url=f"https://example.com/{name.lower().replace(' ', '_')}.jpg"
        )
    except (KeyError, ValueError, ValidationError) as e:
        raise ImportFailed(f"Invalid product row {row.get('_id', '?')}: {e}") from e
    return product.model_dump(by_alias=True)


def parse_order_items(raw: str, order_id: str) -> List[Dict[str, Any]]:
    """Parse the single-quoted JSON list stored in the `products` column"""
    try:
        items = json.loads((raw or "").replace("'", '"'))
    except json.JSONDecodeError as e:
        raise ImportFailed(f"Malformed products list for order {order_id}: {e}") from e

    if not isinstance(items, list) or not items:
        raise ImportFailed(f"Order {order_id} must list at least one product")
    return items


def map_order(row: Dict[str, str]) -> Dict[str, Any]:
    order_id = row.get("_id", "?")
    items = parse_order_items(row.get("products"), order_id)

    order_date = parse_date_param(row.get("orderDate"))
    if order_date is None:
        raise ImportFailed(f"Invalid orderDate for order {order_id}: {row.get('orderDate')!r}")

    try:
        order = ImportedOrder(
            _id=row["_id"],
            customerId=row["customerId"],
            items=items,
            totalAmount=float(row["totalAmount"]),
            status=row["status"],
            orderDate=order_date
        )
    except (KeyError, ValueError, ValidationError) as e:
        raise ImportFailed(f"Invalid order row {order_id}: {e}") from e

    return {
        "_id": order.id,
        "customer": order.customerId,
        "items": [
            {
                "product": item.productId,
                "quantity": item.quantity,
                "price": item.priceAtPurchase
            }
            for item in order.items
        ],
        "total": order.totalAmount,
        "status": order.status,
        "payment_method": "credit_card",
        "shipping_address": {
            "street": UNKNOWN,
            "city": UNKNOWN,
            "state": UNKNOWN,
            "zip": UNKNOWN,
            "country": UNKNOWN
        },
        "order_date": order.orderDate
    }


def load_documents(customers_path: Path, products_path: Path, orders_path: Path):
    """Map every CSV row, failing on the first invalid one"""
    for path in (customers_path, products_path, orders_path):
        if not path.exists():
            raise ImportFailed(f"File not found at {path}")

    customers = [map_customer(row) for row in read_csv(customers_path)]
    products = [map_product(row) for row in read_csv(products_path)]
    orders = [map_order(row) for row in read_csv(orders_path)]
    return customers, products, orders


async def import_data(customers_path: Path, products_path: Path, orders_path: Path) -> Dict[str, int]:
    settings = get_settings()

    customers, products, orders = load_documents(customers_path, products_path, orders_path)

    client = get_connection(settings)
    db = DatabaseManager(client, settings.db_name)
    cache = RedisCache(settings.redis_url)

    try:
        logger.info("Clearing existing collections...")
        for collection in ("customers", "products", "orders"):
            await db.delete_many(collection, {})

        counts = {
            "customers": await db.insert_many("customers", customers),
            "products": await db.insert_many("products", products),
            "orders": await db.insert_many("orders", orders)
        }
        for collection, count in counts.items():
            logger.info(f"✅ {count} {collection} imported")

        # Cached aggregates describe the previous data set
        await cache.connect()
        await CachedAnalyticsService(AnalyticsService(db), cache).invalidate_all()

        return counts
    finally:
        client.close()
        await cache.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Import customers, products and orders from CSV")
    parser.add_argument("customers", type=Path, help="customers CSV (_id,name,email,location)")
    parser.add_argument("products", type=Path, help="products CSV (_id,name,category,price,stock)")
    parser.add_argument("orders", type=Path, help="orders CSV (_id,customerId,products,totalAmount,orderDate,status)")
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.log_level, settings.environment)

    logger.info("Using file paths:")
    logger.info(f"- Customers: {args.customers}")
    logger.info(f"- Products: {args.products}")
    logger.info(f"- Orders: {args.orders}")

    try:
        asyncio.run(import_data(args.customers, args.products, args.orders))
    except ImportFailed as e:
        logger.error(f"❌ Import aborted: {e}")
        return 1
    except Exception as e:
        logger.error(f"❌ Error importing data: {e}", exc_info=True)
        return 1

    logger.info("🎉 All data imported successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
