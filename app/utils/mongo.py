from datetime import datetime
from typing import Any, Dict, List, Optional
from bson import ObjectId
from app.utils.get_time import UTC


def fix_mongo_types(doc):
    """Convert a Mongo document into JSON-safe values (ids to str, datetimes to ISO UTC)"""
    if isinstance(doc, dict):
        return {k: fix_mongo_types(v) for k, v in doc.items()}
    elif isinstance(doc, list):
        return [fix_mongo_types(i) for i in doc]
    elif isinstance(doc, ObjectId):
        return str(doc)
    elif isinstance(doc, datetime):
        if doc.tzinfo is None:
            doc = UTC.localize(doc)
        return doc.astimezone(UTC).isoformat()
    else:
        return doc


async def populate_order_products(db, orders: List[Dict[str, Any]], projection: Optional[Dict[str, Any]] = None):
    """
    Replace each items[].product id with the product document, in place

    One products query covers every order in the batch; ids with no product
    document resolve to None.
    """
    product_ids = {
        item["product"]
        for order in orders
        for item in order.get("items", [])
        if not isinstance(item.get("product"), dict)
    }
    if not product_ids:
        return orders

    products = await db.find_many(
        "products",
        {"_id": {"$in": sorted(product_ids)}},
        projection=projection
    )
    product_map = {p["_id"]: p for p in products}

    for order in orders:
        for item in order.get("items", []):
            if not isinstance(item.get("product"), dict):
                item["product"] = product_map.get(item["product"])

    return orders
