from fastapi import Request
from db.db_manager import DatabaseManager
from schema.order import PlaceOrderInput
from app.services.cached_analytics import CachedAnalyticsService
from app.utils.errors import NotFoundError, InsufficientStockError
from app.utils.get_time import now_utc
from app.utils.metrics import ORDERS_PLACED, ORDERS_REJECTED
from app.utils.mongo import fix_mongo_types, populate_order_products
import logging
import uuid
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

ORDER_PRODUCT_FIELDS = {"name": 1, "price": 1, "category": 1, "stock": 1}
ORDER_CUSTOMER_FIELDS = {"name": 1, "email": 1, "address": 1, "phone": 1}

class OrderService:
    """
    Order placement: validate -> reserve stock -> persist -> invalidate -> respond

    With atomic_reservation=False (default) each item's stock is checked and
    then decremented as it is validated; decrements made for earlier items are
    NOT restored when a later item fails, and two concurrent orders can both
    pass the check for the same product. With atomic_reservation=True the
    decrement is conditional on stock >= quantity in a single update, and
    every reservation is given back when a later item or the order insert
    fails.
    """

    def __init__(self, db: DatabaseManager, analytics: CachedAnalyticsService, atomic_reservation: bool = False):
        self.db = db
        self.analytics = analytics
        self.atomic_reservation = atomic_reservation

    async def place_order(self, order_input: PlaceOrderInput) -> Dict[str, Any]:
        customer_id = order_input.customerId

        # ✅ STEP 1: Customer must exist
        customer = await self.db.find_one("customers", {"_id": customer_id})
        if not customer:
            ORDERS_REJECTED.labels(reason="customer_not_found").inc()
            raise NotFoundError("Customer not found")

        # ✅ STEP 2 + 3: Validate each item, capture its price, reserve stock
        if self.atomic_reservation:
            order_items = await self._reserve_atomically(order_input)
        else:
            order_items = await self._reserve_per_item(order_input)

        # ✅ STEP 4: Build the order
        order_total = sum(item["price"] * item["quantity"] for item in order_items)

        if order_input.shippingAddress is not None:
            shipping_address = order_input.shippingAddress.model_dump()
        else:
            shipping_address = customer.get("address")

        order_id = str(uuid.uuid4())
        order_doc = {
            "_id": order_id,
            "customer": customer_id,
            "items": order_items,
            "total": order_total,
            "status": "pending",
            "payment_method": order_input.paymentMethod,
            "shipping_address": shipping_address,
            "order_date": now_utc()
        }

        logger.info(f"📅 Creating order {order_id} for customer {customer_id}")
        logger.info(f"   Items: {len(order_items)}, total: {order_total}")

        # ✅ STEP 5: Persist, then invalidate before reporting success
        try:
            await self.db.insert_one("orders", order_doc)
        except Exception:
            if self.atomic_reservation:
                await self._release([(item["product"], item["quantity"]) for item in order_items])
            raise
        ORDERS_PLACED.inc()

        await self.analytics.invalidate_order_caches(customer_id)

        logger.info(f"✅✅✅ Order {order_id} created successfully!")
        return await self._resolve_order(order_id, order_doc)

    async def _load_product(self, product_id: str) -> Dict[str, Any]:
        product = await self.db.find_one("products", {"_id": product_id})
        if not product:
            ORDERS_REJECTED.labels(reason="product_not_found").inc()
            raise NotFoundError(f"Product with ID {product_id} not found")
        return product

    def _insufficient(self, product: Dict[str, Any], requested: int, available: int) -> InsufficientStockError:
        logger.warning(f"❌ Insufficient stock for {product['name']}")
        logger.warning(f"   Available: {available}")
        logger.warning(f"   Requested: {requested}")
        ORDERS_REJECTED.labels(reason="insufficient_stock").inc()
        return InsufficientStockError(product["_id"], product["name"], requested, available)

    async def _reserve_per_item(self, order_input: PlaceOrderInput) -> List[Dict[str, Any]]:
        order_items = []

        for item in order_input.items:
            product = await self._load_product(item.productId)

            available = product.get("stock", 0)
            if available < item.quantity:
                if order_items:
                    logger.warning(
                        f"⚠️ {len(order_items)} earlier item(s) of this order already decremented stock"
                    )
                raise self._insufficient(product, item.quantity, available)

            # Unit price is frozen at purchase time
            order_items.append({
                "product": product["_id"],
                "quantity": item.quantity,
                "price": product["price"]
            })

            await self.db.update_one(
                "products",
                {"_id": product["_id"]},
                {"$inc": {"stock": -item.quantity}}
            )
            logger.info(f"📦 Stock decremented for {product['name']} by {item.quantity}")

        return order_items

    async def _reserve_atomically(self, order_input: PlaceOrderInput) -> List[Dict[str, Any]]:
        order_items = []
        reserved = []

        try:
            for item in order_input.items:
                product = await self._load_product(item.productId)

                # ✅ ATOMIC UPDATE: Check and decrement in ONE operation
                result = await self.db.update_one(
                    "products",
                    {"_id": product["_id"], "stock": {"$gte": item.quantity}},
                    {"$inc": {"stock": -item.quantity}}
                )

                if result.matched_count == 0:
                    fresh_product = await self.db.find_one("products", {"_id": product["_id"]})
                    available = fresh_product.get("stock", 0) if fresh_product else 0
                    raise self._insufficient(product, item.quantity, available)

                reserved.append((product["_id"], item.quantity))
                order_items.append({
                    "product": product["_id"],
                    "quantity": item.quantity,
                    "price": product["price"]
                })
                logger.info(f"📦 Stock reserved for {product['name']}: {item.quantity}")

        except Exception:
            await self._release(reserved)
            raise

        return order_items

    async def _release(self, reserved):
        """Give back stock reserved for earlier items of a failed order"""
        if reserved:
            logger.error(f"❌ Order failed, rolling back {len(reserved)} reservations")

        for product_id, quantity in reserved:
            try:
                await self.db.update_one(
                    "products",
                    {"_id": product_id},
                    {"$inc": {"stock": quantity}}
                )
                logger.info(f"🔄 Rolled back {quantity} units for product {product_id}")
            except Exception as rollback_error:
                logger.error(f"❌ CRITICAL: Rollback failed for {product_id}: {rollback_error}")

    async def _resolve_order(self, order_id: str, order_doc: Dict[str, Any]) -> Dict[str, Any]:
        """Read the order back with customer and products expanded"""
        order = await self.db.find_one("orders", {"_id": order_id}) or dict(order_doc)

        customer = await self.db.find_one(
            "customers",
            {"_id": order["customer"]},
            projection=ORDER_CUSTOMER_FIELDS
        )
        if customer:
            order["customer"] = customer

        await populate_order_products(self.db, [order], ORDER_PRODUCT_FIELDS)
        return fix_mongo_types(order)

def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service
