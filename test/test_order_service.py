# test/test_order_service.py
"""
Tests for the order placement workflow
"""
import pytest
from unittest.mock import AsyncMock
from app.utils.errors import InsufficientStockError, NotFoundError
from schema.order import PlaceOrderInput

async def stock_of(test_db, product_id):
    product = await test_db.find_one("products", {"_id": product_id})
    return product["stock"]

class TestPlaceOrder:

    @pytest.mark.asyncio
    async def test_successful_order(self, order_service, test_db, test_orders, order_payload):
        order = await order_service.place_order(PlaceOrderInput(**order_payload()))

        assert order["status"] == "pending"
        assert order["total"] == 50.0
        assert order["payment_method"] == "credit_card"
        assert order["customer"]["_id"] == "cust-alice"
        assert order["customer"]["email"] == "alice@example.com"
        assert order["items"][0]["product"]["name"] == "Mouse"
        assert order["items"][0]["quantity"] == 2
        assert order["items"][0]["price"] == 25.0
        assert isinstance(order["order_date"], str)

        assert await stock_of(test_db, "prod-mouse") == 98
        assert await test_db.count_documents("orders", {"_id": order["_id"]}) == 1

    @pytest.mark.asyncio
    async def test_total_over_multiple_items(self, order_service, test_db, test_orders, order_payload):
        payload = order_payload(items=[
            {"productId": "prod-laptop", "quantity": 1},
            {"productId": "prod-novel", "quantity": 4},
        ])

        order = await order_service.place_order(PlaceOrderInput(**payload))

        assert order["total"] == 1060.0
        assert await stock_of(test_db, "prod-laptop") == 9
        assert await stock_of(test_db, "prod-novel") == 46

    @pytest.mark.asyncio
    async def test_price_captured_at_purchase(self, order_service, test_db, test_orders, order_payload):
        order = await order_service.place_order(PlaceOrderInput(**order_payload()))

        await test_db.update_one("products", {"_id": "prod-mouse"}, {"$set": {"price": 99.0}})
        stored = await test_db.find_one("orders", {"_id": order["_id"]})

        assert stored["items"][0]["price"] == 25.0
        assert stored["total"] == 50.0

    @pytest.mark.asyncio
    async def test_default_shipping_address(self, order_service, test_orders, order_payload):
        order = await order_service.place_order(PlaceOrderInput(**order_payload()))
        assert order["shipping_address"]["city"] == "Springfield"

    @pytest.mark.asyncio
    async def test_explicit_shipping_address(self, order_service, test_orders, order_payload):
        payload = order_payload(shippingAddress={"street": "9 Elm", "city": "Capital City", "country": "USA"})
        order = await order_service.place_order(PlaceOrderInput(**payload))
        assert order["shipping_address"]["city"] == "Capital City"

    @pytest.mark.asyncio
    async def test_order_ids_are_unique(self, order_service, test_orders, order_payload):
        first = await order_service.place_order(PlaceOrderInput(**order_payload()))
        second = await order_service.place_order(PlaceOrderInput(**order_payload()))
        assert first["_id"] != second["_id"]

    @pytest.mark.asyncio
    async def test_unknown_customer(self, order_service, test_db, test_orders, order_payload):
        with pytest.raises(NotFoundError) as exc_info:
            await order_service.place_order(PlaceOrderInput(**order_payload(customer_id="cust-nobody")))

        assert exc_info.value.message == "Customer not found"
        assert await stock_of(test_db, "prod-mouse") == 100

    @pytest.mark.asyncio
    async def test_unknown_product(self, order_service, test_db, test_orders, order_payload):
        payload = order_payload(items=[{"productId": "prod-missing", "quantity": 1}])

        with pytest.raises(NotFoundError) as exc_info:
            await order_service.place_order(PlaceOrderInput(**payload))

        assert exc_info.value.message == "Product with ID prod-missing not found"
        assert await test_db.count_documents("orders") == 3

    @pytest.mark.asyncio
    async def test_insufficient_stock(self, order_service, test_db, test_orders, order_payload):
        payload = order_payload(items=[{"productId": "prod-mug", "quantity": 5}])

        with pytest.raises(InsufficientStockError) as exc_info:
            await order_service.place_order(PlaceOrderInput(**payload))

        error = exc_info.value
        assert error.message.startswith("Insufficient stock for product: Mug")
        assert error.requested == 5
        assert error.available == 3
        assert await stock_of(test_db, "prod-mug") == 3
        assert await test_db.count_documents("orders") == 3

    @pytest.mark.asyncio
    async def test_exact_stock_is_enough(self, order_service, test_db, test_orders, order_payload):
        payload = order_payload(items=[{"productId": "prod-mug", "quantity": 3}])
        await order_service.place_order(PlaceOrderInput(**payload))
        assert await stock_of(test_db, "prod-mug") == 0

    @pytest.mark.asyncio
    async def test_earlier_decrements_are_kept_on_failure(self, order_service, test_db, test_orders, order_payload):
        payload = order_payload(items=[
            {"productId": "prod-mouse", "quantity": 2},
            {"productId": "prod-mug", "quantity": 5},
        ])

        with pytest.raises(InsufficientStockError):
            await order_service.place_order(PlaceOrderInput(**payload))

        assert await stock_of(test_db, "prod-mouse") == 98
        assert await test_db.count_documents("orders") == 3

class TestAtomicReservation:

    @pytest.mark.asyncio
    async def test_successful_order(self, atomic_order_service, test_db, test_orders, order_payload):
        order = await atomic_order_service.place_order(PlaceOrderInput(**order_payload()))
        assert order["total"] == 50.0
        assert await stock_of(test_db, "prod-mouse") == 98

    @pytest.mark.asyncio
    async def test_failure_restores_earlier_items(self, atomic_order_service, test_db, test_orders, order_payload):
        payload = order_payload(items=[
            {"productId": "prod-mouse", "quantity": 2},
            {"productId": "prod-mug", "quantity": 5},
        ])

        with pytest.raises(InsufficientStockError) as exc_info:
            await atomic_order_service.place_order(PlaceOrderInput(**payload))

        assert exc_info.value.available == 3
        assert await stock_of(test_db, "prod-mouse") == 100
        assert await stock_of(test_db, "prod-mug") == 3

    @pytest.mark.asyncio
    async def test_missing_product_restores_earlier_items(self, atomic_order_service, test_db, test_orders, order_payload):
        payload = order_payload(items=[
            {"productId": "prod-novel", "quantity": 1},
            {"productId": "prod-missing", "quantity": 1},
        ])

        with pytest.raises(NotFoundError):
            await atomic_order_service.place_order(PlaceOrderInput(**payload))

        assert await stock_of(test_db, "prod-novel") == 50

    @pytest.mark.asyncio
    async def test_failed_insert_releases_every_reservation(self, atomic_order_service, test_db, test_orders, order_payload):
        async def broken_insert(collection, document):
            raise RuntimeError("write concern failed")

        test_db.insert_one = broken_insert
        payload = order_payload(items=[
            {"productId": "prod-mouse", "quantity": 5},
            {"productId": "prod-novel", "quantity": 2},
        ])

        with pytest.raises(RuntimeError):
            await atomic_order_service.place_order(PlaceOrderInput(**payload))

        assert await stock_of(test_db, "prod-mouse") == 100
        assert await stock_of(test_db, "prod-novel") == 50
        assert await test_db.count_documents("orders") == 3

    @pytest.mark.asyncio
    async def test_store_error_mid_order_restores_earlier_items(self, atomic_order_service, test_db, test_orders, order_payload):
        original_find_one = test_db.find_one

        async def flaky_find_one(collection, filter_dict, projection=None):
            if collection == "products" and filter_dict.get("_id") == "prod-novel":
                raise RuntimeError("connection reset")
            return await original_find_one(collection, filter_dict, projection)

        test_db.find_one = flaky_find_one
        payload = order_payload(items=[
            {"productId": "prod-mouse", "quantity": 5},
            {"productId": "prod-novel", "quantity": 1},
        ])

        with pytest.raises(RuntimeError):
            await atomic_order_service.place_order(PlaceOrderInput(**payload))

        assert await stock_of(test_db, "prod-mouse") == 100
        assert await test_db.count_documents("orders") == 3

class TestOrderCacheInvalidation:

    @pytest.mark.asyncio
    async def test_invalidates_before_returning(self, order_service, analytics, test_orders, order_payload):
        analytics.invalidate_order_caches = AsyncMock(return_value=0)

        await order_service.place_order(PlaceOrderInput(**order_payload()))

        analytics.invalidate_order_caches.assert_awaited_once_with("cust-alice")

    @pytest.mark.asyncio
    async def test_failed_order_does_not_invalidate(self, order_service, analytics, test_orders, order_payload):
        analytics.invalidate_order_caches = AsyncMock(return_value=0)
        payload = order_payload(items=[{"productId": "prod-mug", "quantity": 50}])

        with pytest.raises(InsufficientStockError):
            await order_service.place_order(PlaceOrderInput(**payload))

        analytics.invalidate_order_caches.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reads_reflect_new_order(self, order_service, analytics, test_orders, order_payload):
        before_spending = await analytics.get_customer_spending("cust-alice")
        before_top = await analytics.get_top_selling_products(1)
        before_sales = await analytics.get_sales_analytics("2000-01-01", "2100-01-01")

        payload = order_payload(items=[{"productId": "prod-novel", "quantity": 10}])
        order = await order_service.place_order(PlaceOrderInput(**payload))

        after_spending = await analytics.get_customer_spending("cust-alice")
        after_top = await analytics.get_top_selling_products(1)
        after_sales = await analytics.get_sales_analytics("2000-01-01", "2100-01-01")

        assert before_spending["orderCount"] == 2
        assert after_spending["orderCount"] == 3
        assert after_spending["totalSpent"] == before_spending["totalSpent"] + 150.0
        assert after_spending["recentOrders"][0]["_id"] == order["_id"]

        assert before_top[0]["product"]["_id"] == "prod-mouse"
        assert after_top[0]["product"]["_id"] == "prod-novel"
        assert after_top[0]["totalSold"] == 13

        assert after_sales["orderCount"] == before_sales["orderCount"] + 1

    @pytest.mark.asyncio
    async def test_other_customers_entries_survive(self, order_service, analytics, cache, test_orders, order_payload):
        await analytics.get_customer_spending("cust-bob")

        await order_service.place_order(PlaceOrderInput(**order_payload()))

        assert await cache.get("customer_spending:cust-bob") is not None

    @pytest.mark.asyncio
    async def test_order_history_keeps_purchase_prices(self, order_service, analytics, test_db, test_orders, order_payload):
        payload = order_payload(items=[
            {"productId": "prod-mouse", "quantity": 2},
            {"productId": "prod-novel", "quantity": 1},
        ])
        order = await order_service.place_order(PlaceOrderInput(**payload))

        await test_db.update_one("products", {"_id": "prod-mouse"}, {"$set": {"price": 1.0}})
        history = await analytics.get_customer_orders("cust-alice", 1, 10)

        fetched = next(o for o in history["orders"] if o["_id"] == order["_id"])
        assert [item["price"] for item in fetched["items"]] == [25.0, 15.0]
        assert fetched["total"] == order["total"] == 65.0
        assert fetched["items"][0]["product"]["price"] == 1.0
