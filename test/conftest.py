"""
Storefront Analytics Test Suite Configuration
"""
import pytest
from httpx import AsyncClient, ASGITransport
from fakeredis import aioredis
from datetime import datetime, timedelta
import os
import sys
from pathlib import Path

# Add parent directory to path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# CRITICAL: Set environment variables BEFORE any app imports
os.environ['MONGO_URI'] = 'mongodb://localhost:27017'
os.environ['DB_NAME'] = 'storefront_test'
os.environ['REDIS_URL'] = 'redis://localhost:6379/1'
os.environ['ENVIRONMENT'] = 'Testing'

from db.db_manager import DatabaseManager  # noqa: E402
from mock_motor import MockMotorClient  # noqa: E402

BASE_DATE = datetime(2024, 3, 1, 12, 0, 0)

@pytest.fixture(scope="function")
async def test_db():
    """DatabaseManager over an empty mongomock database"""
    client = MockMotorClient()
    yield DatabaseManager(client, os.environ["DB_NAME"])
    client.close()

@pytest.fixture
async def redis_client():
    client = aioredis.FakeRedis()
    yield client
    await client.flushall()
    await client.aclose()

@pytest.fixture
def cache(redis_client):
    from app.cache.redis_manager import RedisCache
    return RedisCache(client=redis_client)

@pytest.fixture
def analytics_engine(test_db):
    from app.services.analytics_service import AnalyticsService
    return AnalyticsService(test_db)

@pytest.fixture
def analytics(analytics_engine, cache):
    from app.services.cached_analytics import CachedAnalyticsService
    return CachedAnalyticsService(analytics_engine, cache)

@pytest.fixture
def order_service(test_db, analytics):
    from app.services.order_service import OrderService
    return OrderService(test_db, analytics)

@pytest.fixture
def atomic_order_service(test_db, analytics):
    from app.services.order_service import OrderService
    return OrderService(test_db, analytics, atomic_reservation=True)

@pytest.fixture
def app(test_db, cache, analytics, order_service):
    """Application wired to the test database, without lifespan"""
    from app.app import create_app

    test_app = create_app()
    test_app.state.db = test_db
    test_app.state.cache = cache
    test_app.state.analytics = analytics
    test_app.state.order_service = order_service
    return test_app

@pytest.fixture
async def client(app):
    """Create async HTTP client"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

def make_customer(customer_id, name, email, city="Springfield"):
    return {
        "_id": customer_id,
        "name": name,
        "email": email,
        "address": {
            "street": "1 Main St",
            "city": city,
            "state": "IL",
            "zip": "62701",
            "country": "USA"
        },
        "phone": "555-0100",
        "registration_date": datetime(2023, 1, 1)
    }

def make_product(product_id, name, category, price, stock):
    return {
        "_id": product_id,
        "name": name,
        "description": f"Description for {name}",
        "price": price,
        "category": category,
        "stock": stock,
        "sku": f"SKU-{product_id[:8]}",
        "image_url": None
    }

def make_order(order_id, customer_id, items, order_date, status="completed"):
    """items: [(product_id, quantity, price), ...]"""
    return {
        "_id": order_id,
        "customer": customer_id,
        "items": [
            {"product": product, "quantity": quantity, "price": price}
            for product, quantity, price in items
        ],
        "total": sum(quantity * price for _, quantity, price in items),
        "status": status,
        "payment_method": "credit_card",
        "shipping_address": None,
        "order_date": order_date
    }

@pytest.fixture
async def test_customers(test_db):
    customers = [
        make_customer("cust-alice", "Alice Smith", "alice@example.com"),
        make_customer("cust-bob", "Bob Jones", "bob@example.com", city="Shelbyville"),
        make_customer("cust-carol", "Carol White", "carol@example.com"),
    ]
    await test_db.insert_many("customers", customers)
    return customers

@pytest.fixture
async def test_products(test_db):
    products = [
        make_product("prod-laptop", "Laptop", "Electronics", 1000.0, 10),
        make_product("prod-mouse", "Mouse", "Electronics", 25.0, 100),
        make_product("prod-novel", "Novel", "Books", 15.0, 50),
        make_product("prod-mug", "Mug", "Kitchen", 10.0, 3),
    ]
    await test_db.insert_many("products", products)
    return products

@pytest.fixture
async def test_orders(test_db, test_customers, test_products):
    """
    Alice: two orders (laptop + mouse, then novels)
    Bob: one order (mice + mug)
    Carol: none
    """
    orders = [
        make_order("ord-1", "cust-alice", [("prod-laptop", 1, 1000.0), ("prod-mouse", 2, 25.0)], BASE_DATE),
        make_order("ord-2", "cust-alice", [("prod-novel", 3, 15.0)], BASE_DATE + timedelta(days=1)),
        make_order("ord-3", "cust-bob", [("prod-mouse", 3, 20.0), ("prod-mug", 1, 10.0)], BASE_DATE + timedelta(days=1, hours=3)),
    ]
    await test_db.insert_many("orders", orders)
    return orders

@pytest.fixture
def order_payload():
    """Helper to create order placement payloads"""
    def _create_order(items=None, customer_id="cust-alice", **extra):
        if items is None:
            items = [{"productId": "prod-mouse", "quantity": 2}]
        payload = {
            "customerId": customer_id,
            "items": items,
            "paymentMethod": "credit_card"
        }
        payload.update(extra)
        return payload

    return _create_order
