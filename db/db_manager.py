from typing import Dict, Any, List, Optional, Union
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING, IndexModel
from pymongo.errors import OperationFailure
from db.pipeline import Pipeline
import logging
import time

logger = logging.getLogger(__name__)

CUSTOMERS = "customers"
PRODUCTS = "products"
ORDERS = "orders"

INDEXES = {
    CUSTOMERS: [
        IndexModel([("email", ASCENDING)], unique=True),
        IndexModel([("name", ASCENDING)]),
        IndexModel([("registration_date", ASCENDING)]),
    ],
    PRODUCTS: [
        IndexModel([("sku", ASCENDING)], unique=True),
        IndexModel([("category", ASCENDING)]),
        IndexModel([("price", ASCENDING)]),
        IndexModel([("stock", ASCENDING)]),
    ],
    ORDERS: [
        # Customer history and spending lookups, newest first
        IndexModel([("customer", ASCENDING), ("order_date", DESCENDING)]),
        # Date-range sales analytics
        IndexModel([("order_date", ASCENDING), ("status", ASCENDING)]),
        IndexModel([("status", ASCENDING)]),
    ],
}

class DatabaseManager:
    """
    Storefront collections over one Motor database

    Every operation logs the failing collection and re-raises the driver
    error; callers decide how a store failure surfaces.
    """

    def __init__(self, client: AsyncIOMotorClient, db_name: str):
        self.client = client
        self.db = client[db_name]

    def _collection(self, name: str) -> AsyncIOMotorCollection:
        return self.db[name]

    async def find_one(
        self,
        collection: str,
        filter_dict: Dict[str, Any],
        projection: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """
        One document or None

        Args:
            collection: customers, products or orders
            filter_dict: Query filter, usually {"_id": ...}
            projection: Fields to include (e.g. {"name": 1, "email": 1})
        """
        try:
            return await self._collection(collection).find_one(filter_dict, projection)
        except Exception as e:
            logger.error(f'❌ find_one failed on {collection} ({filter_dict}): {e}')
            raise

    async def find_many(
        self,
        collection: str,
        filter_dict: Dict[str, Any] = None,
        skip: int = 0,
        limit: int = 0,
        sort: List = None,
        projection: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Matching documents as a list

        Args:
            sort: [(field, direction), ...] applied before skip/limit
            skip, limit: page window; 0 means unbounded
        """
        cursor = self._collection(collection).find(filter_dict or {}, projection)
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)

        try:
            return await cursor.to_list(length=None)
        except Exception as e:
            logger.error(f'❌ find_many failed on {collection}: {e}')
            raise

    async def insert_one(self, collection: str, document: Dict[str, Any]) -> str:
        try:
            result = await self._collection(collection).insert_one(document)
        except Exception as e:
            logger.error(f'❌ Insert into {collection} failed: {e}')
            raise
        return str(result.inserted_id)

    async def insert_many(self, collection: str, documents: List[Dict[str, Any]]) -> int:
        """Bulk insert used by the CSV loader, returns the inserted count"""
        if not documents:
            return 0
        try:
            result = await self._collection(collection).insert_many(documents, ordered=True)
        except Exception as e:
            logger.error(f'❌ Bulk insert of {len(documents)} documents into {collection} failed: {e}')
            raise
        return len(result.inserted_ids)

    async def update_one(
        self,
        collection: str,
        filter_dict: Dict[str, Any],
        update_dict: Dict[str, Any]
    ):
        """
        Update the first match

        A plain field dict is wrapped in $set; operator documents ($inc for
        stock changes) are sent as given. Returns the driver UpdateResult so
        callers can inspect matched_count.
        """
        if not any(key.startswith('$') for key in update_dict):
            update_dict = {"$set": update_dict}
        try:
            return await self._collection(collection).update_one(filter_dict, update_dict)
        except Exception as e:
            logger.error(f'❌ Update on {collection} ({filter_dict}) failed: {e}')
            raise

    async def count_documents(self, collection: str, filter_dict: Dict[str, Any] = None) -> int:
        try:
            return await self._collection(collection).count_documents(filter_dict or {})
        except Exception as e:
            logger.error(f'❌ Count on {collection} failed: {e}')
            raise

    async def delete_many(self, collection: str, filter_dict: Dict[str, Any]) -> int:
        try:
            result = await self._collection(collection).delete_many(filter_dict)
        except Exception as e:
            logger.error(f"❌ Delete on {collection} failed: {e}")
            raise
        logger.info(f"🗑️ Deleted {result.deleted_count} documents from {collection}")
        return result.deleted_count

    async def aggregate(self, collection: str, pipeline: Union[Pipeline, List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        """Run a typed Pipeline (or a raw stage list) and return every result row"""
        stages = pipeline.to_mongo() if isinstance(pipeline, Pipeline) else pipeline

        start_time = time.time()
        try:
            cursor = self._collection(collection).aggregate(stages)
            rows = await cursor.to_list(length=None)
        except Exception as e:
            logger.error(f"❌ Aggregation on {collection} failed ({len(stages)} stages): {e}")
            raise

        logger.debug(f"📊 Aggregation on {collection}: {len(rows)} rows in {time.time() - start_time:.3f}s")
        return rows

    async def ensure_indexes(self):
        """Create the storefront indexes; existing equivalents are left alone"""
        for collection, indexes in INDEXES.items():
            try:
                await self._collection(collection).create_indexes(indexes)
            except OperationFailure as e:
                # Conflicting definition from an older deployment
                logger.warning(f"⚠️ Index note for {collection}: {e}")

    async def ping(self):
        return await self.client.admin.command('ping')
