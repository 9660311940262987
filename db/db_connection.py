# db/db_connection.py
import motor.motor_asyncio
from db.config import Settings

def get_connection(settings: Settings) -> motor.motor_asyncio.AsyncIOMotorClient:
    """Create a Motor client for the configured MongoDB deployment"""
    return motor.motor_asyncio.AsyncIOMotorClient(
        settings.mongo_uri,
        serverSelectionTimeoutMS=5000,
        uuidRepresentation="standard"
    )
