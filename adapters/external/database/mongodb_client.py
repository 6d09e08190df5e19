"""
Mongo connection helpers shared by the API lifespan and the standalone candle batcher.
"""

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from config.settings import settings


def get_mongo_client(uri: Optional[str] = None) -> AsyncIOMotorClient:
    """
    Build the Motor client from settings.

    Datetimes are decoded as UTC-aware so stored candle/fill times compare
    directly with `utcnow()`. Candle batches are written in transactions,
    so `uri` must point at a replica set (a single-node one is fine).
    """
    return AsyncIOMotorClient(
        uri or settings.MONGODB_URI,
        tz_aware=True,
        uuidRepresentation="standard",
        maxPoolSize=settings.MONGODB_MAX_POOL_SIZE,
        serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
        connectTimeoutMS=settings.MONGODB_CONNECT_TIMEOUT_MS,
        socketTimeoutMS=settings.MONGODB_SOCKET_TIMEOUT_MS,
    )


def get_database(client: AsyncIOMotorClient, name: Optional[str] = None) -> AsyncIOMotorDatabase:
    return client[name or settings.MONGODB_DB_NAME]
