import asyncio
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from app.core.config import settings

logger = logging.getLogger(__name__)


class MongoDB:
    client: Optional[AsyncIOMotorClient] = None
    lock: Optional[asyncio.Lock] = None


mongodb = MongoDB()


def _get_lock() -> asyncio.Lock:
    if mongodb.lock is None:
        mongodb.lock = asyncio.Lock()
    return mongodb.lock


# 🔹 Connect MongoDB (startup, or lazily on first use)
async def connect_to_mongo() -> AsyncIOMotorClient:
    if mongodb.client is not None:
        return mongodb.client

    async with _get_lock():
        # another coroutine may have connected while we waited
        if mongodb.client is None:
            mongodb.client = AsyncIOMotorClient(settings.MONGO_URI)
            logger.info("Connected to MongoDB")
    return mongodb.client


# 🔹 Close connection (shutdown)
async def close_mongo_connection():
    if mongodb.client is not None:
        mongodb.client.close()
        mongodb.client = None
        logger.info("MongoDB connection closed")


# 🔹 Return database object (FastAPI dependency)
async def get_database() -> AsyncIOMotorDatabase:
    client = await connect_to_mongo()
    return client[settings.MONGO_DB_NAME]


async def ensure_indexes(db: AsyncIOMotorDatabase):
    await db.accounts.create_index("email", unique=True)
    await db.accounts.create_index(
        "magic_key",
        unique=True,
        partialFilterExpression={"magic_key": {"$type": "string"}},
    )

    await db.sessions.create_index("token_hash", unique=True)
    await db.sessions.create_index([("account_id", ASCENDING), ("revoked", ASCENDING)])
    await db.sessions.create_index("expires_at", expireAfterSeconds=0)

    await db.admins.create_index("email", unique=True)
    await db.admins.create_index([("role", ASCENDING)])

    await db.audit_logs.create_index([("admin_id", ASCENDING), ("created_at", DESCENDING)])
    await db.audit_logs.create_index([("action", ASCENDING), ("created_at", DESCENDING)])
    await db.audit_logs.create_index([("severity", ASCENDING), ("created_at", DESCENDING)])
    await db.audit_logs.create_index([("risk_score", DESCENDING)])
