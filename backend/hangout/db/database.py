"""
MongoDB Database Configuration and Connection
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError
from pymongo.server_api import ServerApi

from hangout.core.config import DATABASE_NAME, MONGODB_URI, STORE_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

# Global database client
_client: AsyncIOMotorClient | None = None
_database: AsyncIOMotorDatabase | None = None


def get_database() -> AsyncIOMotorDatabase:
    """
    Get MongoDB database instance
    Creates a new connection if one doesn't exist
    """
    global _client, _database

    if _database is None:
        if not MONGODB_URI:
            raise ValueError("MONGODB_URI environment variable is not set")

        timeout_ms = int(STORE_TIMEOUT_SECONDS * 1000)
        _client = AsyncIOMotorClient(
            MONGODB_URI,
            server_api=ServerApi("1"),
            serverSelectionTimeoutMS=timeout_ms,
            retryWrites=True,
        )
        _database = _client[DATABASE_NAME]

        logger.info("[db] connected to MongoDB database: %s", DATABASE_NAME)

    return _database


async def init_indexes(db: AsyncIOMotorDatabase | None = None) -> None:
    """
    Unique indexes back the idempotent upserts: one preference and one vote per
    (group_id, member_id), one itinerary set per group.
    """
    db = db if db is not None else get_database()
    try:
        await db.groups.create_index("code", unique=True)
        await db.groups.create_index("id", unique=True)

        await db.preferences.create_index(
            [("group_id", 1), ("member_id", 1)], unique=True, name="uniq_group_member"
        )
        await db.votes.create_index(
            [("group_id", 1), ("member_id", 1)], unique=True, name="uniq_group_voter"
        )
        await db.itinerary_sets.create_index("group_id", unique=True)

        logger.info("[db] indexes created")
    except PyMongoError as e:
        logger.warning("[db] index creation warning: %s", e)


async def close_database_connection() -> None:
    """
    Close the MongoDB connection
    Call this when shutting down the application
    """
    global _client, _database

    if _client:
        _client.close()
        _client = None
        _database = None
        logger.info("[db] closed MongoDB connection")


async def test_connection() -> bool:
    try:
        db = get_database()
        await db.command("ping")
        logger.info("[db] MongoDB ping ok")
        return True
    except (PyMongoError, ValueError) as e:
        logger.error("[db] MongoDB connection failed: %s", e)
        return False
