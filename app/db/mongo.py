import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from app.core.config import settings

logger = logging.getLogger(__name__)


class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None
    available: bool = False

mongodb = MongoDatabase()

async def connect_to_mongo() -> bool:
    """Connect and run the startup handshake.

    Returns whether the directory is usable. A failed handshake leaves the
    application in local-only mode; it never raises.
    """
    mongodb.available = False
    if not settings.DIRECTORY_ENABLED:
        logger.warning("Directory disabled by configuration, running in local-only mode")
        return False

    mongodb.client = AsyncIOMotorClient(
        settings.MONGODB_URL,
        serverSelectionTimeoutMS=settings.DIRECTORY_HANDSHAKE_TIMEOUT_MS,
    )
    mongodb.db = mongodb.client[settings.DATABASE_NAME]

    try:
        await mongodb.client.admin.command("ping")
    except PyMongoError as e:
        logger.warning("Directory handshake failed, running in local-only mode: %s", e)
        return False

    mongodb.available = True
    await create_indexes()
    logger.info("Connected to MongoDB: %s", settings.DATABASE_NAME)
    return True

async def disconnect_from_mongo():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
        logger.info("Disconnected from MongoDB")
    mongodb.available = False

async def create_indexes():
    """Create database indexes (best-effort)."""
    try:
        await mongodb.db["members"].create_index("email")
        await mongodb.db["members"].create_index("registeredAt")
        await mongodb.db["tarot_keys"].create_index([("key", 1), ("email", 1), ("isUsed", 1)])
        await mongodb.db["recipes"].create_index("id")
        await mongodb.db["point_requests"].create_index("requestedAt")
    except PyMongoError as e:
        logger.warning("Index creation skipped: %s", e)

def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    return mongodb.db
