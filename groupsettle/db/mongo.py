import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from groupsettle.core.config import settings

logger = logging.getLogger(__name__)

class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URL, tz_aware=True)
    mongodb.db = mongodb.client[settings.DATABASE_NAME]

    # Create indexes
    await create_indexes()
    logger.info("Connected to MongoDB: %s", settings.DATABASE_NAME)

async def close_mongo_connection():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
    logger.info("Disconnected from MongoDB")

async def create_indexes():
    """Create database indexes."""
    # Group membership lookups
    await mongodb.db["groups"].create_index("members.user_id")

    # Expense indexes
    await mongodb.db["expenses"].create_index([("group_id", 1), ("date", -1)])

    # Settlement indexes
    await mongodb.db["settlements"].create_index([("group_id", 1), ("status", 1)])
    await mongodb.db["settlements"].create_index("from_user_id")
    await mongodb.db["settlements"].create_index("to_user_id")
    # Write-time idempotency guard: no two completed records share a key.
    # Multikey, so uniqueness holds across every element of dedupe_keys.
    await mongodb.db["settlements"].create_index(
        "dedupe_keys",
        unique=True,
        partialFilterExpression={"dedupe_keys": {"$type": "string"}},
    )

async def get_database() -> AsyncIOMotorDatabase:
    """Return the active database connection."""
    return mongodb.db
