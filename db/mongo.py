from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection

from loguru import logger

USERS_COLLECTION = "users"


def build_client(mongo_uri: str) -> AsyncIOMotorClient:
    # tz_aware keeps createdAt/updatedAt as UTC-aware datetimes on read
    return AsyncIOMotorClient(mongo_uri, tz_aware=True)


def get_users_collection(client: AsyncIOMotorClient, db_name: str) -> AsyncIOMotorCollection:
    return client[db_name][USERS_COLLECTION]


async def connect_to_mongo(mongo_uri: str) -> AsyncIOMotorClient:
    """Create the client and make sure the server answers; raise if it doesn't."""
    client = build_client(mongo_uri)
    try:
        await client.admin.command("ping")
    except Exception:
        client.close()
        raise
    logger.info("Connected to MongoDB successfully")
    return client
