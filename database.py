"""Database connection and collection handles."""
from dataclasses import dataclass
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from config import Config, logger

KNOWLEDGE_COLLECTION = "knowledge_items"
QUERY_LOGS_COLLECTION = "query_logs"
API_USAGE_COLLECTION = "api_usage"


@dataclass
class Collections:
    """The collections the service reads and writes."""
    knowledge: AsyncIOMotorCollection
    query_logs: AsyncIOMotorCollection
    api_usage: AsyncIOMotorCollection


def create_client(uri: Optional[str] = None) -> AsyncIOMotorClient:
    """Create the MongoDB client. Called once at process start."""
    return AsyncIOMotorClient(
        uri or Config.MONGODB_URI,
        serverSelectionTimeoutMS=int(Config.STORAGE_TIMEOUT_SECONDS * 1000),
    )


def get_collections(client: AsyncIOMotorClient, db_name: Optional[str] = None) -> Collections:
    """Resolve the collection handles on the configured database."""
    db = client[db_name or Config.MONGODB_DB]
    return Collections(
        knowledge=db[KNOWLEDGE_COLLECTION],
        query_logs=db[QUERY_LOGS_COLLECTION],
        api_usage=db[API_USAGE_COLLECTION],
    )


async def ping(client: AsyncIOMotorClient) -> bool:
    """Check the server is reachable."""
    try:
        await client.admin.command("ping")
        logger.info("Connected to MongoDB successfully")
        return True
    except PyMongoError as e:
        logger.error(f"Failed to connect to MongoDB: {e}")
        return False
