"""
MongoDB connection management with the pymongo async client.

The client is created once during application startup, verified with a
``ping`` and kept in module state. Request handlers obtain the database
handle through ``get_database()``; FastAPI dependencies in
``service_hub.api.deps`` wrap it into repositories.
"""

from typing import Optional

from pymongo import ASCENDING, DESCENDING, AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from service_hub.core.config import get_settings
from service_hub.core.logging import get_logger, log_performance

logger = get_logger(__name__)

_client: Optional[AsyncMongoClient] = None
_database: Optional[AsyncDatabase] = None


class DatabaseConnectionError(Exception):
    """Raised when MongoDB cannot be reached at startup."""

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.context = context


async def connect_to_database() -> AsyncDatabase:
    """
    Create the MongoDB client and verify connectivity.

    Returns:
        Handle of the configured database

    Raises:
        DatabaseConnectionError: If the server does not answer a ping
    """
    global _client, _database

    settings = get_settings()
    client: AsyncMongoClient = AsyncMongoClient(
        settings.mongodb_uri,
        serverSelectionTimeoutMS=settings.mongodb_server_selection_timeout_ms,
        appname=settings.app_name,
        tz_aware=True,
    )

    try:
        with log_performance(logger, "mongodb_connect"):
            await client.admin.command("ping")
    except PyMongoError as e:
        await client.close()
        raise DatabaseConnectionError(
            f"Could not connect to MongoDB: {e}",
            database=settings.database_name,
        ) from e

    _client = client
    _database = client[settings.database_name]

    logger.info(
        "MongoDB connected successfully",
        database=settings.database_name,
    )
    return _database


def get_database() -> AsyncDatabase:
    """
    Return the connected database handle.

    Raises:
        RuntimeError: If called before ``connect_to_database``
    """
    if _database is None:
        raise RuntimeError("Database is not connected")
    return _database


async def ping_database() -> bool:
    """Check that the server still answers; used by the readiness probe."""
    if _client is None:
        return False
    try:
        await _client.admin.command("ping")
        return True
    except PyMongoError as e:
        logger.warning(
            "MongoDB ping failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        return False


async def ensure_indexes(database: AsyncDatabase, session_collection: str) -> None:
    """
    Create the indexes the repositories rely on.

    Index creation is idempotent, so this runs on every startup.

    Args:
        database: Connected database handle
        session_collection: Name of the collection backing sessions
    """
    await database.users.create_index("email", unique=True)
    await database.admins.create_index("username", unique=True)
    await database.carts.create_index("user_id", unique=True)
    await database.products.create_index([("category", ASCENDING), ("is_active", ASCENDING)])
    await database.orders.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    await database.orders.create_index("payment_intent_id", sparse=True)
    # Expired sessions are removed by MongoDB's TTL monitor.
    await database[session_collection].create_index("expires", expireAfterSeconds=0)

    logger.info("MongoDB indexes ensured")


async def close_database_connection() -> None:
    """Close the client; safe to call when never connected."""
    global _client, _database

    if _client is None:
        return

    try:
        await _client.close()
        logger.info("MongoDB connection closed")
    finally:
        _client = None
        _database = None
