"""
MongoDB-backed storage for server-side sessions.

Each session is one document keyed by the session ID::

    {"_id": sid, "session": {...}, "expires": datetime, "last_modified": datetime}

Expired documents are ignored on read and removed by the TTL index on
``expires`` created in ``ensure_indexes``.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from pymongo.asynchronous.collection import AsyncCollection

from service_hub.core.logging import get_logger
from service_hub.database.connection import get_database

logger = get_logger(__name__)


@dataclass
class StoredSession:
    """Session document as loaded from the store."""

    data: dict[str, Any]
    expires: datetime
    last_modified: datetime


class MongoSessionStore:
    """Session persistence in a MongoDB collection."""

    def __init__(self, collection_name: str = "sessions"):
        self.collection_name = collection_name

    @property
    def collection(self) -> AsyncCollection:
        return get_database()[self.collection_name]

    async def load(self, session_id: str) -> Optional[StoredSession]:
        """
        Load a live session.

        Args:
            session_id: Session identifier from the cookie

        Returns:
            Stored session, or None if unknown or expired
        """
        now = datetime.now(timezone.utc)
        document = await self.collection.find_one(
            {"_id": session_id, "expires": {"$gt": now}}
        )
        if document is None:
            logger.debug("Session not found", session_id=session_id)
            return None

        return StoredSession(
            data=document.get("session") or {},
            expires=document["expires"],
            last_modified=document.get("last_modified") or now,
        )

    async def save(
        self, session_id: str, data: dict[str, Any], expires: datetime
    ) -> None:
        """Insert or replace the session document."""
        await self.collection.update_one(
            {"_id": session_id},
            {
                "$set": {
                    "session": data,
                    "expires": expires,
                    "last_modified": datetime.now(timezone.utc),
                }
            },
            upsert=True,
        )
        logger.debug("Session saved", session_id=session_id)

    async def touch(self, session_id: str, expires: datetime) -> None:
        """Extend the expiry of an unchanged session."""
        await self.collection.update_one(
            {"_id": session_id},
            {"$set": {"expires": expires, "last_modified": datetime.now(timezone.utc)}},
        )
        logger.debug("Session touched", session_id=session_id)

    async def destroy(self, session_id: str) -> None:
        await self.collection.delete_one({"_id": session_id})
        logger.debug("Session destroyed", session_id=session_id)
