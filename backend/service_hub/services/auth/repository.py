"""Admin account persistence in the ``admins`` collection."""

from typing import Any, Optional

from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from service_hub.core.logging import get_logger
from service_hub.core.security import hash_password
from service_hub.database.documents import serialize_document, to_object_id, utc_now

logger = get_logger(__name__)


class AdminRepository:
    """Data access for back-office administrators."""

    def __init__(self, database: AsyncDatabase):
        self.collection = database.admins

    async def get_by_id(self, admin_id: str) -> Optional[dict[str, Any]]:
        object_id = to_object_id(admin_id)
        if object_id is None:
            return None
        return serialize_document(
            await self.collection.find_one({"_id": object_id}, {"password_hash": 0})
        )

    async def get_credentials(self, username: str) -> Optional[dict[str, Any]]:
        return serialize_document(await self.collection.find_one({"username": username}))

    async def record_login(self, admin_id: str) -> None:
        object_id = to_object_id(admin_id)
        if object_id is not None:
            await self.collection.update_one(
                {"_id": object_id}, {"$set": {"last_login_at": utc_now()}}
            )

    async def ensure_admin(self, username: str, password: str) -> bool:
        """
        Create the bootstrap admin if it does not exist yet.

        An existing account is left untouched, including its password.

        Returns:
            True if an account was created
        """
        if await self.collection.find_one({"username": username}, {"_id": 1}):
            return False

        try:
            await self.collection.insert_one(
                {
                    "username": username,
                    "password_hash": hash_password(password),
                    "created_at": utc_now(),
                    "last_login_at": None,
                }
            )
        except DuplicateKeyError:
            # Another worker created it first.
            return False

        logger.info("Bootstrap admin created", username=username)
        return True
