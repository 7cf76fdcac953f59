"""
Customer account persistence in the ``users`` collection.

Emails are stored lower-cased and are unique (enforced by index).
"""

from typing import Any, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from service_hub.core.logging import get_logger
from service_hub.database.documents import serialize_document, to_object_id, utc_now

logger = get_logger(__name__)

# Fields never returned outside the repository.
_PRIVATE_PROJECTION = {"password_hash": 0}


class DuplicateEmailError(Exception):
    """Raised when registering an email that already has an account."""

    def __init__(self, email: str):
        super().__init__(f"An account with email {email} already exists")
        self.email = email


class UserRepository:
    """Data access for customer accounts."""

    def __init__(self, database: AsyncDatabase):
        self.collection = database.users

    async def get_by_id(self, user_id: str) -> Optional[dict[str, Any]]:
        object_id = to_object_id(user_id)
        if object_id is None:
            return None
        return serialize_document(
            await self.collection.find_one({"_id": object_id}, _PRIVATE_PROJECTION)
        )

    async def get_credentials(self, email: str) -> Optional[dict[str, Any]]:
        """Return the account including its password hash, for login only."""
        return serialize_document(await self.collection.find_one({"email": email.lower()}))

    async def create(
        self,
        name: str,
        email: str,
        password_hash: str,
        phone: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Create a customer account.

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        document = {
            "name": name,
            "email": email.lower(),
            "password_hash": password_hash,
            "phone": phone,
            "is_active": True,
            "created_at": utc_now(),
            "last_login_at": None,
        }
        try:
            result = await self.collection.insert_one(document)
        except DuplicateKeyError as e:
            raise DuplicateEmailError(email) from e

        document["_id"] = result.inserted_id
        document.pop("password_hash")
        logger.info("User registered", user_id=str(result.inserted_id))
        return serialize_document(document)

    async def update_profile(
        self, user_id: str, changes: dict[str, Any]
    ) -> Optional[dict[str, Any]]:
        object_id = to_object_id(user_id)
        if object_id is None:
            return None
        document = await self.collection.find_one_and_update(
            {"_id": object_id},
            {"$set": changes},
            projection=_PRIVATE_PROJECTION,
            return_document=ReturnDocument.AFTER,
        )
        return serialize_document(document)

    async def set_active(self, user_id: str, is_active: bool) -> Optional[dict[str, Any]]:
        document = await self.update_profile(user_id, {"is_active": is_active})
        if document is not None:
            logger.info("User status changed", user_id=user_id, is_active=is_active)
        return document

    async def record_login(self, user_id: str) -> None:
        object_id = to_object_id(user_id)
        if object_id is not None:
            await self.collection.update_one(
                {"_id": object_id}, {"$set": {"last_login_at": utc_now()}}
            )

    async def list_users(
        self, skip: int = 0, limit: int = 20
    ) -> tuple[list[dict[str, Any]], int]:
        total = await self.collection.count_documents({})
        cursor = (
            self.collection.find({}, _PRIVATE_PROJECTION)
            .sort("created_at", DESCENDING)
            .skip(skip)
            .limit(limit)
        )
        documents = await cursor.to_list(length=limit)
        return [serialize_document(doc) for doc in documents], total

    async def count(self) -> int:
        return await self.collection.count_documents({})
