"""Persistence of signed-in customers' carts in the ``carts`` collection."""

from typing import Any

from pymongo.asynchronous.database import AsyncDatabase

from service_hub.core.logging import get_logger
from service_hub.database.documents import utc_now

logger = get_logger(__name__)


class CartRepository:
    """
    One cart document per customer::

        {"user_id": str, "items": [{"product_id": str, "quantity": int}], "updated_at": datetime}
    """

    def __init__(self, database: AsyncDatabase):
        self.collection = database.carts

    async def get_items(self, user_id: str) -> list[dict[str, Any]]:
        document = await self.collection.find_one({"user_id": user_id})
        if document is None:
            return []
        return list(document.get("items", []))

    async def save_items(self, user_id: str, items: list[dict[str, Any]]) -> None:
        await self.collection.update_one(
            {"user_id": user_id},
            {"$set": {"items": items, "updated_at": utc_now()}},
            upsert=True,
        )
        logger.debug("Cart saved", user_id=user_id, item_count=len(items))

    async def clear(self, user_id: str) -> None:
        await self.save_items(user_id, [])
