"""
Order persistence in the ``orders`` collection.

Orders snapshot product name and price at checkout so later catalogue
edits do not change what the customer paid for. Status changes go
through ``transition`` which only applies when the current status is
one of the expected ones, making concurrent webhook and confirm calls
safe.
"""

from typing import Any, Iterable, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from service_hub.core.logging import get_logger
from service_hub.database.documents import serialize_document, to_object_id, utc_now
from service_hub.services.orders.enums import OrderStatus

logger = get_logger(__name__)


class OrderRepository:
    """Data access for orders."""

    def __init__(self, database: AsyncDatabase):
        self.collection = database.orders

    async def create(
        self,
        user_id: str,
        items: list[dict[str, Any]],
        total_amount: float,
        currency: str,
    ) -> dict[str, Any]:
        now = utc_now()
        document = {
            "user_id": user_id,
            "items": items,
            "total_amount": total_amount,
            "currency": currency,
            "status": OrderStatus.PENDING.value,
            "payment_intent_id": None,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.collection.insert_one(document)
        document["_id"] = result.inserted_id

        logger.info(
            "Order created",
            order_id=str(result.inserted_id),
            user_id=user_id,
            total_amount=total_amount,
        )
        return serialize_document(document)

    async def get(self, order_id: str) -> Optional[dict[str, Any]]:
        object_id = to_object_id(order_id)
        if object_id is None:
            return None
        return serialize_document(await self.collection.find_one({"_id": object_id}))

    async def get_for_user(self, order_id: str, user_id: str) -> Optional[dict[str, Any]]:
        object_id = to_object_id(order_id)
        if object_id is None:
            return None
        return serialize_document(
            await self.collection.find_one({"_id": object_id, "user_id": user_id})
        )

    async def get_by_payment_intent(self, payment_intent_id: str) -> Optional[dict[str, Any]]:
        return serialize_document(
            await self.collection.find_one({"payment_intent_id": payment_intent_id})
        )

    async def set_payment_intent(self, order_id: str, payment_intent_id: str) -> None:
        await self.collection.update_one(
            {"_id": to_object_id(order_id)},
            {"$set": {"payment_intent_id": payment_intent_id, "updated_at": utc_now()}},
        )

    async def transition(
        self,
        order_id: str,
        from_statuses: Iterable[OrderStatus],
        to_status: OrderStatus,
    ) -> Optional[dict[str, Any]]:
        """
        Atomically change status if the order is in one of ``from_statuses``.

        Returns:
            Updated order, or None if the order is missing or in another status
        """
        object_id = to_object_id(order_id)
        if object_id is None:
            return None
        document = await self.collection.find_one_and_update(
            {
                "_id": object_id,
                "status": {"$in": [status.value for status in from_statuses]},
            },
            {"$set": {"status": to_status.value, "updated_at": utc_now()}},
            return_document=ReturnDocument.AFTER,
        )
        if document is not None:
            logger.info("Order status changed", order_id=order_id, status=to_status.value)
        return serialize_document(document)

    async def list_for_user(self, user_id: str, limit: int = 50) -> list[dict[str, Any]]:
        cursor = (
            self.collection.find({"user_id": user_id})
            .sort("created_at", DESCENDING)
            .limit(limit)
        )
        return [serialize_document(doc) for doc in await cursor.to_list(length=limit)]

    async def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[dict[str, Any]], int]:
        query: dict[str, Any] = {"status": status.value} if status else {}
        total = await self.collection.count_documents(query)
        cursor = (
            self.collection.find(query)
            .sort("created_at", DESCENDING)
            .skip(skip)
            .limit(limit)
        )
        documents = await cursor.to_list(length=limit)
        return [serialize_document(doc) for doc in documents], total

    async def count(self, statuses: Optional[Iterable[OrderStatus]] = None) -> int:
        query: dict[str, Any] = {}
        if statuses is not None:
            query["status"] = {"$in": [status.value for status in statuses]}
        return await self.collection.count_documents(query)

    async def count_by_status(self) -> dict[str, int]:
        cursor = await self.collection.aggregate(
            [{"$group": {"_id": "$status", "count": {"$sum": 1}}}]
        )
        counts = {status.value: 0 for status in OrderStatus}
        async for row in cursor:
            counts[row["_id"]] = row["count"]
        return counts

    async def revenue(self, statuses: Iterable[OrderStatus]) -> float:
        cursor = await self.collection.aggregate(
            [
                {"$match": {"status": {"$in": [status.value for status in statuses]}}},
                {"$group": {"_id": None, "total": {"$sum": "$total_amount"}}},
            ]
        )
        rows = await cursor.to_list(length=1)
        return round(rows[0]["total"], 2) if rows else 0.0

    async def recent(self, limit: int = 5) -> list[dict[str, Any]]:
        cursor = self.collection.find({}).sort("created_at", DESCENDING).limit(limit)
        return [serialize_document(doc) for doc in await cursor.to_list(length=limit)]
