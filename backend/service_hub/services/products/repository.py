"""
Product catalogue persistence in the ``products`` collection.

Products are never hard-deleted: removal flips ``is_active`` so that
existing orders keep pointing at a real document.
"""

import re
from typing import Any, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from service_hub.core.logging import get_logger
from service_hub.database.documents import serialize_document, to_object_id, utc_now

logger = get_logger(__name__)


class ProductRepository:
    """Data access for products."""

    def __init__(self, database: AsyncDatabase):
        self.collection = database.products

    @staticmethod
    def _build_filter(
        category: Optional[str] = None,
        search: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        include_inactive: bool = False,
    ) -> dict[str, Any]:
        query: dict[str, Any] = {}
        if not include_inactive:
            query["is_active"] = True
        if category:
            query["category"] = category
        if search:
            pattern = re.escape(search.strip())
            query["$or"] = [
                {"name": {"$regex": pattern, "$options": "i"}},
                {"description": {"$regex": pattern, "$options": "i"}},
            ]
        price: dict[str, float] = {}
        if min_price is not None:
            price["$gte"] = min_price
        if max_price is not None:
            price["$lte"] = max_price
        if price:
            query["price"] = price
        return query

    async def list_products(
        self,
        skip: int = 0,
        limit: int = 20,
        category: Optional[str] = None,
        search: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        include_inactive: bool = False,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        List products matching the filters, newest first.

        Returns:
            Tuple of (page of products, total matching count)
        """
        query = self._build_filter(category, search, min_price, max_price, include_inactive)
        total = await self.collection.count_documents(query)
        cursor = (
            self.collection.find(query)
            .sort("created_at", DESCENDING)
            .skip(skip)
            .limit(limit)
        )
        documents = await cursor.to_list(length=limit)
        return [serialize_document(doc) for doc in documents], total

    async def get(
        self, product_id: str, include_inactive: bool = False
    ) -> Optional[dict[str, Any]]:
        object_id = to_object_id(product_id)
        if object_id is None:
            return None
        query: dict[str, Any] = {"_id": object_id}
        if not include_inactive:
            query["is_active"] = True
        return serialize_document(await self.collection.find_one(query))

    async def get_many(self, product_ids: list[str]) -> dict[str, dict[str, Any]]:
        """Fetch active products by ID, keyed by their string ID."""
        object_ids = [oid for oid in map(to_object_id, product_ids) if oid is not None]
        if not object_ids:
            return {}
        cursor = self.collection.find({"_id": {"$in": object_ids}, "is_active": True})
        documents = await cursor.to_list(length=len(object_ids))
        return {str(doc["_id"]): serialize_document(doc) for doc in documents}

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        now = utc_now()
        document = {**data, "is_active": True, "created_at": now, "updated_at": now}
        result = await self.collection.insert_one(document)
        document["_id"] = result.inserted_id

        logger.info("Product created", product_id=str(result.inserted_id), name=data.get("name"))
        return serialize_document(document)

    async def update(self, product_id: str, data: dict[str, Any]) -> Optional[dict[str, Any]]:
        object_id = to_object_id(product_id)
        if object_id is None:
            return None
        document = await self.collection.find_one_and_update(
            {"_id": object_id},
            {"$set": {**data, "updated_at": utc_now()}},
            return_document=ReturnDocument.AFTER,
        )
        if document is not None:
            logger.info("Product updated", product_id=product_id, fields=sorted(data))
        return serialize_document(document)

    async def deactivate(self, product_id: str) -> bool:
        object_id = to_object_id(product_id)
        if object_id is None:
            return False
        result = await self.collection.update_one(
            {"_id": object_id, "is_active": True},
            {"$set": {"is_active": False, "updated_at": utc_now()}},
        )
        if result.modified_count:
            logger.info("Product deactivated", product_id=product_id)
        return result.modified_count == 1

    async def categories(self) -> list[str]:
        values = await self.collection.distinct("category", {"is_active": True})
        return sorted(value for value in values if value)

    async def decrement_stock(self, items: list[dict[str, Any]]) -> None:
        """
        Take ordered quantities out of stock.

        Stock never goes below zero; a shortfall is logged rather than
        failing the already paid order.
        """
        for item in items:
            object_id = to_object_id(item["product_id"])
            if object_id is None:
                continue
            result = await self.collection.update_one(
                {"_id": object_id, "stock": {"$gte": item["quantity"]}},
                {"$inc": {"stock": -item["quantity"]}, "$set": {"updated_at": utc_now()}},
            )
            if result.modified_count == 0:
                await self.collection.update_one({"_id": object_id}, {"$set": {"stock": 0}})
                logger.warning(
                    "Stock shortfall on paid order",
                    product_id=item["product_id"],
                    quantity=item["quantity"],
                )

    async def count(self, active_only: bool = True) -> int:
        return await self.collection.count_documents({"is_active": True} if active_only else {})

