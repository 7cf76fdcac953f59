"""
Tests for the MongoDB data layer.

Collections are replaced with mocks so the exact filters and update
documents sent to MongoDB can be asserted without a running server.
"""

import re
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument

from service_hub.database.connection import ensure_indexes
from service_hub.database.session_store import MongoSessionStore, StoredSession
from service_hub.services.orders.enums import OrderStatus
from service_hub.services.orders.repository import OrderRepository
from service_hub.services.products.repository import ProductRepository


# ============================================================================
# Test Fixtures
# ============================================================================


def make_collection() -> MagicMock:
    """
    Create a mock async collection.

    ``find`` stays synchronous and returns a chainable cursor, as it does
    in pymongo's async API.
    """
    collection = MagicMock()
    for name in (
        "find_one",
        "find_one_and_update",
        "update_one",
        "delete_one",
        "insert_one",
        "count_documents",
        "distinct",
        "create_index",
    ):
        setattr(collection, name, AsyncMock())

    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[])
    collection.find.return_value = cursor
    return collection


class FakeDatabase:
    """Database handle handing out one mock collection per name."""

    def __init__(self):
        self.collections: dict[str, MagicMock] = defaultdict(make_collection)

    def __getattr__(self, name: str) -> MagicMock:
        return self.collections[name]

    def __getitem__(self, name: str) -> MagicMock:
        return self.collections[name]


@pytest.fixture
def database() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def product_id() -> ObjectId:
    return ObjectId()


# ============================================================================
# Session store
# ============================================================================


class TestMongoSessionStore:
    @pytest.fixture
    def store(self, database):
        with patch(
            "service_hub.database.session_store.get_database", return_value=database
        ):
            yield MongoSessionStore("web_sessions")

    async def test_load_only_matches_unexpired(self, store, database):
        expires = datetime.now(timezone.utc) + timedelta(days=1)
        modified = datetime.now(timezone.utc) - timedelta(hours=1)
        collection = database.web_sessions
        collection.find_one.return_value = {
            "_id": "sid-1",
            "session": {"admin_id": "a1"},
            "expires": expires,
            "last_modified": modified,
        }

        before = datetime.now(timezone.utc)
        stored = await store.load("sid-1")

        assert stored == StoredSession({"admin_id": "a1"}, expires, modified)
        query = collection.find_one.await_args.args[0]
        assert query["_id"] == "sid-1"
        assert query["expires"]["$gt"] >= before

    async def test_load_unknown_or_expired(self, store, database):
        database.web_sessions.find_one.return_value = None
        assert await store.load("sid-1") is None

    async def test_save_upserts(self, store, database):
        expires = datetime.now(timezone.utc) + timedelta(days=7)

        await store.save("sid-1", {"cart": []}, expires)

        filter_, update = database.web_sessions.update_one.await_args.args
        assert filter_ == {"_id": "sid-1"}
        assert update["$set"]["session"] == {"cart": []}
        assert update["$set"]["expires"] == expires
        assert update["$set"]["last_modified"].tzinfo is not None
        assert database.web_sessions.update_one.await_args.kwargs == {"upsert": True}

    async def test_touch_only_updates_expiry(self, store, database):
        expires = datetime.now(timezone.utc) + timedelta(days=7)

        await store.touch("sid-1", expires)

        filter_, update = database.web_sessions.update_one.await_args.args
        assert filter_ == {"_id": "sid-1"}
        assert set(update["$set"]) == {"expires", "last_modified"}
        assert update["$set"]["expires"] == expires
        # touching never resurrects a deleted session
        assert "upsert" not in database.web_sessions.update_one.await_args.kwargs

    async def test_destroy(self, store, database):
        await store.destroy("sid-1")
        database.web_sessions.delete_one.assert_awaited_once_with({"_id": "sid-1"})


# ============================================================================
# Indexes
# ============================================================================


class TestEnsureIndexes:
    async def test_creates_session_ttl_index(self, database):
        await ensure_indexes(database, "web_sessions")

        database.web_sessions.create_index.assert_awaited_once_with(
            "expires", expireAfterSeconds=0
        )

    async def test_creates_unique_indexes(self, database):
        await ensure_indexes(database, "sessions")

        database.users.create_index.assert_awaited_once_with("email", unique=True)
        database.admins.create_index.assert_awaited_once_with("username", unique=True)
        database.carts.create_index.assert_awaited_once_with("user_id", unique=True)


# ============================================================================
# Products
# ============================================================================


class TestProductFilter:
    def test_defaults_to_active_products(self):
        assert ProductRepository._build_filter() == {"is_active": True}

    def test_include_inactive(self):
        assert ProductRepository._build_filter(include_inactive=True) == {}

    def test_search_is_escaped_and_case_insensitive(self):
        query = ProductRepository._build_filter(search="  a+b (c)  ")

        pattern = re.escape("a+b (c)")
        assert query["$or"] == [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]
        assert re.search(pattern, "Repair A+B (C) kit", re.IGNORECASE)
        assert not re.search(pattern, "aab c", re.IGNORECASE)

    def test_price_range(self):
        query = ProductRepository._build_filter(category="Plumbing", min_price=100, max_price=500)

        assert query == {
            "is_active": True,
            "category": "Plumbing",
            "price": {"$gte": 100, "$lte": 500},
        }

    def test_min_price_zero_is_kept(self):
        query = ProductRepository._build_filter(min_price=0)
        assert query["price"] == {"$gte": 0}


class TestProductRepository:
    async def test_list_products_pages_newest_first(self, database, product_id):
        collection = database.products
        collection.count_documents.return_value = 42
        collection.find.return_value.to_list.return_value = [{"_id": product_id, "name": "AC"}]

        items, total = await ProductRepository(database).list_products(
            skip=20, limit=10, category="Repair"
        )

        assert total == 42
        assert items == [{"id": str(product_id), "name": "AC"}]
        query = {"is_active": True, "category": "Repair"}
        collection.count_documents.assert_awaited_once_with(query)
        collection.find.assert_called_once_with(query)
        cursor = collection.find.return_value
        cursor.sort.assert_called_once_with("created_at", DESCENDING)
        cursor.skip.assert_called_once_with(20)
        cursor.limit.assert_called_once_with(10)

    async def test_get_with_invalid_id(self, database):
        assert await ProductRepository(database).get("not-an-id") is None
        database.products.find_one.assert_not_awaited()

    async def test_decrement_stock_guards_against_negative(self, database, product_id):
        collection = database.products
        collection.update_one.return_value = MagicMock(modified_count=1)

        await ProductRepository(database).decrement_stock(
            [{"product_id": str(product_id), "quantity": 3}]
        )

        collection.update_one.assert_awaited_once()
        filter_, update = collection.update_one.await_args.args
        assert filter_ == {"_id": product_id, "stock": {"$gte": 3}}
        assert update["$inc"] == {"stock": -3}

    async def test_decrement_stock_shortfall_zeroes_stock(self, database, product_id):
        collection = database.products
        collection.update_one.return_value = MagicMock(modified_count=0)

        await ProductRepository(database).decrement_stock(
            [{"product_id": str(product_id), "quantity": 3}]
        )

        assert collection.update_one.await_count == 2
        assert collection.update_one.await_args_list[1].args == (
            {"_id": product_id},
            {"$set": {"stock": 0}},
        )

    async def test_decrement_stock_skips_invalid_ids(self, database):
        await ProductRepository(database).decrement_stock([{"product_id": "bad", "quantity": 1}])
        database.products.update_one.assert_not_awaited()


# ============================================================================
# Orders
# ============================================================================


class TestOrderTransition:
    async def test_conditional_update(self, database):
        order_id = ObjectId()
        collection = database.orders
        collection.find_one_and_update.return_value = {
            "_id": order_id,
            "status": "paid",
        }

        order = await OrderRepository(database).transition(
            str(order_id), [OrderStatus.PENDING, OrderStatus.FAILED], OrderStatus.PAID
        )

        assert order == {"id": str(order_id), "status": "paid"}
        filter_, update = collection.find_one_and_update.await_args.args
        assert filter_ == {"_id": order_id, "status": {"$in": ["pending", "failed"]}}
        assert update["$set"]["status"] == "paid"
        assert "updated_at" in update["$set"]
        assert collection.find_one_and_update.await_args.kwargs == {
            "return_document": ReturnDocument.AFTER
        }

    async def test_status_mismatch_returns_none(self, database):
        database.orders.find_one_and_update.return_value = None

        order = await OrderRepository(database).transition(
            str(ObjectId()), [OrderStatus.PENDING], OrderStatus.FAILED
        )

        assert order is None

    async def test_invalid_id_skips_query(self, database):
        order = await OrderRepository(database).transition(
            "bad", [OrderStatus.PENDING], OrderStatus.PAID
        )

        assert order is None
        database.orders.find_one_and_update.assert_not_awaited()
