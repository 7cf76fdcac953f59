"""
Pytest configuration and shared test fixtures.

The application is exercised without MongoDB, Stripe or SES: startup hooks
are patched, repositories are replaced through ``app.dependency_overrides``
and the session store is swapped for an in-memory one.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from datetime import datetime, timezone  # noqa: E402
from typing import Any, Generator, Optional  # noqa: E402
from unittest.mock import AsyncMock, MagicMock, patch  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from service_hub import main  # noqa: E402
from service_hub.api import deps  # noqa: E402
from service_hub.core.security import create_token_pair, hash_password  # noqa: E402
from service_hub.database.session_store import StoredSession  # noqa: E402
from service_hub.main import app  # noqa: E402
from service_hub.services.auth.repository import AdminRepository  # noqa: E402
from service_hub.services.cart.repository import CartRepository  # noqa: E402
from service_hub.services.orders.repository import OrderRepository  # noqa: E402
from service_hub.services.products.repository import ProductRepository  # noqa: E402
from service_hub.services.users.repository import UserRepository  # noqa: E402

ADMIN_PASSWORD = "admin-pass-123"
USER_PASSWORD = "Secure123"

# bcrypt is slow on purpose; hash once per test session.
ADMIN_PASSWORD_HASH = hash_password(ADMIN_PASSWORD)
USER_PASSWORD_HASH = hash_password(USER_PASSWORD)


class InMemorySessionStore:
    """Session store keeping documents in a dict."""

    def __init__(self) -> None:
        self.sessions: dict[str, StoredSession] = {}

    async def load(self, session_id: str) -> Optional[StoredSession]:
        stored = self.sessions.get(session_id)
        if stored is None or stored.expires <= datetime.now(timezone.utc):
            return None
        return StoredSession(dict(stored.data), stored.expires, stored.last_modified)

    async def save(self, session_id: str, data: dict[str, Any], expires: datetime) -> None:
        self.sessions[session_id] = StoredSession(
            dict(data), expires, datetime.now(timezone.utc)
        )

    async def touch(self, session_id: str, expires: datetime) -> None:
        stored = self.sessions.get(session_id)
        if stored is not None:
            stored.expires = expires
            stored.last_modified = datetime.now(timezone.utc)

    async def destroy(self, session_id: str) -> None:
        self.sessions.pop(session_id, None)


@pytest.fixture
def session_store(monkeypatch) -> InMemorySessionStore:
    store = InMemorySessionStore()
    for name in ("load", "save", "touch", "destroy"):
        monkeypatch.setattr(main.session_store, name, getattr(store, name))
    return store


@pytest.fixture
def lifespan_mocks() -> Generator[dict[str, AsyncMock], None, None]:
    """Patch the startup hooks that talk to external services."""
    mocks = {
        "connect": AsyncMock(return_value=MagicMock(name="database")),
        "ensure_indexes": AsyncMock(),
        "verify_email": AsyncMock(return_value=False),
        "close": AsyncMock(),
        "ping": AsyncMock(return_value=True),
    }
    with patch.object(main, "connect_to_database", mocks["connect"]), patch.object(
        main, "ensure_indexes", mocks["ensure_indexes"]
    ), patch.object(main, "verify_email_transport", mocks["verify_email"]), patch.object(
        main, "close_database_connection", mocks["close"]
    ), patch.object(main, "ping_database", mocks["ping"]):
        yield mocks


# ============================================================================
# Repository mocks
# ============================================================================


@pytest.fixture
def product_repo() -> AsyncMock:
    return AsyncMock(spec=ProductRepository)


@pytest.fixture
def user_repo() -> AsyncMock:
    return AsyncMock(spec=UserRepository)


@pytest.fixture
def admin_repo() -> AsyncMock:
    return AsyncMock(spec=AdminRepository)


@pytest.fixture
def cart_repo() -> AsyncMock:
    repo = AsyncMock(spec=CartRepository)
    repo.get_items.return_value = []
    return repo


@pytest.fixture
def order_repo() -> AsyncMock:
    return AsyncMock(spec=OrderRepository)


@pytest.fixture
def test_client(
    session_store,
    lifespan_mocks,
    product_repo,
    user_repo,
    admin_repo,
    cart_repo,
    order_repo,
) -> Generator[TestClient, None, None]:
    """
    Synchronous test client with every repository replaced by a mock.

    Yields:
        TestClient: Client bound to the FastAPI app with lifespan run
    """
    app.dependency_overrides.update(
        {
            deps.get_product_repository: lambda: product_repo,
            deps.get_user_repository: lambda: user_repo,
            deps.get_admin_repository: lambda: admin_repo,
            deps.get_cart_repository: lambda: cart_repo,
            deps.get_order_repository: lambda: order_repo,
        }
    )
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()


# ============================================================================
# Sample data
# ============================================================================


@pytest.fixture
def sample_admin() -> dict[str, Any]:
    return {"id": "a" * 24, "username": "admin", "last_login_at": None}


@pytest.fixture
def sample_user() -> dict[str, Any]:
    return {
        "id": "b" * 24,
        "name": "Asha Verma",
        "email": "asha@example.com",
        "phone": None,
        "is_active": True,
        "created_at": datetime(2026, 1, 5, tzinfo=timezone.utc),
        "last_login_at": None,
    }


@pytest.fixture
def sample_product() -> dict[str, Any]:
    return {
        "id": "c" * 24,
        "name": "AC Servicing",
        "description": "Split AC service",
        "price": 799.0,
        "category": "Appliance Repair",
        "image_url": None,
        "stock": 5,
        "is_active": True,
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }


@pytest.fixture
def sample_order(sample_user, sample_product) -> dict[str, Any]:
    return {
        "id": "d" * 24,
        "user_id": sample_user["id"],
        "items": [
            {
                "product_id": sample_product["id"],
                "name": sample_product["name"],
                "price": sample_product["price"],
                "quantity": 2,
            }
        ],
        "total_amount": 1598.0,
        "currency": "inr",
        "status": "pending",
        "payment_intent_id": "pi_123",
        "created_at": datetime(2026, 2, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 2, 1, tzinfo=timezone.utc),
    }


@pytest.fixture
def admin_client(test_client, admin_repo, sample_admin) -> TestClient:
    """Test client carrying a signed-in admin session."""
    admin_repo.get_credentials.return_value = {**sample_admin, "password_hash": ADMIN_PASSWORD_HASH}
    admin_repo.get_by_id.return_value = sample_admin

    response = test_client.post(
        "/api/auth/login",
        json={"username": "admin", "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200
    return test_client


@pytest.fixture
def user_credentials(user_repo, sample_user) -> dict[str, Any]:
    user_repo.get_credentials.return_value = {**sample_user, "password_hash": USER_PASSWORD_HASH}
    return {"email": sample_user["email"], "password": USER_PASSWORD}


@pytest.fixture
def auth_headers(user_repo, sample_user) -> dict[str, str]:
    """Bearer header for ``sample_user``."""
    user_repo.get_by_id.return_value = sample_user
    tokens = create_token_pair(sample_user["id"], sample_user["email"])
    return {"Authorization": f"Bearer {tokens['access_token']}"}
