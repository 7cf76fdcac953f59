"""
FastAPI dependencies for data access and authentication.

Customers authenticate with a Bearer JWT; admins with the server-side
session (``admin_id``) set by ``POST /api/auth/login``.
"""

from typing import Annotated, Any, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pymongo.asynchronous.database import AsyncDatabase

from service_hub.core.config import get_settings
from service_hub.core.logging import get_logger, set_user_id
from service_hub.core.security import ACCESS_TOKEN_TYPE, TokenError, decode_token, verify_token_type
from service_hub.database.connection import get_database
from service_hub.services.auth.repository import AdminRepository
from service_hub.services.auth.service import AuthService
from service_hub.services.cart.repository import CartRepository
from service_hub.services.cart.service import CartItems, CartService
from service_hub.services.notifications.email import get_email_transport
from service_hub.services.orders.repository import OrderRepository
from service_hub.services.payments.service import PaymentService
from service_hub.services.payments.stripe_client import get_stripe_client
from service_hub.services.products.repository import ProductRepository
from service_hub.services.stats.service import StatsService
from service_hub.services.users.repository import UserRepository

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)

SESSION_CART_KEY = "cart"


def get_db() -> AsyncDatabase:
    return get_database()


DatabaseDep = Annotated[AsyncDatabase, Depends(get_db)]


# ---------------------------------------------------------------------------
# Repositories and services
# ---------------------------------------------------------------------------


def get_product_repository(db: DatabaseDep) -> ProductRepository:
    return ProductRepository(db)


def get_user_repository(db: DatabaseDep) -> UserRepository:
    return UserRepository(db)


def get_admin_repository(db: DatabaseDep) -> AdminRepository:
    return AdminRepository(db)


def get_cart_repository(db: DatabaseDep) -> CartRepository:
    return CartRepository(db)


def get_order_repository(db: DatabaseDep) -> OrderRepository:
    return OrderRepository(db)


ProductRepoDep = Annotated[ProductRepository, Depends(get_product_repository)]
UserRepoDep = Annotated[UserRepository, Depends(get_user_repository)]
AdminRepoDep = Annotated[AdminRepository, Depends(get_admin_repository)]
CartRepoDep = Annotated[CartRepository, Depends(get_cart_repository)]
OrderRepoDep = Annotated[OrderRepository, Depends(get_order_repository)]


def get_auth_service(users: UserRepoDep, admins: AdminRepoDep) -> AuthService:
    return AuthService(users, admins)


def get_cart_service(products: ProductRepoDep) -> CartService:
    return CartService(products)


def get_payment_service(
    orders: OrderRepoDep,
    products: ProductRepoDep,
    carts: CartRepoDep,
    users: UserRepoDep,
) -> PaymentService:
    return PaymentService(
        orders=orders,
        products=products,
        carts=carts,
        users=users,
        stripe_client=get_stripe_client(),
        email_transport=get_email_transport(),
        currency=get_settings().payment_currency,
    )


def get_stats_service(
    products: ProductRepoDep,
    users: UserRepoDep,
    orders: OrderRepoDep,
) -> StatsService:
    return StatsService(products, users, orders)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


async def get_optional_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    users: UserRepoDep,
) -> Optional[dict[str, Any]]:
    """
    Resolve the Bearer token to an active customer, if one was sent.

    Raises:
        HTTPException: 401 if a token was sent but is invalid or stale,
            403 if the account is inactive
    """
    if credentials is None:
        return None

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "INVALID_TOKEN", "message": "Could not validate credentials"},
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_token(credentials.credentials)
    except TokenError as e:
        logger.warning("Authentication failed", code=e.code)
        raise credentials_exception from e

    if not verify_token_type(payload, ACCESS_TOKEN_TYPE) or not payload.get("sub"):
        raise credentials_exception

    user = await users.get_by_id(payload["sub"])
    if user is None:
        logger.warning("Authentication failed: user not found", user_id=payload["sub"])
        raise credentials_exception

    if not user.get("is_active", True):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "ACCOUNT_INACTIVE", "message": "Account is inactive"},
        )

    set_user_id(user["id"])
    return user


async def get_current_user(
    user: Annotated[Optional[dict[str, Any]], Depends(get_optional_user)],
) -> dict[str, Any]:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "NOT_AUTHENTICATED", "message": "Authentication required"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_admin(request: Request, admins: AdminRepoDep) -> dict[str, Any]:
    """
    Resolve the admin signed in on this session.

    Raises:
        HTTPException: 401 if no admin is signed in
    """
    admin_id = request.session.get("admin_id")
    admin = await admins.get_by_id(admin_id) if admin_id else None
    if admin is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "ADMIN_AUTH_REQUIRED", "message": "Admin login required"},
        )
    return admin


CurrentUser = Annotated[dict[str, Any], Depends(get_current_user)]
OptionalUser = Annotated[Optional[dict[str, Any]], Depends(get_optional_user)]
CurrentAdmin = Annotated[dict[str, Any], Depends(get_current_admin)]


# ---------------------------------------------------------------------------
# Cart storage
# ---------------------------------------------------------------------------


class CartStore:
    """Loads and saves the caller's cart lines: session for guests, database for customers."""

    def __init__(
        self,
        session: dict[str, Any],
        repository: CartRepository,
        user: Optional[dict[str, Any]],
    ):
        self.session = session
        self.repository = repository
        self.user = user

    async def load(self) -> CartItems:
        if self.user is not None:
            return await self.repository.get_items(self.user["id"])
        return [dict(line) for line in self.session.get(SESSION_CART_KEY, [])]

    async def save(self, items: CartItems) -> None:
        if self.user is not None:
            await self.repository.save_items(self.user["id"], items)
        elif items:
            self.session[SESSION_CART_KEY] = items
        else:
            self.session.pop(SESSION_CART_KEY, None)


def get_cart_store(request: Request, carts: CartRepoDep, user: OptionalUser) -> CartStore:
    return CartStore(request.session, carts, user)
