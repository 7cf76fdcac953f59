"""
Admin back-office schemas.
"""

from typing import Literal

from pydantic import BaseModel

from service_hub.schemas.auth import UserResponse
from service_hub.schemas.payments import OrderResponse
from service_hub.schemas.products import ProductResponse


class UserStatusUpdate(BaseModel):
    """Activate or deactivate a customer account."""

    is_active: bool


class OrderStatusUpdate(BaseModel):
    """Fulfilment status change; payment statuses are set by the payment flow."""

    status: Literal["processing", "completed", "cancelled"]


class _Page(BaseModel):
    total: int
    page: int
    limit: int


class UserListResponse(_Page):
    items: list[UserResponse]


class OrderListResponse(_Page):
    items: list[OrderResponse]


class AdminProductListResponse(_Page):
    items: list[ProductResponse]
