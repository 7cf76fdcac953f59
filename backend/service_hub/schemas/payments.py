"""
Payment and order schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from service_hub.services.orders.enums import OrderStatus


class OrderItem(BaseModel):
    """Order line as captured at checkout."""

    product_id: str
    name: str
    price: float
    quantity: int


class OrderResponse(BaseModel):
    """Order as returned by the API."""

    id: str
    user_id: str
    items: list[OrderItem]
    total_amount: float
    currency: str
    status: OrderStatus
    payment_intent_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PaymentIntentResponse(BaseModel):
    """Client-side data needed to complete a Stripe payment."""

    order_id: str
    client_secret: str
    amount: float
    currency: str


class PaymentConfirmRequest(BaseModel):
    """Ask the server to reconcile an order with its payment intent."""

    order_id: str = Field(..., min_length=1)


class WebhookResponse(BaseModel):
    received: bool = True
