"""
Checkout and payment reconciliation.

Flow:
    1. ``create_intent`` snapshots the customer's cart into a pending order
       and opens a Stripe PaymentIntent for it.
    2. The client confirms the payment with Stripe.js.
    3. Either ``confirm`` (client round trip) or the Stripe webhook moves
       the order to ``paid`` or ``failed``.

Both paths may run for the same payment. ``complete_order`` only acts when
it moves the order into ``paid`` (from pending, or from failed when the
customer retried the same intent), so stock, cart clearing and the
confirmation email happen exactly once.
"""

import asyncio
from typing import Any, Optional

from service_hub.core.logging import get_logger, log_performance
from service_hub.services.cart.repository import CartRepository
from service_hub.services.cart.service import CartService
from service_hub.services.notifications.email import EmailTransport
from service_hub.services.orders.enums import OrderStatus
from service_hub.services.orders.repository import OrderRepository
from service_hub.services.payments.stripe_client import (
    StripeClient,
    StripeClientError,
    to_minor_units,
)
from service_hub.services.products.repository import ProductRepository
from service_hub.services.users.repository import UserRepository

logger = get_logger(__name__)

PAYMENT_SUCCEEDED_EVENT = "payment_intent.succeeded"
PAYMENT_FAILED_EVENT = "payment_intent.payment_failed"

# Statuses a payment outcome can still change.
SETTLEABLE_STATUSES = (OrderStatus.PENDING.value, OrderStatus.FAILED.value)


class PaymentError(Exception):
    """Payment operation rejected."""

    def __init__(self, message: str, code: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.code = code
        self.context = context


class PaymentService:
    """Orchestrates orders, Stripe and post-payment side effects."""

    def __init__(
        self,
        orders: OrderRepository,
        products: ProductRepository,
        carts: CartRepository,
        users: UserRepository,
        stripe_client: StripeClient,
        email_transport: EmailTransport,
        currency: str = "inr",
    ):
        self.orders = orders
        self.products = products
        self.carts = carts
        self.users = users
        self.cart_service = CartService(products)
        self.stripe_client = stripe_client
        self.email_transport = email_transport
        self.currency = currency

    async def create_intent(self, user: dict[str, Any]) -> dict[str, Any]:
        """
        Create a pending order from the user's cart and a PaymentIntent for it.

        Raises:
            PaymentError: EMPTY_CART, INSUFFICIENT_STOCK or PAYMENT_PROVIDER_ERROR
        """
        items = await self.carts.get_items(user["id"])
        cart = await self.cart_service.build_cart(items)
        if not cart["items"]:
            raise PaymentError("Cart is empty", code="EMPTY_CART", user_id=user["id"])

        for line in cart["items"]:
            if line["quantity"] > line["stock"]:
                raise PaymentError(
                    f"Only {line['stock']} units of {line['name']} available",
                    code="INSUFFICIENT_STOCK",
                    product_id=line["product_id"],
                )

        order_items = [
            {
                "product_id": line["product_id"],
                "name": line["name"],
                "price": line["price"],
                "quantity": line["quantity"],
            }
            for line in cart["items"]
        ]
        order = await self.orders.create(user["id"], order_items, cart["total"], self.currency)

        try:
            with log_performance(logger, "stripe_create_payment_intent", order_id=order["id"]):
                intent = await asyncio.to_thread(
                    self.stripe_client.create_payment_intent,
                    to_minor_units(cart["total"]),
                    self.currency,
                    order["id"],
                    user.get("email"),
                )
        except StripeClientError as e:
            await self.orders.transition(order["id"], [OrderStatus.PENDING], OrderStatus.FAILED)
            raise PaymentError(
                "Payment provider unavailable",
                code="PAYMENT_PROVIDER_ERROR",
                order_id=order["id"],
                provider_code=e.code,
            ) from e

        await self.orders.set_payment_intent(order["id"], intent.id)
        return {
            "order_id": order["id"],
            "client_secret": intent.client_secret,
            "amount": cart["total"],
            "currency": self.currency,
        }

    async def confirm(self, user: dict[str, Any], order_id: str) -> dict[str, Any]:
        """
        Reconcile an order with the current state of its PaymentIntent.

        Raises:
            PaymentError: ORDER_NOT_FOUND, NO_PAYMENT_INTENT or
                PAYMENT_PROVIDER_ERROR
        """
        order = await self.orders.get_for_user(order_id, user["id"])
        if order is None:
            raise PaymentError("Order not found", code="ORDER_NOT_FOUND", order_id=order_id)
        if not order.get("payment_intent_id"):
            raise PaymentError(
                "Order has no payment intent", code="NO_PAYMENT_INTENT", order_id=order_id
            )
        if order["status"] not in SETTLEABLE_STATUSES:
            return order

        try:
            intent = await asyncio.to_thread(
                self.stripe_client.retrieve_payment_intent, order["payment_intent_id"]
            )
        except StripeClientError as e:
            raise PaymentError(
                "Payment provider unavailable",
                code="PAYMENT_PROVIDER_ERROR",
                order_id=order_id,
            ) from e

        if intent.status == "succeeded":
            await self.complete_order(order_id)
        elif intent.status == "canceled":
            await self.fail_order(order_id)
        else:
            logger.info("Payment not settled yet", order_id=order_id, intent_status=intent.status)

        return await self.orders.get(order_id) or order

    async def handle_webhook_event(self, event: dict[str, Any]) -> bool:
        """
        Apply a verified Stripe event.

        Returns:
            True if the event type was handled
        """
        event_type = event.get("type")
        if event_type not in (PAYMENT_SUCCEEDED_EVENT, PAYMENT_FAILED_EVENT):
            logger.debug("Ignoring webhook event", event_type=event_type)
            return False

        intent = event.get("data", {}).get("object", {})
        order_id = (intent.get("metadata") or {}).get("order_id")
        if not order_id and intent.get("id"):
            order = await self.orders.get_by_payment_intent(intent["id"])
            order_id = order["id"] if order else None
        if not order_id:
            logger.warning(
                "Webhook event without matching order",
                event_type=event_type,
                payment_intent_id=intent.get("id"),
            )
            return True

        if event_type == PAYMENT_SUCCEEDED_EVENT:
            await self.complete_order(order_id)
        else:
            await self.fail_order(order_id)
        return True

    async def complete_order(self, order_id: str) -> Optional[dict[str, Any]]:
        """
        Mark an order paid and run the post-payment side effects.

        Returns:
            The paid order, or None if another caller already completed it
        """
        order = await self.orders.transition(
            order_id, [OrderStatus.PENDING, OrderStatus.FAILED], OrderStatus.PAID
        )
        if order is None:
            logger.info("Order already settled", order_id=order_id)
            return None

        await self.products.decrement_stock(order["items"])
        await self.carts.clear(order["user_id"])

        user = await self.users.get_by_id(order["user_id"])
        if user is not None:
            await self.email_transport.send_order_confirmation(order, user["email"])

        logger.info("Order paid", order_id=order_id, total_amount=order["total_amount"])
        return order

    async def fail_order(self, order_id: str) -> Optional[dict[str, Any]]:
        order = await self.orders.transition(order_id, [OrderStatus.PENDING], OrderStatus.FAILED)
        if order is not None:
            logger.warning("Order payment failed", order_id=order_id)
        return order
