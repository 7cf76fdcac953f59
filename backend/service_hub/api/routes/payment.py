"""
Stripe checkout endpoints.

The webhook route is unauthenticated; Stripe's signature header is the
only proof of origin, so the raw body is verified before anything else.
"""

import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from service_hub.api.deps import CurrentUser, OrderRepoDep, get_payment_service
from service_hub.core.logging import get_logger
from service_hub.schemas.payments import (
    OrderResponse,
    PaymentConfirmRequest,
    PaymentIntentResponse,
    WebhookResponse,
)
from service_hub.services.payments.service import PaymentError, PaymentService
from service_hub.services.payments.stripe_client import StripeWebhookError

logger = get_logger(__name__)
router = APIRouter(tags=["payment"])

PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]

_ERROR_STATUS = {
    "EMPTY_CART": status.HTTP_400_BAD_REQUEST,
    "INSUFFICIENT_STOCK": status.HTTP_409_CONFLICT,
    "ORDER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "NO_PAYMENT_INTENT": status.HTTP_409_CONFLICT,
    "PAYMENT_PROVIDER_ERROR": status.HTTP_502_BAD_GATEWAY,
}


def _http_error(error: PaymentError) -> HTTPException:
    return HTTPException(
        status_code=_ERROR_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail={"code": error.code, "message": error.message},
    )


@router.post("/create-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
    user: CurrentUser,
    payment_service: PaymentServiceDep,
) -> PaymentIntentResponse:
    try:
        result = await payment_service.create_intent(user)
    except PaymentError as e:
        raise _http_error(e) from e
    return PaymentIntentResponse(**result)


@router.post("/confirm", response_model=OrderResponse)
async def confirm_payment(
    payload: PaymentConfirmRequest,
    user: CurrentUser,
    payment_service: PaymentServiceDep,
) -> OrderResponse:
    try:
        order = await payment_service.confirm(user, payload.order_id)
    except PaymentError as e:
        raise _http_error(e) from e
    return OrderResponse(**order)


@router.post("/webhook", response_model=WebhookResponse)
async def stripe_webhook(
    request: Request,
    payment_service: PaymentServiceDep,
    stripe_signature: Annotated[str, Header(alias="Stripe-Signature")] = "",
) -> WebhookResponse:
    payload = await request.body()
    try:
        event = await asyncio.to_thread(
            payment_service.stripe_client.construct_webhook_event, payload, stripe_signature
        )
    except StripeWebhookError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": e.code, "message": e.message},
        ) from e

    await payment_service.handle_webhook_event(event)
    return WebhookResponse(received=True)


@router.get("/orders", response_model=list[OrderResponse])
async def list_my_orders(user: CurrentUser, orders: OrderRepoDep) -> list[OrderResponse]:
    return [OrderResponse(**order) for order in await orders.list_for_user(user["id"])]
