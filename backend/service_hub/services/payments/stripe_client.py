"""
Stripe API wrapper with retry for transient failures.

The Stripe SDK is synchronous; callers on the event loop should run these
methods through ``asyncio.to_thread``.
"""

import json
import time
from typing import Any, Callable, Optional

import stripe

from service_hub.core.config import get_settings
from service_hub.core.logging import get_logger

logger = get_logger(__name__)

RETRYABLE_ERRORS = (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError)


class StripeClientError(Exception):
    """Base exception for Stripe client errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        stripe_error: Optional[stripe.StripeError] = None,
        **context: Any,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.stripe_error = stripe_error
        self.context = context


class StripePaymentError(StripeClientError):
    """Card declined or otherwise unpayable."""


class StripeWebhookError(StripeClientError):
    """Webhook payload could not be verified."""


def to_minor_units(amount: float) -> int:
    """Convert a major-unit amount (rupees) to Stripe's minor units (paise)."""
    return int(round(amount * 100))


class StripeClient:
    """
    Thin Stripe client used by the payment service.

    Transient errors (connection, rate limit, 5xx) are retried with
    exponential backoff; everything else is raised as StripeClientError.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        max_retries: int = 2,
        initial_backoff: float = 0.5,
        max_backoff: float = 8.0,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.stripe_secret_key
        self.webhook_secret = (
            webhook_secret if webhook_secret is not None else settings.stripe_webhook_secret
        )
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff

        stripe.api_key = self.api_key
        stripe.max_network_retries = 0

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _calculate_backoff(self, attempt: int) -> float:
        return min(self.initial_backoff * (2**attempt), self.max_backoff)

    def _execute_with_retry(self, operation: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        if not self.configured:
            raise StripeClientError("Stripe is not configured", code="NOT_CONFIGURED")

        for attempt in range(self.max_retries + 1):
            try:
                result = func(*args, **kwargs)
                if attempt > 0:
                    logger.info("Stripe operation succeeded after retry", operation=operation, attempt=attempt)
                return result

            except stripe.CardError as e:
                logger.warning(
                    "Stripe card error",
                    operation=operation,
                    code=e.code,
                    decline_code=getattr(e, "decline_code", None),
                )
                raise StripePaymentError(
                    f"Card error: {e.user_message or str(e)}",
                    code=e.code,
                    stripe_error=e,
                ) from e

            except RETRYABLE_ERRORS as e:
                if attempt >= self.max_retries:
                    logger.error(
                        "Stripe operation failed after retries",
                        operation=operation,
                        error=str(e),
                        attempts=attempt + 1,
                    )
                    raise StripeClientError(
                        f"Stripe unavailable: {e.user_message or str(e)}",
                        code=getattr(e, "code", None),
                        stripe_error=e,
                    ) from e

                backoff = self._calculate_backoff(attempt)
                logger.warning(
                    "Transient Stripe error, retrying",
                    operation=operation,
                    error_type=type(e).__name__,
                    attempt=attempt,
                    backoff_seconds=backoff,
                )
                time.sleep(backoff)

            except stripe.StripeError as e:
                logger.error(
                    "Stripe error",
                    operation=operation,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise StripeClientError(
                    f"Stripe error: {e.user_message or str(e)}",
                    code=getattr(e, "code", None),
                    stripe_error=e,
                ) from e

        raise StripeClientError(f"Stripe operation {operation} did not complete")

    def create_payment_intent(
        self,
        amount: int,
        currency: str,
        order_id: str,
        customer_email: Optional[str] = None,
    ) -> Any:
        """
        Create a PaymentIntent for an order.

        Args:
            amount: Amount in minor units
            currency: Three-letter ISO currency code
            order_id: Order the payment settles, stored in metadata
            customer_email: Receipt address

        Returns:
            Stripe PaymentIntent object
        """
        params: dict[str, Any] = {
            "amount": amount,
            "currency": currency.lower(),
            "automatic_payment_methods": {"enabled": True},
            "metadata": {"order_id": order_id},
            "idempotency_key": f"order-{order_id}",
        }
        if customer_email:
            params["receipt_email"] = customer_email

        intent = self._execute_with_retry("create_payment_intent", stripe.PaymentIntent.create, **params)
        logger.info(
            "Payment intent created",
            payment_intent_id=intent.id,
            order_id=order_id,
            amount=amount,
            currency=currency,
        )
        return intent

    def retrieve_payment_intent(self, payment_intent_id: str) -> Any:
        return self._execute_with_retry(
            "retrieve_payment_intent", stripe.PaymentIntent.retrieve, payment_intent_id
        )

    def construct_webhook_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        """
        Verify and parse a webhook delivery.

        The event is returned as plain JSON so handlers do not depend on
        StripeObject behaviour.

        Raises:
            StripeWebhookError: If the payload or signature is invalid
        """
        if not self.webhook_secret:
            raise StripeWebhookError("Webhook secret is not configured", code="NOT_CONFIGURED")
        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"), signature, self.webhook_secret
            )
            event = json.loads(payload)
        except ValueError as e:
            logger.warning("Invalid webhook payload", error=str(e))
            raise StripeWebhookError("Invalid webhook payload", code="INVALID_PAYLOAD") from e
        except stripe.SignatureVerificationError as e:
            logger.warning("Webhook signature verification failed", error=str(e))
            raise StripeWebhookError(
                "Webhook signature verification failed",
                code="INVALID_SIGNATURE",
                stripe_error=e,
            ) from e

        logger.info("Webhook event verified", event_id=event.get("id"), event_type=event.get("type"))
        return event


_stripe_client: Optional[StripeClient] = None


def get_stripe_client() -> StripeClient:
    """Process-wide Stripe client."""
    global _stripe_client
    if _stripe_client is None:
        _stripe_client = StripeClient()
    return _stripe_client
