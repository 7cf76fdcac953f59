"""
Transactional email over AWS SES.

``EmailTransport`` wraps the boto3 SES client. It is verified once at
startup (the result is only logged) and used for order confirmation
mails. When no sender address is configured the transport is disabled
and every send is skipped with a log line.
"""

import asyncio
import time
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from service_hub.core.config import get_settings
from service_hub.core.logging import get_logger

logger = get_logger(__name__)

# SES error codes that will not succeed on retry.
NON_RETRYABLE_ERRORS = {
    "MessageRejected",
    "MailFromDomainNotVerified",
    "ConfigurationSetDoesNotExist",
    "AccessDenied",
}


class EmailDeliveryError(Exception):
    """Raised when SES refuses or fails to deliver a message."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.context = context


class EmailTransport:
    """
    SES client wrapper with retry on throttling and connection errors.

    Attributes:
        sender: Verified SES source address, or None when disabled
    """

    def __init__(
        self,
        sender: Optional[str] = None,
        region_name: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        max_retries: int = 3,
        retry_backoff: float = 1.0,
        client: Any = None,
    ) -> None:
        """
        Initialize the transport.

        Args:
            sender: Source address (defaults to settings)
            region_name: AWS region (defaults to settings)
            aws_access_key_id: Access key (defaults to settings / credential chain)
            aws_secret_access_key: Secret key (defaults to settings / credential chain)
            max_retries: Attempts per message
            retry_backoff: Initial backoff in seconds, doubled per attempt
            client: Pre-built SES client, mainly for tests
        """
        settings = get_settings()
        self.sender = sender or settings.email_sender
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self._region = region_name or settings.aws_region
        self._access_key_id = aws_access_key_id or settings.aws_access_key_id
        self._secret_access_key = aws_secret_access_key or settings.aws_secret_access_key
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self.sender)

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client(
                "ses",
                region_name=self._region,
                aws_access_key_id=self._access_key_id,
                aws_secret_access_key=self._secret_access_key,
            )
        return self._client

    def verify(self) -> bool:
        """
        Check that SES accepts mail from this account.

        Never raises; the outcome is logged so a misconfigured transport
        is visible at startup without taking the server down.

        Returns:
            True when SES is reachable and sending is enabled
        """
        if not self.enabled:
            logger.warning("Email transport disabled: no sender configured")
            return False

        try:
            response = self.client.get_account_sending_enabled()
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "Email transport verification failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if not response.get("Enabled", False):
            logger.error("Email transport verification failed: sending is paused")
            return False

        logger.info("Email transport ready", sender=self.sender, region=self._region)
        return True

    def send_email(
        self,
        to_addresses: list[str],
        subject: str,
        body_text: str,
        body_html: Optional[str] = None,
    ) -> Optional[str]:
        """
        Send an email.

        Args:
            to_addresses: Recipient addresses
            subject: Subject line
            body_text: Plain text body
            body_html: Optional HTML body

        Returns:
            SES message ID, or None when the transport is disabled

        Raises:
            EmailDeliveryError: If SES rejects the message or retries run out
        """
        if not self.enabled:
            logger.info("Email skipped: transport disabled", subject=subject)
            return None

        if not to_addresses:
            raise EmailDeliveryError("At least one recipient is required")

        body: dict[str, Any] = {"Text": {"Data": body_text, "Charset": "UTF-8"}}
        if body_html:
            body["Html"] = {"Data": body_html, "Charset": "UTF-8"}

        params = {
            "Source": self.sender,
            "Destination": {"ToAddresses": to_addresses},
            "Message": {
                "Subject": {"Data": subject, "Charset": "UTF-8"},
                "Body": body,
            },
        }

        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                response = self.client.send_email(**params)
                logger.info(
                    "Email sent",
                    message_id=response["MessageId"],
                    to_addresses=to_addresses,
                    subject=subject,
                )
                return response["MessageId"]

            except ClientError as e:
                error_code = e.response.get("Error", {}).get("Code", "Unknown")
                last_error = e
                if error_code in NON_RETRYABLE_ERRORS:
                    logger.error(
                        "SES rejected email",
                        error_code=error_code,
                        to_addresses=to_addresses,
                    )
                    raise EmailDeliveryError(
                        f"SES error: {error_code}",
                        error_code=error_code,
                    ) from e
                logger.warning(
                    "SES client error",
                    attempt=attempt + 1,
                    error_code=error_code,
                )

            except BotoCoreError as e:
                last_error = e
                logger.warning(
                    "SES connection error",
                    attempt=attempt + 1,
                    error=str(e),
                )

            if attempt < self.max_retries - 1:
                time.sleep(self.retry_backoff * (2**attempt))

        raise EmailDeliveryError(
            f"Email delivery failed after {self.max_retries} attempts",
            last_error=str(last_error),
        )

    async def send_order_confirmation(self, order: dict[str, Any], email: str) -> bool:
        """
        Send the order confirmation mail without failing the caller.

        Args:
            order: Order document as returned by the order repository
            email: Customer address

        Returns:
            True if SES accepted the message
        """
        currency = order.get("currency", "inr").upper()
        lines = [
            f"- {item['name']} x {item['quantity']}: "
            f"{item['price'] * item['quantity']:.2f} {currency}"
            for item in order.get("items", [])
        ]
        body_text = (
            "Thank you for your order at Shivalik Service Hub.\n\n"
            f"Order: {order['id']}\n"
            + "\n".join(lines)
            + f"\n\nTotal: {order['total_amount']:.2f} {currency}\n"
        )

        try:
            message_id = await asyncio.to_thread(
                self.send_email,
                [email],
                f"Order confirmation #{order['id']}",
                body_text,
            )
        except EmailDeliveryError as e:
            logger.error(
                "Order confirmation email failed",
                order_id=order["id"],
                error=str(e),
            )
            return False
        return message_id is not None


_transport: Optional[EmailTransport] = None


def get_email_transport() -> EmailTransport:
    """Return the process-wide email transport."""
    global _transport
    if _transport is None:
        _transport = EmailTransport()
    return _transport


async def verify_email_transport() -> bool:
    """Verify the email transport off the event loop; logs the result."""
    return await asyncio.to_thread(get_email_transport().verify)
