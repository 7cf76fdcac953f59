"""Order status values.

Payment moves an order from PENDING to PAID or FAILED. A FAILED order can
still become PAID when the customer retries the same payment intent.
After that an admin moves paid orders through fulfilment:

- PAID -> PROCESSING, COMPLETED, CANCELLED
- PROCESSING -> COMPLETED, CANCELLED
"""

from enum import Enum


class OrderStatus(str, Enum):
    """Order lifecycle status."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Target status -> statuses an admin may move an order from.
FULFILMENT_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PROCESSING: {OrderStatus.PAID},
    OrderStatus.COMPLETED: {OrderStatus.PAID, OrderStatus.PROCESSING},
    OrderStatus.CANCELLED: {OrderStatus.PAID, OrderStatus.PROCESSING},
}

# Orders whose money has been collected.
REVENUE_STATUSES = (OrderStatus.PAID, OrderStatus.PROCESSING, OrderStatus.COMPLETED)
