"""Aggregated figures for the storefront and the admin dashboard."""

import asyncio
from typing import Any

from service_hub.core.logging import get_logger
from service_hub.services.orders.enums import REVENUE_STATUSES, OrderStatus
from service_hub.services.orders.repository import OrderRepository
from service_hub.services.products.repository import ProductRepository
from service_hub.services.users.repository import UserRepository

logger = get_logger(__name__)

RECENT_ORDERS_LIMIT = 5


class StatsService:
    def __init__(
        self,
        products: ProductRepository,
        users: UserRepository,
        orders: OrderRepository,
    ):
        self.products = products
        self.users = users
        self.orders = orders

    async def public_stats(self) -> dict[str, int]:
        """Headline numbers shown on the landing page."""
        total_products, categories, total_customers, completed_orders = await asyncio.gather(
            self.products.count(active_only=True),
            self.products.categories(),
            self.users.count(),
            self.orders.count([OrderStatus.COMPLETED]),
        )
        return {
            "total_products": total_products,
            "total_categories": len(categories),
            "total_customers": total_customers,
            "completed_orders": completed_orders,
        }

    async def dashboard(self) -> dict[str, Any]:
        (
            total_users,
            total_products,
            active_products,
            total_orders,
            orders_by_status,
            revenue,
            recent_orders,
        ) = await asyncio.gather(
            self.users.count(),
            self.products.count(active_only=False),
            self.products.count(active_only=True),
            self.orders.count(),
            self.orders.count_by_status(),
            self.orders.revenue(REVENUE_STATUSES),
            self.orders.recent(RECENT_ORDERS_LIMIT),
        )

        logger.debug("Dashboard stats computed", total_orders=total_orders, revenue=revenue)
        return {
            "total_users": total_users,
            "total_products": total_products,
            "active_products": active_products,
            "total_orders": total_orders,
            "orders_by_status": orders_by_status,
            "revenue": revenue,
            "recent_orders": recent_orders,
        }
