"""Statistics response schemas."""

from pydantic import BaseModel, Field

from service_hub.schemas.payments import OrderResponse


class PublicStatsResponse(BaseModel):
    total_products: int
    total_categories: int
    total_customers: int
    completed_orders: int


class DashboardStatsResponse(BaseModel):
    """Admin dashboard figures."""

    total_users: int
    total_products: int
    active_products: int
    total_orders: int
    orders_by_status: dict[str, int]
    revenue: float = Field(..., description="Sum of paid, processing and completed orders")
    recent_orders: list[OrderResponse]
