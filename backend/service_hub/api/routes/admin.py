"""Back-office endpoints; every route requires an admin session."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from service_hub.api.deps import (
    OrderRepoDep,
    ProductRepoDep,
    UserRepoDep,
    get_current_admin,
)
from service_hub.core.logging import get_logger
from service_hub.schemas.admin import (
    AdminProductListResponse,
    OrderListResponse,
    OrderStatusUpdate,
    UserListResponse,
    UserStatusUpdate,
)
from service_hub.schemas.auth import UserResponse
from service_hub.schemas.payments import OrderResponse
from service_hub.services.orders.enums import FULFILMENT_TRANSITIONS, OrderStatus

logger = get_logger(__name__)
router = APIRouter(tags=["admin"], dependencies=[Depends(get_current_admin)])


@router.get("/users", response_model=UserListResponse)
async def list_users(
    users: UserRepoDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> UserListResponse:
    items, total = await users.list_users(skip=(page - 1) * limit, limit=limit)
    return UserListResponse(items=items, total=total, page=page, limit=limit)


@router.patch("/users/{user_id}/status", response_model=UserResponse)
async def update_user_status(
    user_id: str,
    payload: UserStatusUpdate,
    users: UserRepoDep,
) -> UserResponse:
    user = await users.set_active(user_id, payload.is_active)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "USER_NOT_FOUND", "message": f"User {user_id} not found"},
        )
    return UserResponse(**user)


@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    orders: OrderRepoDep,
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> OrderListResponse:
    items, total = await orders.list_orders(
        status=status_filter, skip=(page - 1) * limit, limit=limit
    )
    return OrderListResponse(items=items, total=total, page=page, limit=limit)


@router.patch("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    orders: OrderRepoDep,
) -> OrderResponse:
    """
    Move a paid order through fulfilment.

    Raises:
        HTTPException: 404 if the order does not exist, 409 if the order's
            current status does not allow the change
    """
    target = OrderStatus(payload.status)
    order = await orders.transition(order_id, FULFILMENT_TRANSITIONS[target], target)
    if order is not None:
        return OrderResponse(**order)

    current = await orders.get(order_id)
    if current is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "ORDER_NOT_FOUND", "message": f"Order {order_id} not found"},
        )

    logger.warning(
        "Rejected order status change",
        order_id=order_id,
        current_status=current["status"],
        requested_status=target.value,
    )
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "code": "INVALID_STATUS_TRANSITION",
            "message": f"Cannot move order from {current['status']} to {target.value}",
        },
    )


@router.get("/products", response_model=AdminProductListResponse)
async def list_all_products(
    products: ProductRepoDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> AdminProductListResponse:
    items, total = await products.list_products(
        skip=(page - 1) * limit, limit=limit, include_inactive=True
    )
    return AdminProductListResponse(items=items, total=total, page=page, limit=limit)
