"""
Shopping cart endpoints.

Work for guests and signed-in customers alike; ``CartStore`` picks the
session or the database depending on whether a Bearer token was sent.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from service_hub.api.deps import CartStore, get_cart_service, get_cart_store
from service_hub.schemas.cart import (
    AddToCartRequest,
    CartResponse,
    UpdateCartItemRequest,
)
from service_hub.services.cart.service import CartError, CartService

router = APIRouter(tags=["cart"])

CartStoreDep = Annotated[CartStore, Depends(get_cart_store)]
CartServiceDep = Annotated[CartService, Depends(get_cart_service)]

_ERROR_STATUS = {
    "PRODUCT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ITEM_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INSUFFICIENT_STOCK": status.HTTP_409_CONFLICT,
    "QUANTITY_LIMIT": status.HTTP_409_CONFLICT,
}


def _http_error(error: CartError) -> HTTPException:
    return HTTPException(
        status_code=_ERROR_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail={"code": error.code, "message": error.message},
    )


@router.get("", response_model=CartResponse)
async def get_cart(store: CartStoreDep, cart_service: CartServiceDep) -> CartResponse:
    return CartResponse(**await cart_service.build_cart(await store.load()))


@router.post("/items", response_model=CartResponse, status_code=status.HTTP_201_CREATED)
async def add_item(
    payload: AddToCartRequest,
    store: CartStoreDep,
    cart_service: CartServiceDep,
) -> CartResponse:
    try:
        items = await cart_service.add_item(await store.load(), payload.product_id, payload.quantity)
    except CartError as e:
        raise _http_error(e) from e

    await store.save(items)
    return CartResponse(**await cart_service.build_cart(items))


@router.put("/items/{product_id}", response_model=CartResponse)
async def update_item(
    product_id: str,
    payload: UpdateCartItemRequest,
    store: CartStoreDep,
    cart_service: CartServiceDep,
) -> CartResponse:
    try:
        items = await cart_service.update_item(await store.load(), product_id, payload.quantity)
    except CartError as e:
        raise _http_error(e) from e

    await store.save(items)
    return CartResponse(**await cart_service.build_cart(items))


@router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_item(
    product_id: str,
    store: CartStoreDep,
    cart_service: CartServiceDep,
) -> CartResponse:
    try:
        items = cart_service.remove_item(await store.load(), product_id)
    except CartError as e:
        raise _http_error(e) from e

    await store.save(items)
    return CartResponse(**await cart_service.build_cart(items))


@router.delete("", response_model=CartResponse)
async def clear_cart(store: CartStoreDep) -> CartResponse:
    await store.save([])
    return CartResponse(items=[], total=0.0, item_count=0)
