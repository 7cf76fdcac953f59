"""
Product catalogue endpoints.

Reads are public and only see active products; writes require an admin
session.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from service_hub.api.deps import CurrentAdmin, ProductRepoDep
from service_hub.core.logging import get_logger
from service_hub.schemas.auth import MessageResponse
from service_hub.schemas.products import (
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
)

logger = get_logger(__name__)
router = APIRouter(tags=["products"])

MAX_PAGE_SIZE = 100


def _not_found(product_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"code": "PRODUCT_NOT_FOUND", "message": f"Product {product_id} not found"},
    )


@router.get("", response_model=ProductListResponse, summary="List products")
async def list_products(
    products: ProductRepoDep,
    category: Optional[str] = Query(None, description="Exact category"),
    search: Optional[str] = Query(None, max_length=100, description="Matches name or description"),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
) -> ProductListResponse:
    if min_price is not None and max_price is not None and min_price > max_price:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "INVALID_PRICE_RANGE", "message": "min_price exceeds max_price"},
        )

    items, total = await products.list_products(
        skip=(page - 1) * limit,
        limit=limit,
        category=category,
        search=search,
        min_price=min_price,
        max_price=max_price,
    )
    return ProductListResponse(items=items, total=total, page=page, limit=limit)


@router.get("/categories", response_model=list[str], summary="List categories")
async def list_categories(products: ProductRepoDep) -> list[str]:
    return await products.categories()


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str, products: ProductRepoDep) -> ProductResponse:
    product = await products.get(product_id)
    if product is None:
        raise _not_found(product_id)
    return ProductResponse(**product)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    products: ProductRepoDep,
    admin: CurrentAdmin,
) -> ProductResponse:
    product = await products.create(payload.model_dump())
    logger.info("Product created by admin", product_id=product["id"], admin_id=admin["id"])
    return ProductResponse(**product)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    payload: ProductUpdate,
    products: ProductRepoDep,
    admin: CurrentAdmin,
) -> ProductResponse:
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "NO_CHANGES", "message": "No fields to update"},
        )

    product = await products.update(product_id, changes)
    if product is None:
        raise _not_found(product_id)
    return ProductResponse(**product)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: str,
    products: ProductRepoDep,
    admin: CurrentAdmin,
) -> MessageResponse:
    """Soft delete: the product is hidden from the catalogue but kept for past orders."""
    if not await products.deactivate(product_id):
        raise _not_found(product_id)
    logger.info("Product deleted by admin", product_id=product_id, admin_id=admin["id"])
    return MessageResponse(message="Product deleted")
