"""
Cart schemas for shopping cart API requests and responses.
"""

from typing import Optional

from pydantic import BaseModel, Field

MAX_QUANTITY_PER_ITEM = 10


class AddToCartRequest(BaseModel):
    """Schema for adding a product to the cart."""

    product_id: str = Field(..., min_length=1, description="ID of the product to add")
    quantity: int = Field(
        default=1,
        ge=1,
        le=MAX_QUANTITY_PER_ITEM,
        description="Quantity to add",
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "product_id": "66f1c2a9e4b0a1b2c3d4e5f6",
                "quantity": 1,
            }
        }
    }


class UpdateCartItemRequest(BaseModel):
    """Schema for setting a cart line quantity; 0 removes the line."""

    quantity: int = Field(..., ge=0, le=MAX_QUANTITY_PER_ITEM)


class CartItemResponse(BaseModel):
    """Cart line with current product details."""

    product_id: str
    name: str
    price: float
    quantity: int
    subtotal: float
    image_url: Optional[str] = None
    stock: int


class CartResponse(BaseModel):
    """Cart contents with totals."""

    items: list[CartItemResponse]
    total: float
    item_count: int
