"""
Product schemas for catalogue API requests and responses.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _clean_text(v: Optional[str]) -> Optional[str]:
    """Strip text fields, rejecting whitespace-only values."""
    if v is None:
        return v
    cleaned = v.strip()
    if not cleaned:
        raise ValueError("Value cannot be empty or whitespace")
    return cleaned


def _round_price(v: Optional[float]) -> Optional[float]:
    return round(v, 2) if v is not None else v


def _check_image_url(v: Optional[str]) -> Optional[str]:
    if v and not v.startswith(("http://", "https://")):
        raise ValueError("Image URL must start with http:// or https://")
    return v


class ProductBase(BaseModel):
    """Fields shared by product create requests and responses."""

    name: str = Field(..., min_length=1, max_length=200, description="Product or service name")
    description: str = Field(default="", max_length=5000, description="Long description")
    price: float = Field(..., ge=0, description="Unit price in the payment currency")
    category: str = Field(..., min_length=1, max_length=100, description="Catalogue category")
    image_url: Optional[str] = Field(None, max_length=2048, description="Image URL")
    stock: int = Field(default=0, ge=0, description="Units available")

    @field_validator("name", "category")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return _clean_text(v)

    @field_validator("price")
    @classmethod
    def round_price(cls, v: Optional[float]) -> Optional[float]:
        return _round_price(v)

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, v: Optional[str]) -> Optional[str]:
        return _check_image_url(v)


class ProductCreate(ProductBase):
    """Schema for creating a product."""

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "AC Servicing",
                "description": "Full split AC service with gas check",
                "price": 799.0,
                "category": "Appliance Repair",
                "image_url": "https://cdn.example.com/ac.jpg",
                "stock": 25,
            }
        }
    }


class ProductUpdate(BaseModel):
    """
    Schema for partial product updates; omitted fields are unchanged.

    Only ``image_url`` may be cleared with an explicit null.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    image_url: Optional[str] = Field(None, max_length=2048)
    stock: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None

    @field_validator("name", "description", "price", "category", "stock", "is_active")
    @classmethod
    def reject_null(cls, v):
        # Defaults are not validated, so this only fires for an explicit null.
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("name", "category")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return _clean_text(v)

    @field_validator("price")
    @classmethod
    def round_price(cls, v: Optional[float]) -> Optional[float]:
        return _round_price(v)

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, v: Optional[str]) -> Optional[str]:
        return _check_image_url(v)


class ProductResponse(ProductBase):
    """Product as returned by the API."""

    id: str
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductListResponse(BaseModel):
    """Paginated product listing."""

    items: list[ProductResponse]
    total: int
    page: int
    limit: int
