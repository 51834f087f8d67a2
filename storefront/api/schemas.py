"""API schemas for the storefront catalog.

Pydantic models for request/response validation and serialization.
Request models accept the legacy camelCase names (``sortBy``, ``_id``).
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from storefront.catalog.records import Product


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | list[Any] = Field(
        default_factory=list, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


# ============================================================================
# Product Schemas
# ============================================================================


class CategorySchema(BaseModel):
    """Populated category reference."""

    id: str
    name: str


class ProductResponse(BaseModel):
    """Product as returned by the API. Never carries the image payload."""

    id: str
    name: str
    description: str
    price: Decimal = Field(..., description="Unit price, serialized as an exact decimal string")
    category_id: str
    category: CategorySchema | None = None
    quantity: int
    sold: int
    shipping: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, product: Product) -> "ProductResponse":
        """Convert a product record to its response schema."""
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            price=product.price,
            category_id=product.category_id,
            category=(
                CategorySchema(id=product.category.id, name=product.category.name)
                if product.category
                else None
            ),
            quantity=product.quantity,
            sold=product.sold,
            shipping=product.shipping,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )


class SearchRequest(BaseModel):
    """Filtered search request body."""

    model_config = ConfigDict(populate_by_name=True)

    filters: dict[str, Any] = Field(
        default_factory=dict,
        description="Field to accepted values; price takes [min, max]",
    )
    sort_by: str | None = Field(default=None, alias="sortBy")
    order: str | None = Field(default=None, description="asc or desc")
    limit: int | None = Field(default=None, ge=0)
    skip: int | None = Field(default=None, ge=0)


class SearchResponse(BaseModel):
    """Filtered search response."""

    size: int = Field(..., description="Number of products in this page")
    data: list[ProductResponse]


class DeleteResponse(BaseModel):
    """Delete confirmation."""

    message: str


# ============================================================================
# Inventory Schemas
# ============================================================================


class LineItemSchema(BaseModel):
    """One purchased product in an order."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="_id")
    count: int


class OrderProductsSchema(BaseModel):
    """The part of an order the inventory adjustment needs."""

    products: list[LineItemSchema] = Field(default_factory=list)


class InventoryRequest(BaseModel):
    """Inventory decrement request body."""

    order: OrderProductsSchema


class InventoryResponse(BaseModel):
    """Inventory decrement acknowledgement."""

    adjusted: int = Field(..., description="Number of line items applied")
