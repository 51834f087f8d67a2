"""Domain layer - error taxonomy shared by the catalog core and its callers.

Example usage:
    from storefront.domain import ProductNotFoundError

    try:
        product = await service.get_product(product_id)
    except ProductNotFoundError as exc:
        print(exc.error_code, exc.details)
"""

from storefront.domain.exceptions import (
    AssetTooLargeError,
    CatalogError,
    DomainError,
    InventoryAdjustmentFailedError,
    ProductNotFoundError,
    QueryFailedError,
    StoreError,
    ValidationFailedError,
    WriteFailedError,
)

__all__ = [
    "AssetTooLargeError",
    "CatalogError",
    "DomainError",
    "InventoryAdjustmentFailedError",
    "ProductNotFoundError",
    "QueryFailedError",
    "StoreError",
    "ValidationFailedError",
    "WriteFailedError",
]
