"""Domain exceptions.

Every failure path of the catalog core raises one of these typed errors so
the calling layer can tell them apart and map them to a response. Nothing
raised here is retried inside the core.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Catalog Errors
# ============================================================================


class CatalogError(DomainError):
    """Base class for catalog-related errors."""

    pass


class ProductNotFoundError(CatalogError):
    """Raised when an id-scoped lookup misses."""

    error_code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str) -> None:
        """Initialize product not found error.

        Args:
            product_id: ID that was looked up.
        """
        super().__init__(
            f"Product not found: {product_id}",
            details={"product_id": product_id},
        )


class ValidationFailedError(CatalogError):
    """Raised when caller-supplied fields are missing or malformed."""

    error_code = "VALIDATION_FAILED"

    def __init__(
        self,
        message: str,
        fields: list[str] | None = None,
    ) -> None:
        """Initialize validation error.

        Args:
            message: What was wrong with the input.
            fields: Names of the offending fields.
        """
        super().__init__(message, details={"fields": fields or []})
        self.fields = fields or []


class AssetTooLargeError(CatalogError):
    """Raised when a binary asset exceeds the size ceiling."""

    error_code = "ASSET_TOO_LARGE"

    def __init__(self, size: int, max_bytes: int) -> None:
        """Initialize asset too large error.

        Args:
            size: Size of the rejected asset in bytes.
            max_bytes: Configured ceiling in bytes.
        """
        super().__init__(
            f"Image should be at most {max_bytes} bytes, got {size}",
            details={"size": size, "max_bytes": max_bytes},
        )


# ============================================================================
# Store Errors
# ============================================================================


class StoreError(CatalogError):
    """Base class for failures reported by the record store."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        """Initialize store error.

        Args:
            message: Summary of the failed operation.
            cause: Native store exception, kept for diagnostics.
        """
        details: dict[str, Any] = {}
        if cause is not None:
            details["cause"] = f"{type(cause).__name__}: {cause}"
        super().__init__(message, details=details)
        self.cause = cause


class QueryFailedError(StoreError):
    """Raised when a store-level read fails."""

    error_code = "QUERY_FAILED"


class WriteFailedError(StoreError):
    """Raised when a store-level write or delete fails."""

    error_code = "WRITE_FAILED"


# ============================================================================
# Inventory Errors
# ============================================================================


class InventoryAdjustmentFailedError(CatalogError):
    """Raised when a bulk inventory decrement did not fully commit.

    The details carry how many line items were submitted and how many
    matched, but not which ones. Items that matched stay committed, so a
    blind retry of the same batch is not safe.
    """

    error_code = "INVENTORY_ADJUSTMENT_FAILED"

    def __init__(
        self,
        message: str = "Could not update product",
        requested: int = 0,
        matched: int = 0,
    ) -> None:
        """Initialize inventory adjustment error.

        Args:
            message: Human-readable error message.
            requested: Number of line items submitted.
            matched: Number of line items the store applied.
        """
        super().__init__(
            message,
            details={"requested": requested, "matched": matched},
        )
        self.requested = requested
        self.matched = matched
