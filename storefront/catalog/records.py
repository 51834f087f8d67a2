"""Catalog records.

Plain dataclasses passed between the service, the planner and the store
adapters. Nothing here touches the database.
"""

import os
import threading
import time
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Self

from storefront.domain.exceptions import ValidationFailedError

# Legacy document field names accepted from callers.
FIELD_ALIASES: dict[str, str] = {
    "_id": "id",
    "category": "category_id",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

REQUIRED_FIELDS = ("name", "description", "price", "category_id", "quantity", "shipping")

_id_lock = threading.Lock()
_last_id = 0

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def normalize_field(name: str) -> str:
    """Map a legacy field name onto the record attribute name."""
    return FIELD_ALIASES.get(name, name)


def new_product_id() -> str:
    """Generate a 24 hex digit ID that sorts by creation time.

    The high 48 bits are the Unix time in milliseconds and the low 48 bits
    are random. IDs generated by one process are strictly increasing, even
    within the same millisecond, so ordering by ID is insertion order.

    Returns:
        Lowercase hex ID.
    """
    global _last_id
    candidate = (time.time_ns() // 1_000_000) << 48 | int.from_bytes(os.urandom(6), "big")
    with _id_lock:
        _last_id = max(candidate, _last_id + 1)
        return f"{_last_id:024x}"


@dataclass(frozen=True)
class Category:
    """Category reference populated onto products on read."""

    id: str
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class ImageAsset:
    """Binary image payload with its content type."""

    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class Product:
    """Product record.

    Attributes:
        id: Opaque product identifier.
        name: Product name.
        description: Product description.
        price: Unit price.
        category_id: ID of the category this product belongs to.
        quantity: Stock on hand.
        sold: Cumulative units sold.
        shipping: Whether the product ships.
        image: Stored image, or None when absent or not projected.
        category: Populated category, when the store resolved it.
        created_at: Creation timestamp.
        updated_at: Last write timestamp.
    """

    id: str
    name: str
    description: str
    price: Decimal
    category_id: str
    quantity: int
    sold: int = 0
    shipping: bool = False
    image: ImageAsset | None = None
    category: Category | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(cls, patch: "ProductPatch") -> Self:
        """Build a new product from a patch carrying every required field.

        Args:
            patch: Parsed creation fields.

        Returns:
            New product with a generated ID.

        Raises:
            ValidationFailedError: If a required field is missing.
        """
        missing = [name for name in REQUIRED_FIELDS if getattr(patch, name) is None]
        if missing:
            raise ValidationFailedError("All fields are required", fields=missing)

        now = datetime.now(timezone.utc)
        return cls(
            id=new_product_id(),
            name=patch.name,  # type: ignore[arg-type]
            description=patch.description,  # type: ignore[arg-type]
            price=patch.price,  # type: ignore[arg-type]
            category_id=patch.category_id,  # type: ignore[arg-type]
            quantity=patch.quantity,  # type: ignore[arg-type]
            sold=patch.sold or 0,
            shipping=patch.shipping,  # type: ignore[arg-type]
            image=patch.image,
            created_at=now,
            updated_at=now,
        )

    @property
    def has_image(self) -> bool:
        """Check if an image payload is loaded on this record."""
        return self.image is not None

    def without_image(self) -> "Product":
        """Return a copy with the image payload dropped."""
        return replace(self, image=None)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary.

        The image payload is never included.

        Returns:
            Dictionary representation.
        """
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "category_id": self.category_id,
            "category": self.category.to_dict() if self.category else None,
            "quantity": self.quantity,
            "sold": self.sold,
            "shipping": self.shipping,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class ProductPatch:
    """Partial set of product fields.

    ``None`` means "leave unchanged". The image is only replaced when a new
    asset is supplied; it is never cleared by a patch.
    """

    name: str | None = None
    description: str | None = None
    price: Decimal | None = None
    category_id: str | None = None
    quantity: int | None = None
    sold: int | None = None
    shipping: bool | None = None
    image: ImageAsset | None = None

    @classmethod
    def from_fields(
        cls,
        values: Mapping[str, Any],
        image: ImageAsset | None = None,
    ) -> Self:
        """Parse already-decoded form or JSON fields into a patch.

        Legacy field names are accepted. Empty strings count as absent.
        Unknown fields are ignored.

        Args:
            values: Field name to raw value.
            image: Prepared image asset, if one was uploaded.

        Returns:
            Typed patch.

        Raises:
            ValidationFailedError: If a value cannot be coerced to its type.
        """
        parsed: dict[str, Any] = {}
        invalid: list[str] = []

        for raw_name, raw_value in values.items():
            name = normalize_field(raw_name)
            parser = _PARSERS.get(name)
            if parser is None or raw_value is None or raw_value == "":
                continue
            try:
                parsed[name] = parser(raw_value)
            except (ValueError, TypeError, InvalidOperation):
                invalid.append(name)

        if invalid:
            raise ValidationFailedError(
                f"Invalid value for fields: {', '.join(sorted(invalid))}",
                fields=sorted(invalid),
            )

        return cls(image=image, **parsed)

    def changes(self) -> dict[str, Any]:
        """Get the fields this patch sets.

        Returns:
            Field name to new value, only for supplied fields.
        """
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    @property
    def is_empty(self) -> bool:
        return not self.changes()

    def apply(self, product: Product) -> Product:
        """Apply this patch field by field.

        Args:
            product: Record to patch.

        Returns:
            Patched copy; the input is left untouched.
        """
        return replace(product, **self.changes())


def _parse_text(value: Any) -> str:
    return str(value)


def _parse_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise TypeError("boolean is not a price")
    return Decimal(str(value))


def _parse_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("boolean is not a count")
    if isinstance(value, str):
        return int(value.strip())
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"not a whole number: {value}")
    return int(value)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"not a boolean: {value}")


_PARSERS = {
    "name": _parse_text,
    "description": _parse_text,
    "price": _parse_decimal,
    "category_id": _parse_text,
    "quantity": _parse_int,
    "sold": _parse_int,
    "shipping": _parse_bool,
}
